from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from stopover_agent.application.dto.tool_arguments import (
    CompleteBookingArgs,
    InitiatePaymentArgs,
    SelectCategoryArgs,
    SelectExtrasArgs,
    SelectHotelArgs,
    SelectTimingAndDurationArgs,
    ShowCategoriesArgs,
    ToolArguments,
)
from stopover_agent.application.exceptions import ToolValidationError
from stopover_agent.application.use_cases import booking_tools
from stopover_agent.application.use_cases.booking_tools import ToolContext
from stopover_agent.domain.entities.booking_step import BookingStep
from stopover_agent.domain.entities.tool_result import FieldError, ToolResult, UIComponent

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    show_categories = "showCategories"
    select_category = "selectCategory"
    select_hotel = "selectHotel"
    select_timing_and_duration = "selectTimingAndDuration"
    select_extras = "selectExtras"
    initiate_payment = "initiatePayment"
    complete_booking = "completeBooking"


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    description: str
    arguments: type[ToolArguments]
    execute: Callable[[Any, ToolContext], ToolResult]
    step: BookingStep  # step reached when execute succeeds

    def parameters_schema(self) -> dict[str, Any]:
        return _inline_refs(self.arguments.model_json_schema())

    def function_definition(self) -> dict[str, Any]:
        """Tool definition in the OpenAI chat-completions format."""
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


TOOL_REGISTRY: dict[ToolName, ToolSpec] = {
    ToolName.show_categories: ToolSpec(
        name=ToolName.show_categories,
        description="Display available stopover categories to the customer with interactive carousel",
        arguments=ShowCategoriesArgs,
        execute=booking_tools.show_categories,
        step=BookingStep.categories_shown,
    ),
    ToolName.select_category: ToolSpec(
        name=ToolName.select_category,
        description="Process stopover category selection and display available hotels",
        arguments=SelectCategoryArgs,
        execute=booking_tools.select_category,
        step=BookingStep.category_selected,
    ),
    ToolName.select_hotel: ToolSpec(
        name=ToolName.select_hotel,
        description="Process hotel selection and display stopover timing and duration options",
        arguments=SelectHotelArgs,
        execute=booking_tools.select_hotel,
        step=BookingStep.hotel_selected,
    ),
    ToolName.select_timing_and_duration: ToolSpec(
        name=ToolName.select_timing_and_duration,
        description="Process stopover timing and duration selection, then show extras",
        arguments=SelectTimingAndDurationArgs,
        execute=booking_tools.select_timing_and_duration,
        step=BookingStep.timing_selected,
    ),
    ToolName.select_extras: ToolSpec(
        name=ToolName.select_extras,
        description="Process extras selection (transfers and tours) and show booking summary",
        arguments=SelectExtrasArgs,
        execute=booking_tools.select_extras,
        step=BookingStep.extras_selected,
    ),
    ToolName.initiate_payment: ToolSpec(
        name=ToolName.initiate_payment,
        description="Initialize the payment process for the stopover booking",
        arguments=InitiatePaymentArgs,
        execute=booking_tools.initiate_payment,
        step=BookingStep.payment_initiated,
    ),
    ToolName.complete_booking: ToolSpec(
        name=ToolName.complete_booking,
        description="Complete the stopover booking and generate confirmation",
        arguments=CompleteBookingArgs,
        execute=booking_tools.complete_booking,
        step=BookingStep.booking_complete,
    ),
}


def get_tool(name: str) -> ToolSpec | None:
    try:
        return TOOL_REGISTRY[ToolName(name)]
    except ValueError:
        return None


def tools_for_step(step: BookingStep) -> list[ToolSpec]:
    """
    Tools offered to the model at `step`: the tool that produced the current
    step (re-selection) and the tool that advances to the next one.
    """
    if step.is_terminal:
        return []
    allowed = {step.position, step.position + 1}
    return [spec for spec in TOOL_REGISTRY.values() if spec.step.position in allowed]


def validate_arguments(spec: ToolSpec, raw_arguments: str | dict[str, Any] | None) -> ToolArguments:
    """Parse raw model arguments against the tool schema. Never coerces silently."""
    if raw_arguments is None or (isinstance(raw_arguments, str) and not raw_arguments.strip()):
        payload: Any = {}
    elif isinstance(raw_arguments, str):
        try:
            payload = json.loads(raw_arguments)
        except json.JSONDecodeError as e:
            raise ToolValidationError(spec.name.value, [FieldError("arguments", f"Invalid JSON: {e.msg}")]) from e
    else:
        payload = raw_arguments

    if not isinstance(payload, dict):
        raise ToolValidationError(spec.name.value, [FieldError("arguments", "Arguments must be a JSON object")])

    try:
        return spec.arguments.model_validate(payload)
    except ValidationError as e:
        raise ToolValidationError(spec.name.value, _field_errors(e)) from e


def run_tool(name: str, raw_arguments: str | dict[str, Any] | None, ctx: ToolContext) -> ToolResult:
    """
    Validate then execute one tool call. Always returns a result envelope;
    `next_step` is set only on success.
    """
    spec = get_tool(name)
    if spec is None:
        message = f"Unknown tool '{name}'."
        return ToolResult(
            success=False,
            message=message,
            ui_component=UIComponent(type="error", data={"message": message}),
            errors=(FieldError("name", message),),
        )

    try:
        arguments = validate_arguments(spec, raw_arguments)
    except ToolValidationError as e:
        logger.info("Tool arguments rejected", extra={"tool": spec.name.value, "reason": str(e)})
        return ToolResult(
            success=False,
            message="Some details were missing or invalid. Please check and try again.",
            ui_component=UIComponent(
                type="validation-error",
                data={"errors": [{"field": fe.field, "message": fe.message} for fe in e.errors]},
            ),
            errors=tuple(e.errors),
        )

    result = spec.execute(arguments, ctx)
    if not result.success:
        return replace(result, selection_changes={}, next_step=None)
    return replace(result, next_step=spec.step)


def _field_errors(error: ValidationError) -> list[FieldError]:
    out: list[FieldError] = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item.get("loc", ())) or "arguments"
        out.append(FieldError(field=loc, message=item.get("msg", "Invalid value")))
    return out


def _inline_refs(schema: dict[str, Any]) -> dict[str, Any]:
    """Resolve local $ref pointers so the schema is self-contained."""
    defs = schema.get("$defs", {})

    def resolve(node: Any) -> Any:
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str) and ref.startswith("#/$defs/"):
                target = copy.deepcopy(defs[ref.split("/")[-1]])
                merged = {**target, **{k: v for k, v in node.items() if k != "$ref"}}
                return resolve(merged)
            all_of = node.get("allOf")
            if isinstance(all_of, list) and len(all_of) == 1 and isinstance(all_of[0], dict):
                merged = {**all_of[0], **{k: v for k, v in node.items() if k != "allOf"}}
                return resolve(merged)
            return {k: resolve(v) for k, v in node.items() if k != "$defs"}
        if isinstance(node, list):
            return [resolve(v) for v in node]
        return node

    return resolve(schema)
