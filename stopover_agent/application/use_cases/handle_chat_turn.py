from __future__ import annotations

import json
import logging
import uuid
from contextlib import aclosing
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Iterable

from stopover_agent.application.dto.chat_request import ChatRequestDTO
from stopover_agent.application.dto.stream_parts import (
    StreamPart,
    finish_part,
    text_part,
    tool_call_part,
    tool_result_part,
)
from stopover_agent.application.exceptions import ConversationNotFoundError
from stopover_agent.application.ports.catalog import CatalogPort
from stopover_agent.application.ports.conversation_store import ConversationStorePort
from stopover_agent.application.ports.llm import TextDelta, ToolCallRequest
from stopover_agent.application.use_cases.booking_tools import ToolContext
from stopover_agent.application.use_cases.model_fallback import ModelFallbackController
from stopover_agent.application.use_cases.tool_registry import run_tool, tools_for_step
from stopover_agent.application.utils.booking_reference import generate_booking_reference
from stopover_agent.application.utils.system_prompt import build_system_prompt
from stopover_agent.domain.entities.conversation_record import ChatMessage, ConversationRecord, ItineraryInfo
from stopover_agent.domain.entities.pricing import PricingConfig
from stopover_agent.domain.entities.tool_result import ToolResult, UIComponent


@dataclass(frozen=True)
class OrchestratorConfig:
    max_tool_rounds: int = 2
    default_itinerary: ItineraryInfo = ItineraryInfo()


class HandleChatTurnUseCase:
    def __init__(
        self,
        store: ConversationStorePort,
        catalog: CatalogPort,
        controller: ModelFallbackController,
        pricing: PricingConfig,
        config: OrchestratorConfig,
        reference_generator: Callable[[Iterable[str]], str] = generate_booking_reference,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._controller = controller
        self._pricing = pricing
        self._config = config
        self._reference_generator = reference_generator
        self._id_factory = id_factory
        self._logger = logging.getLogger(__name__)

    def open_conversation(self, request: ChatRequestDTO) -> ConversationRecord:
        """Load the conversation named by the request, creating it on first contact."""
        conversation_id = request.conversationId or self._id_factory()
        return self._store.init(
            conversation_id,
            customer=request.to_customer(),
            itinerary=request.to_itinerary(self._config.default_itinerary),
            entry_point=request.entry_point(),
            current_step=request.current_step(),
        )

    def get_conversation(self, conversation_id: str) -> ConversationRecord:
        record = self._store.get(conversation_id)
        if record is None:
            raise ConversationNotFoundError(conversation_id)
        return record

    async def run_turn(self, conversation_id: str, request: ChatRequestDTO) -> AsyncIterator[StreamPart]:
        """
        Drive the model through one user turn and stream the outcome.

        Tool executions are committed to the store as soon as they finish.
        The user message is committed together with the first completed
        output, so a turn that fails before producing anything leaves the
        stored conversation exactly as it was. ModelChainError propagates to
        the caller.
        """
        record = self.get_conversation(conversation_id)
        messages: list[dict[str, Any]] = request.model_messages()
        pending_user = request.latest_user_text()

        for round_index in range(max(1, self._config.max_tool_rounds)):
            record = self.get_conversation(conversation_id)
            specs = tools_for_step(record.current_step)
            exposed = {spec.name.value for spec in specs}
            system_prompt = build_system_prompt(record, [(spec.name.value, spec.description) for spec in specs])

            text_chunks: list[str] = []
            assistant_calls: list[dict[str, Any]] = []
            tool_messages: list[dict[str, Any]] = []

            events = self._controller.invoke(
                messages=messages,
                tools=[spec.function_definition() for spec in specs],
                system_prompt=system_prompt,
            )
            async with aclosing(events):
                async for event in events:
                    if isinstance(event, TextDelta):
                        text_chunks.append(event.text)
                        yield text_part(event.text)
                        continue

                    pending_user = self._commit_user(conversation_id, pending_user)
                    args = _decode_arguments(event.arguments)
                    yield tool_call_part(event.id, event.name, args)

                    result = self._execute_tool(conversation_id, event, args, exposed)
                    payload = result.to_payload()
                    yield tool_result_part(event.id, event.name, payload)

                    assistant_calls.append(
                        {
                            "id": event.id,
                            "type": "function",
                            "function": {"name": event.name, "arguments": event.arguments or "{}"},
                        }
                    )
                    tool_messages.append(
                        {"role": "tool", "tool_call_id": event.id, "content": json.dumps(payload, ensure_ascii=False)}
                    )

            text = "".join(text_chunks)
            pending_user = self._commit_user(conversation_id, pending_user)
            if text.strip():
                self._append(conversation_id, role="assistant", content=text)

            if not assistant_calls:
                break
            messages.append({"role": "assistant", "content": text or None, "tool_calls": assistant_calls})
            messages.extend(tool_messages)

        record = self.get_conversation(conversation_id)
        yield finish_part("stop", conversation_id, record.current_step.value)

    def _execute_tool(
        self,
        conversation_id: str,
        call: ToolCallRequest,
        args: Any,
        exposed: set[str],
    ) -> ToolResult:
        record = self.get_conversation(conversation_id)
        log_extra = {"conversation_id": conversation_id, "tool": call.name, "step": record.current_step.value}
        if call.name not in exposed:
            # Lenient ordering: known tools still run when called outside their step.
            self._logger.warning("Tool called outside the current step", extra=log_extra)

        ctx = ToolContext(
            record=record,
            catalog=self._catalog,
            pricing=self._pricing,
            reference_generator=self._reference_generator,
        )
        try:
            result = run_tool(call.name, call.arguments, ctx)
        except Exception as e:
            self._logger.exception("Tool execution failed", extra={**log_extra, "reason": str(e)})
            message = "Something went wrong while processing that step. Please try again."
            result = ToolResult(
                success=False,
                message=message,
                ui_component=UIComponent(type="error", data={"message": message}),
            )

        if result.success:
            self._store.update(
                conversation_id,
                selection_changes=result.selection_changes,
                current_step=result.next_step,
            )
            self._logger.info(
                "Tool executed",
                extra={**log_extra, "step": result.next_step.value if result.next_step else log_extra["step"]},
            )
        else:
            self._logger.info("Tool call did not succeed", extra={**log_extra, "reason": result.message})

        self._append(
            conversation_id,
            role="tool",
            content=result.message,
            tool_invocation={
                "toolCallId": call.id,
                "toolName": call.name,
                "args": args,
                "state": "result",
                "result": result.to_payload(),
            },
        )
        return result

    def _commit_user(self, conversation_id: str, pending_user: str | None) -> str | None:
        """Persist the pending user message once; returns the new pending value."""
        if pending_user is not None:
            self._append(conversation_id, role="user", content=pending_user)
        return None

    def _append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        tool_invocation: dict[str, Any] | None = None,
    ) -> None:
        now_ts = datetime.now().timestamp()
        self._store.append_message(
            conversation_id,
            ChatMessage(
                id=uuid.uuid4().hex,
                role=role,
                content=content,
                timestamp=now_ts,
                tool_invocation=tool_invocation,
            ),
            now_ts=now_ts,
        )


def _decode_arguments(raw: str) -> Any:
    if not raw or not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw
