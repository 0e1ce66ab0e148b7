from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from stopover_agent.domain.entities.booking_step import BookingStep


@dataclass(frozen=True)
class UIComponent:
    type: str
    data: dict[str, Any]


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class ToolResult:
    success: bool
    message: str
    ui_component: UIComponent | None = None
    data: dict[str, Any] = field(default_factory=dict)
    errors: tuple[FieldError, ...] = ()
    # Applied by the orchestrator only when success is True.
    selection_changes: dict[str, Any] = field(default_factory=dict)
    next_step: BookingStep | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "uiComponent": (
                {"type": self.ui_component.type, "data": self.ui_component.data}
                if self.ui_component
                else None
            ),
        }
        if self.data:
            payload["result"] = self.data
        if self.errors:
            payload["errors"] = [{"field": e.field, "message": e.message} for e in self.errors]
        return payload
