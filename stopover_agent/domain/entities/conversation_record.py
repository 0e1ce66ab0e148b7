from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from stopover_agent.domain.entities.booking_selection import BookingSelection
from stopover_agent.domain.entities.booking_step import BookingStep


@dataclass(frozen=True)
class ChatMessage:
    id: str
    role: str  # "user" | "assistant" | "tool"
    content: str
    timestamp: float
    tool_invocation: dict[str, Any] | None = None


@dataclass(frozen=True)
class CustomerInfo:
    name: str = "Valued Customer"
    loyalty_number: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class ItineraryInfo:
    pnr: str = "X4HG8"
    origin: str = "LHR"
    destination: str = "BKK"
    passengers: int = 2


@dataclass(frozen=True)
class ConversationRecord:
    conversation_id: str
    created_at: float
    last_activity_at: float
    customer: CustomerInfo = CustomerInfo()
    itinerary: ItineraryInfo = ItineraryInfo()
    entry_point: str = "email"  # "email" | "mmb"
    current_step: BookingStep = BookingStep.welcome
    selection: BookingSelection = BookingSelection()
    messages: tuple[ChatMessage, ...] = ()
