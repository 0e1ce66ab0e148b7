from __future__ import annotations

from dataclasses import replace
from typing import Any

from stopover_agent.domain.entities.booking_step import BookingStep
from stopover_agent.domain.entities.conversation_record import (
    ChatMessage,
    ConversationRecord,
    CustomerInfo,
    ItineraryInfo,
)


def new_record(
    conversation_id: str,
    now_ts: float,
    customer: CustomerInfo | None = None,
    itinerary: ItineraryInfo | None = None,
    entry_point: str | None = None,
    current_step: BookingStep | None = None,
) -> ConversationRecord:
    """Build a fresh record for a conversation's first turn."""
    return ConversationRecord(
        conversation_id=conversation_id,
        created_at=now_ts,
        last_activity_at=now_ts,
        customer=customer or CustomerInfo(),
        itinerary=itinerary or ItineraryInfo(),
        entry_point=entry_point or "email",
        current_step=current_step or BookingStep.welcome,
    )


def apply_update(
    record: ConversationRecord,
    now_ts: float,
    selection_changes: dict[str, Any] | None = None,
    current_step: BookingStep | None = None,
) -> ConversationRecord:
    """Merge selection fields and step; messages are left untouched."""
    selection = record.selection.merge(selection_changes) if selection_changes else record.selection
    return replace(
        record,
        selection=selection,
        current_step=current_step or record.current_step,
        last_activity_at=now_ts,
    )


def append_trimmed(record: ConversationRecord, message: ChatMessage, limit: int, now_ts: float) -> ConversationRecord:
    """Append a message and keep only the last `limit` messages."""
    messages = record.messages + (message,)
    if limit > 0 and len(messages) > limit:
        messages = messages[-limit:]
    return replace(record, messages=messages, last_activity_at=now_ts)


def is_expired(record: ConversationRecord, now_ts: float, ttl_seconds: float) -> bool:
    return now_ts - record.last_activity_at > ttl_seconds
