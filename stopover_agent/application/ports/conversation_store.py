from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from stopover_agent.domain.entities.booking_step import BookingStep
from stopover_agent.domain.entities.conversation_record import (
    ChatMessage,
    ConversationRecord,
    CustomerInfo,
    ItineraryInfo,
)


class ConversationStorePort(ABC):
    """
    Owner of ConversationRecord persistence.

    Implementations serialize every read-modify-write per conversation id, so
    concurrent turns for the same conversation never lose each other's updates.
    Locks are held only for the local operation.
    """

    @abstractmethod
    def init(
        self,
        conversation_id: str,
        customer: CustomerInfo | None = None,
        itinerary: ItineraryInfo | None = None,
        entry_point: str | None = None,
        current_step: BookingStep | None = None,
        now_ts: float | None = None,
    ) -> ConversationRecord:
        """
        Create the record if absent, else return the existing one unchanged.
        Seed values are only used on creation. May evict expired records.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, conversation_id: str) -> ConversationRecord | None:
        raise NotImplementedError

    @abstractmethod
    def update(
        self,
        conversation_id: str,
        selection_changes: dict[str, Any] | None = None,
        current_step: BookingStep | None = None,
        now_ts: float | None = None,
    ) -> ConversationRecord:
        """
        Merge partial selection fields and/or the current step.
        Raises ConversationNotFoundError if the record does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def append_message(self, conversation_id: str, message: ChatMessage, now_ts: float | None = None) -> ConversationRecord:
        """
        Append one message, evicting the oldest beyond the retention cap.
        Raises ConversationNotFoundError if the record does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def cleanup(self, now_ts: float | None = None) -> int:
        """Evict records idle longer than the TTL. Returns the number evicted."""
        raise NotImplementedError
