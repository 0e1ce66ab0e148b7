from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from stopover_agent.application.exceptions import ConversationNotFoundError
from stopover_agent.application.ports.conversation_store import ConversationStorePort
from stopover_agent.application.utils.state_helpers import append_trimmed, apply_update, is_expired, new_record
from stopover_agent.domain.entities.booking_step import BookingStep
from stopover_agent.domain.entities.conversation_record import (
    ChatMessage,
    ConversationRecord,
    CustomerInfo,
    ItineraryInfo,
)
from stopover_agent.infrastructure.store.keyed_locks import KeyedLocks


class MemoryConversationStore(ConversationStorePort):
    def __init__(
        self,
        history_limit: int = 50,
        ttl_seconds: float = 24 * 60 * 60,
        cleanup_interval_seconds: float = 10 * 60,
    ) -> None:
        self._records: dict[str, ConversationRecord] = {}
        self._history_limit = history_limit
        self._ttl_seconds = ttl_seconds
        self._cleanup_interval_seconds = cleanup_interval_seconds
        self._last_cleanup_ts: float | None = None
        self._locks = KeyedLocks()
        self._logger = logging.getLogger(__name__)

    def init(
        self,
        conversation_id: str,
        customer: CustomerInfo | None = None,
        itinerary: ItineraryInfo | None = None,
        entry_point: str | None = None,
        current_step: BookingStep | None = None,
        now_ts: float | None = None,
    ) -> ConversationRecord:
        now_ts = _now(now_ts)
        self._maybe_cleanup(now_ts)
        with self._locks.locked(conversation_id):
            existing = self._records.get(conversation_id)
            if existing is not None:
                return existing
            record = new_record(conversation_id, now_ts, customer, itinerary, entry_point, current_step)
            self._records[conversation_id] = record
            self._logger.info("Conversation created", extra={"conversation_id": conversation_id})
            return record

    def get(self, conversation_id: str) -> ConversationRecord | None:
        return self._records.get(conversation_id)

    def update(
        self,
        conversation_id: str,
        selection_changes: dict[str, Any] | None = None,
        current_step: BookingStep | None = None,
        now_ts: float | None = None,
    ) -> ConversationRecord:
        with self._locks.locked(conversation_id):
            record = self._require(conversation_id)
            updated = apply_update(record, _now(now_ts), selection_changes, current_step)
            self._records[conversation_id] = updated
            return updated

    def append_message(self, conversation_id: str, message: ChatMessage, now_ts: float | None = None) -> ConversationRecord:
        with self._locks.locked(conversation_id):
            record = self._require(conversation_id)
            updated = append_trimmed(record, message, self._history_limit, _now(now_ts))
            self._records[conversation_id] = updated
            return updated

    def cleanup(self, now_ts: float | None = None) -> int:
        now_ts = _now(now_ts)
        self._last_cleanup_ts = now_ts
        evicted = 0
        for conversation_id in list(self._records):
            with self._locks.locked(conversation_id):
                record = self._records.get(conversation_id)
                if record is not None and is_expired(record, now_ts, self._ttl_seconds):
                    del self._records[conversation_id]
                    evicted += 1
        self._locks.prune(lambda conversation_id: conversation_id in self._records)
        if evicted:
            self._logger.info("Expired conversations evicted", extra={"reason": f"evicted={evicted}"})
        return evicted

    def _maybe_cleanup(self, now_ts: float) -> None:
        if self._last_cleanup_ts is None or now_ts - self._last_cleanup_ts >= self._cleanup_interval_seconds:
            self.cleanup(now_ts)

    def _require(self, conversation_id: str) -> ConversationRecord:
        record = self._records.get(conversation_id)
        if record is None:
            raise ConversationNotFoundError(conversation_id)
        return record


def _now(now_ts: float | None) -> float:
    return now_ts if now_ts is not None else datetime.now().timestamp()
