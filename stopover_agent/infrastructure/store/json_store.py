from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from stopover_agent.application.exceptions import ConversationNotFoundError
from stopover_agent.application.ports.conversation_store import ConversationStorePort
from stopover_agent.application.utils.state_helpers import append_trimmed, apply_update, is_expired, new_record
from stopover_agent.domain.entities.booking_selection import BookingSelection, TourSelection
from stopover_agent.domain.entities.booking_step import BookingStep
from stopover_agent.domain.entities.conversation_record import (
    ChatMessage,
    ConversationRecord,
    CustomerInfo,
    ItineraryInfo,
)
from stopover_agent.infrastructure.store.keyed_locks import KeyedLocks

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]")


class JsonConversationStore(ConversationStorePort):
    """One JSON file per conversation, replaced atomically on every write."""

    def __init__(
        self,
        data_dir: str = "./data/conversations",
        history_limit: int = 50,
        ttl_seconds: float = 24 * 60 * 60,
        cleanup_interval_seconds: float = 10 * 60,
    ) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._history_limit = history_limit
        self._ttl_seconds = ttl_seconds
        self._cleanup_interval_seconds = cleanup_interval_seconds
        self._last_cleanup_ts: float | None = None
        self._locks = KeyedLocks()
        self._logger = logging.getLogger(__name__)

    def _get_file_path(self, conversation_id: str) -> Path:
        return self._data_dir / f"{_SAFE_ID.sub('_', conversation_id)}.json"

    def _read(self, file_path: Path) -> ConversationRecord | None:
        if not file_path.exists():
            return None
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return self._deserialize_record(json.load(f))
        except (json.JSONDecodeError, KeyError, ValueError, OSError):
            # A corrupted file is treated as a missing conversation.
            self._logger.exception("Unreadable conversation file", extra={"reason": file_path.name})
            return None

    def _load(self, conversation_id: str) -> ConversationRecord | None:
        record = self._read(self._get_file_path(conversation_id))
        if record is not None and record.conversation_id != conversation_id:
            # Different ids can share a sanitized file name; never hand out another conversation.
            self._logger.warning(
                "Conversation file belongs to another id",
                extra={"conversation_id": conversation_id, "reason": f"stored={record.conversation_id}"},
            )
            return None
        return record

    def _save(self, record: ConversationRecord) -> None:
        """Save record to JSON file atomically."""
        file_path = self._get_file_path(record.conversation_id)
        temp_path = file_path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self._serialize_record(record), f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise

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
            existing = self._read(self._get_file_path(conversation_id))
            if existing is not None:
                if existing.conversation_id != conversation_id:
                    raise ValueError(
                        f"Conversation id '{conversation_id}' collides with stored conversation "
                        f"'{existing.conversation_id}'"
                    )
                return existing
            record = new_record(conversation_id, now_ts, customer, itinerary, entry_point, current_step)
            self._save(record)
            self._logger.info("Conversation created", extra={"conversation_id": conversation_id})
            return record

    def get(self, conversation_id: str) -> ConversationRecord | None:
        # Writes replace the file atomically, so reads need no lock.
        return self._load(conversation_id)

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
            self._save(updated)
            return updated

    def append_message(self, conversation_id: str, message: ChatMessage, now_ts: float | None = None) -> ConversationRecord:
        with self._locks.locked(conversation_id):
            record = self._require(conversation_id)
            updated = append_trimmed(record, message, self._history_limit, _now(now_ts))
            self._save(updated)
            return updated

    def cleanup(self, now_ts: float | None = None) -> int:
        now_ts = _now(now_ts)
        self._last_cleanup_ts = now_ts
        evicted = 0
        for file_path in self._data_dir.glob("*.json"):
            stored = self._read(file_path)
            if stored is None:
                continue
            with self._locks.locked(stored.conversation_id):
                record = self._load(stored.conversation_id)
                if record is not None and is_expired(record, now_ts, self._ttl_seconds):
                    file_path.unlink(missing_ok=True)
                    evicted += 1
        self._locks.prune(lambda conversation_id: self._get_file_path(conversation_id).exists())
        if evicted:
            self._logger.info("Expired conversations evicted", extra={"reason": f"evicted={evicted}"})
        return evicted

    def _maybe_cleanup(self, now_ts: float) -> None:
        if self._last_cleanup_ts is None or now_ts - self._last_cleanup_ts >= self._cleanup_interval_seconds:
            self.cleanup(now_ts)

    def _require(self, conversation_id: str) -> ConversationRecord:
        record = self._load(conversation_id)
        if record is None:
            raise ConversationNotFoundError(conversation_id)
        return record

    def _serialize_record(self, record: ConversationRecord) -> dict[str, Any]:
        return {
            "conversation_id": record.conversation_id,
            "created_at": record.created_at,
            "last_activity_at": record.last_activity_at,
            "customer": {
                "name": record.customer.name,
                "loyalty_number": record.customer.loyalty_number,
                "email": record.customer.email,
            },
            "itinerary": {
                "pnr": record.itinerary.pnr,
                "origin": record.itinerary.origin,
                "destination": record.itinerary.destination,
                "passengers": record.itinerary.passengers,
            },
            "entry_point": record.entry_point,
            "current_step": record.current_step.value,
            "selection": self._serialize_selection(record.selection),
            "messages": [
                {
                    "id": m.id,
                    "role": m.role,
                    "content": m.content,
                    "timestamp": m.timestamp,
                    "tool_invocation": m.tool_invocation,
                }
                for m in record.messages
            ],
            "version": 1,
        }

    def _deserialize_record(self, data: dict[str, Any]) -> ConversationRecord:
        customer = data.get("customer") or {}
        itinerary = data.get("itinerary") or {}
        return ConversationRecord(
            conversation_id=data["conversation_id"],
            created_at=float(data["created_at"]),
            last_activity_at=float(data["last_activity_at"]),
            customer=CustomerInfo(
                name=customer.get("name") or CustomerInfo.name,
                loyalty_number=customer.get("loyalty_number"),
                email=customer.get("email"),
            ),
            itinerary=ItineraryInfo(
                pnr=itinerary.get("pnr") or ItineraryInfo.pnr,
                origin=itinerary.get("origin") or ItineraryInfo.origin,
                destination=itinerary.get("destination") or ItineraryInfo.destination,
                passengers=int(itinerary.get("passengers") or ItineraryInfo.passengers),
            ),
            entry_point=data.get("entry_point") or "email",
            current_step=BookingStep.parse(data.get("current_step"), BookingStep.welcome),
            selection=self._deserialize_selection(data.get("selection") or {}),
            messages=tuple(
                ChatMessage(
                    id=m["id"],
                    role=m["role"],
                    content=m.get("content", ""),
                    timestamp=float(m.get("timestamp", 0)),
                    tool_invocation=m.get("tool_invocation"),
                )
                for m in data.get("messages", [])
            ),
        )

    def _serialize_selection(self, selection: BookingSelection) -> dict[str, Any]:
        # Decimals are stored as strings to keep amounts exact.
        return {
            "category_id": selection.category_id,
            "category_name": selection.category_name,
            "hotel_id": selection.hotel_id,
            "hotel_name": selection.hotel_name,
            "timing": selection.timing,
            "duration": selection.duration,
            "transfers_included": selection.transfers_included,
            "tours": [
                {
                    "tour_id": t.tour_id,
                    "tour_name": t.tour_name,
                    "quantity": t.quantity,
                    "unit_price": str(t.unit_price),
                    "total_price": str(t.total_price) if t.total_price is not None else None,
                }
                for t in selection.tours
            ],
            "declared_extras_price": (
                str(selection.declared_extras_price) if selection.declared_extras_price is not None else None
            ),
            "payment_method": selection.payment_method,
            "new_pnr": selection.new_pnr,
        }

    def _deserialize_selection(self, data: dict[str, Any]) -> BookingSelection:
        declared = data.get("declared_extras_price")
        return BookingSelection(
            category_id=data.get("category_id"),
            category_name=data.get("category_name"),
            hotel_id=data.get("hotel_id"),
            hotel_name=data.get("hotel_name"),
            timing=data.get("timing"),
            duration=data.get("duration"),
            transfers_included=bool(data.get("transfers_included", False)),
            tours=tuple(
                TourSelection(
                    tour_id=t["tour_id"],
                    tour_name=t.get("tour_name", ""),
                    quantity=int(t["quantity"]),
                    unit_price=Decimal(t["unit_price"]),
                    total_price=Decimal(t["total_price"]) if t.get("total_price") is not None else None,
                )
                for t in data.get("tours", [])
            ),
            declared_extras_price=Decimal(declared) if declared is not None else None,
            payment_method=data.get("payment_method"),
            new_pnr=data.get("new_pnr"),
        )


def _now(now_ts: float | None) -> float:
    return now_ts if now_ts is not None else datetime.now().timestamp()
