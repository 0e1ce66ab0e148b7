from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class TourSelection:
    tour_id: str
    tour_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal | None = None  # declared line total for tours priced outside the catalog

    @property
    def line_total(self) -> Decimal:
        if self.total_price is not None:
            return self.total_price
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class BookingSelection:
    category_id: str | None = None
    category_name: str | None = None
    hotel_id: str | None = None
    hotel_name: str | None = None
    timing: str | None = None  # "outbound" | "return"
    duration: int | None = None  # nights, 1-4
    transfers_included: bool = False
    tours: tuple[TourSelection, ...] = ()
    declared_extras_price: Decimal | None = None
    payment_method: str | None = None  # "credit-card" | "avios"
    new_pnr: str | None = None

    def merge(self, changes: dict[str, Any]) -> "BookingSelection":
        """Return a copy with `changes` applied. Unknown keys are rejected."""
        unknown = set(changes) - SELECTION_FIELDS
        if unknown:
            raise ValueError(f"Unknown booking selection fields: {sorted(unknown)}")
        if "tours" in changes:
            changes = {**changes, "tours": tuple(changes["tours"])}
        return replace(self, **changes)


SELECTION_FIELDS = frozenset(f.name for f in fields(BookingSelection))
