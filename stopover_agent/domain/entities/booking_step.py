from __future__ import annotations

from enum import Enum


class BookingStep(str, Enum):
    welcome = "welcome"
    categories_shown = "categories-shown"
    category_selected = "category-selected"
    hotel_selected = "hotel-selected"
    timing_selected = "timing-selected"
    extras_selected = "extras-selected"
    payment_initiated = "payment-initiated"
    booking_complete = "booking-complete"

    @property
    def position(self) -> int:
        return list(BookingStep).index(self)

    @property
    def is_terminal(self) -> bool:
        return self is BookingStep.booking_complete

    @staticmethod
    def parse(value: str | None, default: "BookingStep | None" = None) -> "BookingStep | None":
        if not value:
            return default
        try:
            return BookingStep(str(value).strip().lower())
        except ValueError:
            return default
