from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PricingConfig:
    flight_fare_difference: Decimal = Decimal("115")
    conversion_rate: int = 125  # Avios per currency unit


@dataclass(frozen=True)
class PricingLineItem:
    label: str
    amount: Decimal


@dataclass(frozen=True)
class PricingResult:
    hotel_cost: Decimal
    flight_fare_difference: Decimal
    transfers_cost: Decimal
    tours_cost: Decimal
    total_cash_price: Decimal
    total_avios_price: Decimal
    line_items: tuple[PricingLineItem, ...] = ()
