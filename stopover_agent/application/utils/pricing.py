from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from stopover_agent.domain.entities.booking_selection import BookingSelection
from stopover_agent.domain.entities.pricing import PricingLineItem, PricingResult


def compute_pricing(
    selection: BookingSelection,
    rate_per_night: Decimal | int,
    flight_fare_difference: Decimal | int,
    transfer_price: Decimal | int,
    conversion_rate: int,
) -> PricingResult:
    """
    Price a stopover package from the accumulated selection.

    Pure: no I/O and no clock, so the same inputs always give the same result.
    Arguments are expected to be validated upstream; negative inputs raise
    ValueError rather than producing a negative total.
    """
    rate = Decimal(rate_per_night)
    fare = Decimal(flight_fare_difference)
    transfer = Decimal(transfer_price)
    nights = selection.duration or 0

    if rate < 0 or fare < 0 or transfer < 0 or conversion_rate < 0 or nights < 0:
        raise ValueError("Pricing inputs must not be negative.")

    hotel_cost = rate * nights
    transfers_cost = transfer if selection.transfers_included else Decimal(0)

    tours = [t for t in selection.tours if t.quantity > 0]
    for tour in tours:
        if tour.unit_price < 0 or tour.line_total < 0:
            raise ValueError(f"Tour {tour.tour_id!r} has a negative unit price.")
    tours_cost = sum((t.line_total for t in tours), Decimal(0))

    total_cash = hotel_cost + fare + transfers_cost + tours_cost

    items = [
        PricingLineItem(label=f"Hotel ({nights} night{'s' if nights != 1 else ''})", amount=hotel_cost),
        PricingLineItem(label="Flight fare difference", amount=fare),
    ]
    if selection.transfers_included:
        items.append(PricingLineItem(label="Airport transfers", amount=transfers_cost))
    items.extend(
        PricingLineItem(label=f"{t.tour_name or t.tour_id} ({t.quantity}x)", amount=t.line_total)
        for t in tours
    )

    return PricingResult(
        hotel_cost=hotel_cost,
        flight_fare_difference=fare,
        transfers_cost=transfers_cost,
        tours_cost=tours_cost,
        total_cash_price=total_cash,
        total_avios_price=total_cash * conversion_rate,
        line_items=tuple(items),
    )


def avios_required(cash_amount: Decimal | int, conversion_rate: int) -> int:
    return int((Decimal(cash_amount) * conversion_rate).to_integral_value(rounding=ROUND_HALF_UP))


def cash_from_avios(avios_amount: int, conversion_rate: int) -> Decimal:
    if conversion_rate <= 0:
        raise ValueError("conversion_rate must be positive.")
    return (Decimal(avios_amount) / conversion_rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def as_number(value: Decimal) -> int | float:
    """JSON-friendly amount: int when whole, float otherwise."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def format_cash(value: Decimal) -> str:
    number = as_number(value)
    if isinstance(number, int):
        return f"${number:,}"
    return f"${number:,.2f}"


def format_avios(value: Decimal) -> str:
    return f"{as_number(value):,} Avios"


def pricing_payload(result: PricingResult) -> dict[str, int | float]:
    return {
        "hotelCost": as_number(result.hotel_cost),
        "flightFareDifference": as_number(result.flight_fare_difference),
        "transfersCost": as_number(result.transfers_cost),
        "toursCost": as_number(result.tours_cost),
        "totalCashPrice": as_number(result.total_cash_price),
        "totalAviosPrice": as_number(result.total_avios_price),
    }
