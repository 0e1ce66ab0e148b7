from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Iterable

from stopover_agent.application.dto.tool_arguments import (
    CompleteBookingArgs,
    InitiatePaymentArgs,
    PaymentMethod,
    SelectCategoryArgs,
    SelectExtrasArgs,
    SelectedTourArgs,
    SelectHotelArgs,
    SelectTimingAndDurationArgs,
    ShowCategoriesArgs,
)
from stopover_agent.application.ports.catalog import CatalogPort
from stopover_agent.application.utils.booking_reference import generate_booking_reference
from stopover_agent.application.utils.pricing import (
    as_number,
    avios_required,
    compute_pricing,
    format_avios,
    format_cash,
    pricing_payload,
)
from stopover_agent.domain.entities.booking_selection import TourSelection
from stopover_agent.domain.entities.booking_step import BookingStep
from stopover_agent.domain.entities.catalog import HotelOption, StopoverCategory, TourOption, TransferOption
from stopover_agent.domain.entities.conversation_record import ConversationRecord
from stopover_agent.domain.entities.pricing import PricingConfig
from stopover_agent.domain.entities.tool_result import UIComponent, ToolResult

logger = logging.getLogger(__name__)

STOPOVER_LOCATION = "Doha (DOH)"
DURATION_OPTIONS = (1, 2, 3, 4)
CENT = Decimal("0.01")


@dataclass(frozen=True)
class ToolContext:
    """Everything a tool may read. Tools never write; they return changes."""

    record: ConversationRecord
    catalog: CatalogPort
    pricing: PricingConfig = PricingConfig()
    reference_generator: Callable[[Iterable[str]], str] = field(default=generate_booking_reference)


def show_categories(args: ShowCategoriesArgs, ctx: ToolContext) -> ToolResult:
    categories = [_category_payload(c) for c in ctx.catalog.list_categories()]
    return ToolResult(
        success=True,
        message="Here are our stopover categories. Each offers different levels of comfort and amenities:",
        ui_component=UIComponent(type="stopover-categories", data={"categories": categories}),
        data={"categories": categories},
    )


def select_category(args: SelectCategoryArgs, ctx: ToolContext) -> ToolResult:
    category = ctx.catalog.get_category(args.categoryId)
    if category is None:
        available = ", ".join(c.id for c in ctx.catalog.list_categories())
        return _failure(f"I couldn't find the '{args.categoryName}' category. Available categories: {available}.")

    hotels = [
        {**_hotel_payload(h), "matchesCategory": h.star_rating >= category.star_rating}
        for h in ctx.catalog.list_hotels()
    ]
    return ToolResult(
        success=True,
        message=(
            f"Great choice! You've selected the {args.categoryName} category. "
            "Now let's choose your hotel from our premium selection:"
        ),
        ui_component=UIComponent(type="hotels", data={"hotels": hotels, "selectedCategoryId": category.id}),
        data={"selectedCategory": category.id, "hotels": hotels},
        selection_changes={"category_id": category.id, "category_name": args.categoryName},
    )


def select_hotel(args: SelectHotelArgs, ctx: ToolContext) -> ToolResult:
    itinerary = ctx.record.itinerary
    route = {"origin": itinerary.origin, "destination": itinerary.destination}
    hotel = ctx.catalog.get_hotel(args.hotelId)
    if hotel is None:
        logger.info("Hotel is not in the catalog", extra={"tool": "selectHotel", "reason": f"hotelId={args.hotelId}"})
    return ToolResult(
        success=True,
        message=(
            f"Perfect! You've selected {args.hotelName}. "
            "Now let's configure when you'd like your stopover and for how long:"
        ),
        ui_component=UIComponent(
            type="stopover-options",
            data={
                "selectedHotelId": args.hotelId,
                "originalRoute": route,
                "timingOptions": ["outbound", "return"],
                "durationOptions": list(DURATION_OPTIONS),
            },
        ),
        data={
            "selectedHotel": args.hotelId,
            "hotel": _hotel_payload(hotel) if hotel is not None else None,
            "originalRoute": route,
        },
        selection_changes={"hotel_id": args.hotelId, "hotel_name": args.hotelName},
    )


def select_timing_and_duration(args: SelectTimingAndDurationArgs, ctx: ToolContext) -> ToolResult:
    timing = args.timing.value
    recommended = ctx.catalog.recommended_tour()
    return ToolResult(
        success=True,
        message=(
            f"Excellent! You've chosen a {args.duration}-night {timing} stopover. "
            "Now let's enhance your experience with some optional extras:"
        ),
        ui_component=UIComponent(
            type="stopover-extras",
            data={
                "transfers": _transfer_payload(ctx.catalog.default_transfer()),
                "tours": [_tour_payload(t) for t in ctx.catalog.list_tours()],
                "recommendedTour": {
                    **_tour_payload(recommended),
                    "isRecommended": True,
                    "recommendationReason": "Perfect for your stopover dates - whale shark season is at its peak!",
                },
                "passengers": ctx.record.itinerary.passengers,
                "selectedTiming": timing,
                "selectedDuration": args.duration,
            },
        ),
        data={"selectedTiming": timing, "selectedDuration": args.duration},
        selection_changes={"timing": timing, "duration": args.duration},
    )


def select_extras(args: SelectExtrasArgs, ctx: ToolContext) -> ToolResult:
    selection = ctx.record.selection
    category = ctx.catalog.get_category(selection.category_id) if selection.category_id else None
    if category is None:
        return _failure("Please choose a stopover category before selecting extras.")
    if not selection.duration:
        return _failure("Please choose when and for how many nights you'd like to stop over before selecting extras.")

    tours = tuple(
        _tour_selection(t, ctx.catalog.get_tour(t.tourId)) for t in args.selectedTours if t.quantity > 0
    )
    declared = _decimal(args.totalExtrasPrice)
    changes: dict[str, Any] = {
        "transfers_included": args.includeTransfers,
        "tours": tours,
        "declared_extras_price": declared,
    }

    transfer = ctx.catalog.default_transfer()
    pricing = compute_pricing(
        selection.merge(changes),
        rate_per_night=category.price_per_night,
        flight_fare_difference=ctx.pricing.flight_fare_difference,
        transfer_price=transfer.price,
        conversion_rate=ctx.pricing.conversion_rate,
    )

    computed_extras = pricing.transfers_cost + pricing.tours_cost
    if computed_extras != declared:
        logger.warning(
            "Declared extras price differs from computed price",
            extra={"tool": "selectExtras", "reason": f"declared={declared} computed={computed_extras}"},
        )

    total = format_cash(pricing.total_cash_price)
    avios = format_avios(pricing.total_avios_price)
    return ToolResult(
        success=True,
        message=f"Perfect! Here's your complete stopover package summary. Your total is {total} or {avios}.",
        ui_component=UIComponent(
            type="summary",
            data={
                "title": "Booking Summary",
                "items": [{"label": item.label, "value": format_cash(item.amount)} for item in pricing.line_items],
                "total": total,
                "aviosOption": avios,
                "actions": [{"type": "payment", "label": "Proceed to Payment", "primary": True}],
            },
        ),
        data={
            "selectedExtras": {
                "transfers": args.includeTransfers,
                "tours": [
                    {
                        "tourId": t.tour_id,
                        "tourName": t.tour_name,
                        "quantity": t.quantity,
                        "unitPrice": as_number(t.unit_price),
                        "totalPrice": as_number(t.line_total),
                    }
                    for t in tours
                ],
                "totalExtrasPrice": as_number(declared),
            },
            "pricing": pricing_payload(pricing),
        },
        selection_changes=changes,
    )


def initiate_payment(args: InitiatePaymentArgs, ctx: ToolContext) -> ToolResult:
    method = args.paymentMethod
    amount = _decimal(args.totalAmount)
    if method is PaymentMethod.credit_card:
        fields = [
            {"id": "cardNumber", "type": "text", "label": "Card Number", "required": True},
            {"id": "expiryDate", "type": "text", "label": "Expiry Date (MM/YY)", "required": True},
            {"id": "cvv", "type": "text", "label": "CVV", "required": True},
            {"id": "nameOnCard", "type": "text", "label": "Name on Card", "required": True},
        ]
        submit_label = "Pay Now"
        message = f"Please enter your payment details to complete your booking for {format_cash(amount)}:"
    else:
        fields = [
            {"id": "privilegeClubId", "type": "text", "label": "Privilege Club ID", "required": True},
            {"id": "password", "type": "password", "label": "Password", "required": True},
        ]
        submit_label = "Login & Pay with Avios"
        message = "Please login to your Privilege Club account to pay with Avios:"

    data: dict[str, Any] = {
        "paymentInitialized": True,
        "paymentMethod": method.value,
        "totalAmount": as_number(amount),
    }
    if method is PaymentMethod.avios:
        data["aviosAmount"] = avios_required(amount, ctx.pricing.conversion_rate)

    return ToolResult(
        success=True,
        message=message,
        ui_component=UIComponent(
            type="form",
            data={"type": "payment", "fields": fields, "submitLabel": submit_label},
        ),
        data=data,
        selection_changes={"payment_method": method.value},
    )


def complete_booking(args: CompleteBookingArgs, ctx: ToolContext) -> ToolResult:
    payment = args.paymentData
    if not payment.confirmed:
        return _failure("The payment hasn't been confirmed yet, so the booking was not completed.")

    # A repeated completion keeps the reference already issued.
    new_pnr = ctx.record.selection.new_pnr or ctx.reference_generator([ctx.record.itinerary.pnr])
    method_label = "Credit Card" if payment.method == PaymentMethod.credit_card.value else "Avios"
    return ToolResult(
        success=True,
        message=(
            f"Congratulations! Your stopover booking is confirmed. Your new PNR is {new_pnr}. "
            "You'll receive a confirmation email shortly with all the details."
        ),
        ui_component=UIComponent(
            type="summary",
            data={
                "title": "Booking Confirmed!",
                "items": [
                    {"label": "New PNR", "value": new_pnr},
                    {"label": "Stopover Location", "value": STOPOVER_LOCATION},
                    {"label": "Payment Method", "value": method_label},
                    {"label": "Status", "value": "Confirmed"},
                ],
                "actions": [
                    {"type": "email", "label": "Email Confirmation", "primary": False},
                    {"type": "close", "label": "Close", "primary": True},
                ],
            },
        ),
        data={"bookingComplete": True, "newPNR": new_pnr, "originalPNR": ctx.record.itinerary.pnr},
        selection_changes={"new_pnr": new_pnr, "payment_method": payment.method},
    )


def _failure(message: str) -> ToolResult:
    return ToolResult(success=False, message=message, ui_component=UIComponent(type="error", data={"message": message}))


def _decimal(value: float | int) -> Decimal:
    return Decimal(str(value))


def _tour_selection(selected: SelectedTourArgs, tour: TourOption | None) -> TourSelection:
    if tour is not None:
        return TourSelection(selected.tourId, selected.tourName, selected.quantity, Decimal(tour.price))
    # Unknown tours keep the declared line total; the unit price is for display only.
    total = _decimal(selected.totalPrice)
    unit_price = (total / selected.quantity).quantize(CENT, rounding=ROUND_HALF_UP)
    return TourSelection(selected.tourId, selected.tourName, selected.quantity, unit_price, total_price=total)


def _category_payload(category: StopoverCategory) -> dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "starRating": category.star_rating,
        "pricePerNight": category.price_per_night,
        "amenities": list(category.amenities),
    }


def _hotel_payload(hotel: HotelOption) -> dict[str, Any]:
    return {
        "id": hotel.id,
        "name": hotel.name,
        "category": hotel.category,
        "starRating": hotel.star_rating,
        "pricePerNight": hotel.price_per_night,
        "amenities": list(hotel.amenities),
    }


def _tour_payload(tour: TourOption) -> dict[str, Any]:
    return {
        "id": tour.id,
        "name": tour.name,
        "description": tour.description,
        "duration": tour.duration,
        "price": tour.price,
        "highlights": list(tour.highlights),
        "maxParticipants": tour.max_participants,
    }


def _transfer_payload(transfer: TransferOption) -> dict[str, Any]:
    return {
        "id": transfer.id,
        "name": transfer.name,
        "description": transfer.description,
        "price": transfer.price,
    }
