from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from stopover_agent.application.utils.pricing import as_number
from stopover_agent.domain.entities.conversation_record import ConversationRecord


class ChatApiConfig(BaseModel):
    """HTTP-level switches for the chat route."""

    streaming_enabled: bool = True


class ErrorResponseSchema(BaseModel):
    error: str
    type: str | None = None
    retryable: bool | None = None
    details: list[dict[str, Any]] | None = None


class ToolSchema(BaseModel):
    name: str
    description: str
    step: str
    parameters: dict[str, Any]


class ToolCatalogSchema(BaseModel):
    tools: list[ToolSchema]


class TourSelectionSchema(BaseModel):
    tourId: str
    tourName: str
    quantity: int
    unitPrice: float | int
    totalPrice: float | int


class SelectionSchema(BaseModel):
    categoryId: str | None = None
    categoryName: str | None = None
    hotelId: str | None = None
    hotelName: str | None = None
    timing: str | None = None
    duration: int | None = None
    includeTransfers: bool = False
    selectedTours: list[TourSelectionSchema] = Field(default_factory=list)
    totalExtrasPrice: float | int | None = None
    paymentMethod: str | None = None
    newPnr: str | None = None


class MessageSchema(BaseModel):
    id: str
    role: str
    content: str
    timestamp: float
    toolInvocation: dict[str, Any] | None = None


class ConversationSchema(BaseModel):
    conversationId: str
    createdAt: float
    lastActivityAt: float
    entryPoint: str
    currentStep: str
    customer: dict[str, Any]
    booking: dict[str, Any]
    selection: SelectionSchema
    messages: list[MessageSchema]

    @classmethod
    def from_record(cls, record: ConversationRecord) -> "ConversationSchema":
        selection = record.selection
        return cls(
            conversationId=record.conversation_id,
            createdAt=record.created_at,
            lastActivityAt=record.last_activity_at,
            entryPoint=record.entry_point,
            currentStep=record.current_step.value,
            customer={
                "name": record.customer.name,
                "privilegeClubNumber": record.customer.loyalty_number,
                "email": record.customer.email,
            },
            booking={
                "pnr": record.itinerary.pnr,
                "route": {"origin": record.itinerary.origin, "destination": record.itinerary.destination},
                "passengers": record.itinerary.passengers,
            },
            selection=SelectionSchema(
                categoryId=selection.category_id,
                categoryName=selection.category_name,
                hotelId=selection.hotel_id,
                hotelName=selection.hotel_name,
                timing=selection.timing,
                duration=selection.duration,
                includeTransfers=selection.transfers_included,
                selectedTours=[
                    TourSelectionSchema(
                        tourId=t.tour_id,
                        tourName=t.tour_name,
                        quantity=t.quantity,
                        unitPrice=as_number(t.unit_price),
                        totalPrice=as_number(t.line_total),
                    )
                    for t in selection.tours
                ],
                totalExtrasPrice=(
                    as_number(selection.declared_extras_price)
                    if selection.declared_extras_price is not None
                    else None
                ),
                paymentMethod=selection.payment_method,
                newPnr=selection.new_pnr,
            ),
            messages=[
                MessageSchema(
                    id=m.id,
                    role=m.role,
                    content=m.content,
                    timestamp=m.timestamp,
                    toolInvocation=m.tool_invocation,
                )
                for m in record.messages
            ],
        )
