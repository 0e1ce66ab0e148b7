from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from stopover_agent.domain.entities.booking_step import BookingStep
from stopover_agent.domain.entities.conversation_record import CustomerInfo, ItineraryInfo


class Role(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"


class EntryPoint(str, Enum):
    email = "email"
    mmb = "mmb"


class ChatMessageDTO(BaseModel):
    role: Role
    content: str = Field(strict=True)


class CustomerDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    privilegeClubNumber: str | None = None
    email: str | None = None


class RouteDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    origin: str | None = None
    destination: str | None = None


class BookingDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    pnr: str | None = None
    route: RouteDTO | None = None
    passengers: int | None = Field(default=None, ge=1)


class ConversationContextDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    customer: CustomerDTO | None = None
    booking: BookingDTO | None = None
    entryPoint: EntryPoint | None = None
    currentStep: str | None = None


class ChatRequestDTO(BaseModel):
    messages: list[ChatMessageDTO] = Field(min_length=1)
    conversationContext: ConversationContextDTO = Field(default_factory=ConversationContextDTO)
    conversationId: str | None = Field(default=None, min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_.-]+$")

    def to_customer(self) -> CustomerInfo:
        customer = self.conversationContext.customer or CustomerDTO()
        return CustomerInfo(
            name=(customer.name or "").strip() or CustomerInfo.name,
            loyalty_number=customer.privilegeClubNumber,
            email=customer.email,
        )

    def to_itinerary(self, default: ItineraryInfo) -> ItineraryInfo:
        booking = self.conversationContext.booking or BookingDTO()
        route = booking.route or RouteDTO()
        return ItineraryInfo(
            pnr=(booking.pnr or "").strip().upper() or default.pnr,
            origin=route.origin or default.origin,
            destination=route.destination or default.destination,
            passengers=booking.passengers or default.passengers,
        )

    def entry_point(self) -> str | None:
        entry = self.conversationContext.entryPoint
        return entry.value if entry else None

    def current_step(self) -> BookingStep | None:
        return BookingStep.parse(self.conversationContext.currentStep)

    def model_messages(self) -> list[dict[str, str]]:
        """Client transcript in chat-completions format; system entries are dropped."""
        return [
            {"role": m.role.value, "content": m.content}
            for m in self.messages
            if m.role is not Role.system
        ]

    def latest_user_text(self) -> str | None:
        for m in reversed(self.messages):
            if m.role is Role.user:
                return m.content
        return None
