from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Timing(str, Enum):
    outbound = "outbound"
    return_ = "return"


class PaymentMethod(str, Enum):
    credit_card = "credit-card"
    avios = "avios"


# Primitive fields are strict: "2" is not accepted for an int, nor 1 for a bool.
class ToolArguments(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ShowCategoriesArgs(ToolArguments):
    pass


class SelectCategoryArgs(ToolArguments):
    categoryId: str = Field(strict=True, min_length=1, description="The ID of the selected stopover category")
    categoryName: str = Field(strict=True, min_length=1, description="The name of the selected category")


class SelectHotelArgs(ToolArguments):
    hotelId: str = Field(strict=True, min_length=1, description="The ID of the selected hotel")
    hotelName: str = Field(strict=True, min_length=1, description="The name of the selected hotel")


class SelectTimingAndDurationArgs(ToolArguments):
    timing: Timing = Field(description="Whether stopover is on outbound or return journey")
    duration: int = Field(strict=True, ge=1, le=4, description="Number of nights for the stopover")


class SelectedTourArgs(ToolArguments):
    tourId: str = Field(strict=True, min_length=1)
    tourName: str = Field(strict=True)
    quantity: int = Field(strict=True, ge=0)
    totalPrice: float = Field(strict=True, ge=0)


class SelectExtrasArgs(ToolArguments):
    includeTransfers: bool = Field(strict=True, description="Whether to include airport transfers")
    selectedTours: list[SelectedTourArgs] = Field(description="Array of selected tours with quantities")
    totalExtrasPrice: float = Field(strict=True, ge=0, description="Total price of all selected extras")


class InitiatePaymentArgs(ToolArguments):
    paymentMethod: PaymentMethod = Field(description="Selected payment method")
    totalAmount: float = Field(strict=True, ge=0, description="Total amount to be paid")


class PaymentData(ToolArguments):
    method: str = Field(strict=True, min_length=1)
    confirmed: bool = Field(strict=True)


class CompleteBookingArgs(ToolArguments):
    paymentData: PaymentData = Field(description="Payment confirmation data")
