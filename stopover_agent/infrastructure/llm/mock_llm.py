from __future__ import annotations

import json
from typing import Any, AsyncIterator

from stopover_agent.application.ports.llm import LLMEvent, LLMPort, TextDelta, ToolCallRequest

_SAMPLE_ARGUMENTS: dict[str, dict[str, Any]] = {
    "showCategories": {},
    "selectCategory": {"categoryId": "premium", "categoryName": "Premium"},
    "selectHotel": {"hotelId": "millennium-doha", "hotelName": "Millennium Hotel Doha"},
    "selectTimingAndDuration": {"timing": "outbound", "duration": 2},
    "selectExtras": {
        "includeTransfers": True,
        "selectedTours": [
            {"tourId": "whale-sharks-qatar", "tourName": "Whale Sharks of Qatar", "quantity": 2, "totalPrice": 390}
        ],
        "totalExtrasPrice": 450,
    },
    "initiatePayment": {"paymentMethod": "credit-card", "totalAmount": 865},
    "completeBooking": {"paymentData": {"method": "credit-card", "confirmed": True}},
}


class MockLLM(LLMPort):
    """Offline stand-in: advances the booking one step per user message."""

    async def stream_chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        system_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> AsyncIterator[LLMEvent]:
        last_role = messages[-1]["role"] if messages else "user"
        if last_role == "tool":
            for word in "Let me know how you'd like to continue.".split(" "):
                yield TextDelta(text=word + " ")
            return

        names = [t["function"]["name"] for t in tools]
        if not names:
            yield TextDelta(text="Your stopover is all set. Is there anything else I can help with?")
            return

        name = names[-1]
        yield TextDelta(text="Sure! ")
        yield ToolCallRequest(
            id=f"mock_{name}_{len(messages)}",
            name=name,
            arguments=json.dumps(_SAMPLE_ARGUMENTS.get(name, {})),
        )
