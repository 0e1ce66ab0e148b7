"""
Tests for a chat turn: tool execution, persistence and failure handling.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from stopover_agent.application.dto.chat_request import ChatRequestDTO
from stopover_agent.application.exceptions import ErrorKind, LLMUpstreamError, ModelChainError
from stopover_agent.application.ports.llm import TextDelta, ToolCallRequest
from stopover_agent.application.utils.pricing import compute_pricing
from stopover_agent.domain.entities.booking_step import BookingStep
from stopover_agent.infrastructure.llm.mock_llm import MockLLM


def _request(text: str, conversation_id: str = "conv-1", **context) -> ChatRequestDTO:
    return ChatRequestDTO.model_validate(
        {
            "messages": [{"role": "user", "content": text}],
            "conversationId": conversation_id,
            "conversationContext": context,
        }
    )


def _run(use_case, request: ChatRequestDTO) -> list:
    async def run() -> list:
        record = use_case.open_conversation(request)
        return [p async for p in use_case.run_turn(record.conversation_id, request)]

    return asyncio.run(run())


def _call(name: str, arguments: dict, call_id: str = "call_1") -> ToolCallRequest:
    return ToolCallRequest(id=call_id, name=name, arguments=json.dumps(arguments))


SELECT_PREMIUM = {"categoryId": "premium", "categoryName": "Premium"}


def test_full_booking_with_mock_model(build_use_case):
    """Each user message advances one step; the package ends confirmed with a new PNR."""
    use_case, store = build_use_case(MockLLM())

    for _ in range(7):
        parts = _run(use_case, _request("continue"))
        assert parts[-1].code == "d"

    record = store.get("conv-1")
    assert record.current_step is BookingStep.booking_complete
    assert record.selection.category_id == "premium"
    assert record.selection.duration == 2
    assert record.selection.new_pnr and record.selection.new_pnr != "X4HG8"

    pricing = compute_pricing(
        record.selection,
        rate_per_night=150,
        flight_fare_difference=115,
        transfer_price=60,
        conversion_rate=125,
    )
    assert pricing.total_cash_price == 865
    assert pricing.total_avios_price == 108125

    parts = _run(use_case, _request("thanks"))
    assert [p.code for p in parts] == ["0", "d"]
    assert parts[-1].value["currentStep"] == "booking-complete"


def test_stream_parts_and_persisted_trace(build_use_case, scripted_llm):
    llm = scripted_llm(
        [
            [TextDelta("Here you go. "), _call("showCategories", {})],
            [TextDelta("Pick one!")],
        ]
    )
    use_case, store = build_use_case(llm)

    parts = _run(use_case, _request("Show me stopovers"))

    assert [p.code for p in parts] == ["0", "9", "a", "0", "d"]
    assert parts[1].value == {"toolCallId": "call_1", "toolName": "showCategories", "args": {}}
    assert parts[2].value["result"]["uiComponent"]["type"] == "stopover-categories"
    assert parts[-1].value == {
        "finishReason": "stop",
        "conversationId": "conv-1",
        "currentStep": "categories-shown",
    }

    record = store.get("conv-1")
    assert [m.role for m in record.messages] == ["user", "tool", "assistant", "assistant"]
    tool_message = record.messages[1]
    assert tool_message.tool_invocation["toolName"] == "showCategories"
    assert tool_message.tool_invocation["result"]["success"] is True


def test_tools_and_prompt_follow_the_current_step(build_use_case, scripted_llm):
    llm = scripted_llm([[TextDelta("Which hotel?")]])
    use_case, _ = build_use_case(llm)

    _run(use_case, _request("hi", currentStep="category-selected", customer={"name": "Sarah"}))

    call = llm.calls[0]
    assert call["tools"] == ["selectCategory", "selectHotel"]
    assert "Sarah" in call["system_prompt"]
    assert "selectHotel" in call["system_prompt"]
    assert call["messages"] == [{"role": "user", "content": "hi"}]


def test_tool_results_are_fed_back_to_the_model(build_use_case, scripted_llm):
    llm = scripted_llm([[_call("selectCategory", SELECT_PREMIUM, "call_cat")], [TextDelta("Great.")]])
    use_case, _ = build_use_case(llm)

    _run(use_case, _request("Premium please", currentStep="categories-shown"))

    second = llm.calls[1]
    assistant, tool = second["messages"][-2:]
    assert assistant["role"] == "assistant"
    assert assistant["tool_calls"][0]["function"]["name"] == "selectCategory"
    assert tool["role"] == "tool"
    assert tool["tool_call_id"] == "call_cat"
    assert json.loads(tool["content"])["success"] is True
    assert second["tools"] == ["selectCategory", "selectHotel"]


def test_repeated_category_selection_is_idempotent(build_use_case, scripted_llm):
    llm = scripted_llm([[_call("selectCategory", SELECT_PREMIUM)]] * 2)
    use_case, store = build_use_case(llm, max_tool_rounds=1)

    _run(use_case, _request("Premium", currentStep="categories-shown"))
    after_first = store.get("conv-1")
    _run(use_case, _request("Premium again"))
    after_second = store.get("conv-1")

    assert after_second.selection == after_first.selection
    assert after_second.current_step is BookingStep.category_selected
    assert [m.role for m in after_second.messages] == ["user", "tool", "user", "tool"]


def test_latest_category_selection_wins(build_use_case, scripted_llm):
    llm = scripted_llm(
        [
            [_call("selectCategory", SELECT_PREMIUM)],
            [_call("selectCategory", {"categoryId": "luxury", "categoryName": "Luxury"})],
        ]
    )
    use_case, store = build_use_case(llm, max_tool_rounds=1)

    _run(use_case, _request("Premium", currentStep="categories-shown"))
    _run(use_case, _request("No, luxury"))

    record = store.get("conv-1")
    assert record.selection.category_id == "luxury"
    assert record.selection.category_name == "Luxury"
    assert record.current_step is BookingStep.category_selected
    assert [m.role for m in record.messages] == ["user", "tool", "user", "tool"]


def test_reselection_moves_back_to_that_step(build_use_case, scripted_llm):
    llm = scripted_llm([[_call("selectCategory", {"categoryId": "luxury", "categoryName": "Luxury"})]])
    use_case, store = build_use_case(llm, max_tool_rounds=1)
    store.init("conv-1", current_step=BookingStep.timing_selected)
    store.update("conv-1", selection_changes={"category_id": "premium", "duration": 2})

    _run(use_case, _request("Actually, luxury"))

    record = store.get("conv-1")
    assert record.current_step is BookingStep.category_selected
    assert record.selection.category_id == "luxury"
    assert record.selection.duration == 2


def test_invalid_arguments_leave_selection_unchanged(build_use_case, scripted_llm):
    llm = scripted_llm([[_call("selectTimingAndDuration", {"timing": "outbound", "duration": 5})]])
    use_case, store = build_use_case(llm, max_tool_rounds=1)

    parts = _run(use_case, _request("5 nights", currentStep="hotel-selected"))

    result = parts[1].value["result"]
    assert result["success"] is False
    assert result["uiComponent"]["type"] == "validation-error"
    assert result["errors"][0]["field"] == "duration"

    record = store.get("conv-1")
    assert record.current_step is BookingStep.hotel_selected
    assert record.selection.duration is None
    assert record.messages[-1].tool_invocation["result"]["success"] is False


def test_known_tool_outside_its_step_still_runs(build_use_case, scripted_llm):
    llm = scripted_llm([[_call("selectCategory", SELECT_PREMIUM)]])
    use_case, store = build_use_case(llm, max_tool_rounds=1)

    _run(use_case, _request("Premium straight away"))

    assert llm.calls[0]["tools"] == ["showCategories"]
    assert store.get("conv-1").current_step is BookingStep.category_selected


def test_model_failure_leaves_state_untouched(build_use_case, scripted_llm):
    llm = scripted_llm(
        [
            [_call("selectCategory", SELECT_PREMIUM)],
            [LLMUpstreamError("rate limited", kind=ErrorKind.rate_limit)],
            [LLMUpstreamError("rate limited", kind=ErrorKind.rate_limit)],
        ]
    )
    use_case, store = build_use_case(llm, max_tool_rounds=1)
    _run(use_case, _request("Premium", currentStep="categories-shown"))
    before = store.get("conv-1")

    with pytest.raises(ModelChainError) as exc_info:
        _run(use_case, _request("And now the hotel"))

    assert exc_info.value.kind is ErrorKind.rate_limit
    assert store.get("conv-1") == before


def test_completed_tools_survive_a_later_model_failure(build_use_case, scripted_llm):
    llm = scripted_llm(
        [
            [_call("selectCategory", SELECT_PREMIUM)],
            [LLMUpstreamError("too long", kind=ErrorKind.context_length)],
        ]
    )
    use_case, store = build_use_case(llm)
    received = []

    async def run() -> None:
        request = _request("Premium", currentStep="categories-shown")
        record = use_case.open_conversation(request)
        async for part in use_case.run_turn(record.conversation_id, request):
            received.append(part)

    with pytest.raises(ModelChainError):
        asyncio.run(run())

    assert [p.code for p in received] == ["9", "a"]
    record = store.get("conv-1")
    assert record.current_step is BookingStep.category_selected
    assert [m.role for m in record.messages] == ["user", "tool"]


def test_new_conversation_is_seeded_from_context(build_use_case, scripted_llm):
    llm = scripted_llm([[TextDelta("Welcome!")]])
    use_case, store = build_use_case(llm, id_factory=lambda: "generated-id")
    request = ChatRequestDTO.model_validate(
        {
            "messages": [
                {"role": "system", "content": "ignored"},
                {"role": "user", "content": "Hello"},
            ],
            "conversationContext": {
                "customer": {"name": "Sarah", "privilegeClubNumber": "QR123456"},
                "booking": {"pnr": "ab12c", "route": {"origin": "LHR", "destination": "SYD"}, "passengers": 1},
                "entryPoint": "mmb",
            },
        }
    )

    parts = _run(use_case, request)

    record = store.get("generated-id")
    assert parts[-1].value["conversationId"] == "generated-id"
    assert record.customer.loyalty_number == "QR123456"
    assert record.itinerary.pnr == "AB12C"
    assert record.itinerary.destination == "SYD"
    assert record.entry_point == "mmb"
    assert llm.calls[0]["messages"] == [{"role": "user", "content": "Hello"}]


class _HangingLLM:
    """Yields one chunk, then waits forever; records when its stream is released."""

    def __init__(self) -> None:
        self.released = False

    async def stream_chat(self, model, messages, tools, system_prompt, max_tokens, temperature):
        try:
            yield TextDelta("hello")
            await asyncio.sleep(60)
        finally:
            self.released = True


def test_closing_the_turn_releases_the_model_stream(build_use_case):
    llm = _HangingLLM()
    use_case, _ = build_use_case(llm, timeout=120.0)
    released_at_close = []

    async def run() -> None:
        request = _request("hi")
        record = use_case.open_conversation(request)
        parts = use_case.run_turn(record.conversation_id, request)
        first = await parts.__anext__()
        assert first.value == "hello"
        assert llm.released is False
        await parts.aclose()
        released_at_close.append(llm.released)

    asyncio.run(run())

    assert released_at_close == [True]
