"""
Tests for the HTTP surface: /api/chat, /api/tools, /api/conversations and /health.
"""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from stopover_agent.api.schemas import ChatApiConfig
from stopover_agent.application.exceptions import ErrorKind, LLMUpstreamError
from stopover_agent.application.ports.llm import TextDelta, ToolCallRequest
from stopover_agent.main import app
from stopover_agent.wiring.dependencies import get_chat_api_config, get_chat_use_case


@pytest.fixture
def client_for(build_use_case):
    def _client(llm, **kwargs):
        use_case, store = build_use_case(llm, **kwargs)
        app.dependency_overrides[get_chat_use_case] = lambda: use_case
        return TestClient(app), store

    yield _client
    app.dependency_overrides.clear()


def _parse_stream(body: str) -> list[tuple[str, object]]:
    parts = []
    for line in body.splitlines():
        code, _, payload = line.partition(":")
        parts.append((code, json.loads(payload)))
    return parts


def _chat_body(text: str = "Hi", **extra) -> dict:
    return {
        "messages": [{"role": "user", "content": text}],
        "conversationContext": {
            "customer": {"name": "Sarah", "privilegeClubNumber": "QR123456"},
            "booking": {"pnr": "X4HG8", "route": {"origin": "LHR", "destination": "BKK"}, "passengers": 2},
            "entryPoint": "email",
        },
        **extra,
    }


def test_health():
    assert TestClient(app).get("/health").json() == {"status": "ok"}


def test_messages_must_be_a_list(client_for, scripted_llm):
    llm = scripted_llm([])
    client, _ = client_for(llm)

    response = client.post("/api/chat", json={"messages": "hello"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid messages format"}
    assert llm.calls == []


def test_malformed_message_entries_are_rejected(client_for, scripted_llm):
    llm = scripted_llm([])
    client, _ = client_for(llm)

    response = client.post("/api/chat", json={"messages": [{"role": "robot", "content": 42}]})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid messages format"
    assert {tuple(d["loc"]) for d in body["details"]} == {("messages", 0, "role"), ("messages", 0, "content")}
    assert llm.calls == []


def test_invalid_json_body(client_for, scripted_llm):
    client, _ = client_for(scripted_llm([]))

    response = client.post("/api/chat", content=b"{oops", headers={"Content-Type": "application/json"})

    assert response.status_code == 400


@pytest.mark.parametrize("conversation_id", ["conv/1", "../escape", "conv 1", ""])
def test_conversation_id_must_be_file_name_safe(client_for, scripted_llm, conversation_id):
    llm = scripted_llm([])
    client, store = client_for(llm)

    response = client.post("/api/chat", json=_chat_body(conversationId=conversation_id))

    assert response.status_code == 400
    assert response.json()["details"][0]["loc"] == ["conversationId"]
    assert llm.calls == []
    assert store.get(conversation_id) is None


def test_chat_streams_text_and_tool_parts(client_for, scripted_llm):
    llm = scripted_llm(
        [
            [TextDelta("Let me show you. "), ToolCallRequest(id="call_1", name="showCategories", arguments="{}")],
            [TextDelta("Which one do you like?")],
        ]
    )
    client, store = client_for(llm)

    response = client.post("/api/chat", json=_chat_body(conversationId="conv-api"))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["X-Conversation-Id"] == "conv-api"
    parts = _parse_stream(response.text)
    assert [code for code, _ in parts] == ["0", "9", "a", "0", "d"]
    assert parts[2][1]["result"]["uiComponent"]["type"] == "stopover-categories"
    assert parts[-1][1]["currentStep"] == "categories-shown"
    assert store.get("conv-api").current_step.value == "categories-shown"


def test_context_length_returns_413_without_retry(client_for, scripted_llm):
    llm = scripted_llm([[LLMUpstreamError("context too long", kind=ErrorKind.context_length)], [TextDelta("never")]])
    client, store = client_for(llm)

    response = client.post("/api/chat", json=_chat_body(conversationId="conv-long"))

    assert response.status_code == 413
    assert response.json() == {
        "error": "Conversation too long. Please start a new conversation.",
        "type": "context-length",
        "retryable": False,
    }
    assert len(llm.calls) == 1
    assert store.get("conv-long").messages == ()


@pytest.mark.parametrize(
    "kind, status, retryable",
    [
        (ErrorKind.rate_limit, 429, True),
        (ErrorKind.authentication, 401, False),
        (ErrorKind.configuration, 500, False),
        (ErrorKind.timeout, 500, True),
    ],
)
def test_chain_failures_map_to_status_codes(client_for, scripted_llm, kind, status, retryable):
    llm = scripted_llm([[LLMUpstreamError("failed", kind=kind)] for _ in range(2)])
    client, _ = client_for(llm)

    response = client.post("/api/chat", json=_chat_body())

    assert response.status_code == status
    assert response.json()["type"] == kind.value
    assert response.json()["retryable"] is retryable


def test_failure_after_streaming_starts_is_an_error_part(client_for, scripted_llm):
    llm = scripted_llm(
        [
            [ToolCallRequest(id="call_1", name="showCategories", arguments="{}")],
            [LLMUpstreamError("context too long", kind=ErrorKind.context_length)],
        ]
    )
    client, store = client_for(llm)

    response = client.post("/api/chat", json=_chat_body(conversationId="conv-mid"))

    assert response.status_code == 200
    parts = _parse_stream(response.text)
    assert [code for code, _ in parts] == ["9", "a", "3"]
    assert parts[-1][1] == "Conversation too long. Please start a new conversation."
    assert store.get("conv-mid").current_step.value == "categories-shown"


def test_tool_catalog():
    response = TestClient(app).get("/api/tools")

    assert response.status_code == 200
    tools = {t["name"]: t for t in response.json()["tools"]}
    assert list(tools) == [
        "showCategories",
        "selectCategory",
        "selectHotel",
        "selectTimingAndDuration",
        "selectExtras",
        "initiatePayment",
        "completeBooking",
    ]
    timing = tools["selectTimingAndDuration"]["parameters"]
    assert timing["properties"]["timing"]["enum"] == ["outbound", "return"]
    assert set(timing["required"]) == {"timing", "duration"}
    assert tools["completeBooking"]["step"] == "booking-complete"


def test_conversation_snapshot(client_for, scripted_llm):
    llm = scripted_llm(
        [[ToolCallRequest(id="call_1", name="selectCategory", arguments='{"categoryId": "premium", "categoryName": "Premium"}')]]
    )
    client, _ = client_for(llm, max_tool_rounds=1)

    assert client.get("/api/conversations/conv-snap").status_code == 404

    client.post("/api/chat", json=_chat_body(conversationId="conv-snap"))
    response = client.get("/api/conversations/conv-snap")

    assert response.status_code == 200
    body = response.json()
    assert body["currentStep"] == "category-selected"
    assert body["selection"]["categoryId"] == "premium"
    assert body["customer"]["privilegeClubNumber"] == "QR123456"
    assert [m["role"] for m in body["messages"]] == ["user", "tool"]


def test_buffered_mode_returns_the_same_parts_in_one_body(client_for, scripted_llm):
    llm = scripted_llm(
        [
            [TextDelta("Let me show you. "), ToolCallRequest(id="call_1", name="showCategories", arguments="{}")],
            [TextDelta("Which one do you like?")],
        ]
    )
    client, _ = client_for(llm)
    app.dependency_overrides[get_chat_api_config] = lambda: ChatApiConfig(streaming_enabled=False)

    response = client.post("/api/chat", json=_chat_body(conversationId="conv-buffered"))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["content-length"] == str(len(response.content))
    assert response.headers["X-Conversation-Id"] == "conv-buffered"
    parts = _parse_stream(response.text)
    assert [code for code, _ in parts] == ["0", "9", "a", "0", "d"]
    assert parts[-1][1]["currentStep"] == "categories-shown"
