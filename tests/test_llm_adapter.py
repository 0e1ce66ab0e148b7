"""
Tests for provider error translation and classification.
"""

from __future__ import annotations

import asyncio

import httpx
import openai
import pytest

from stopover_agent.application.exceptions import ErrorKind, LLMContractError, LLMUpstreamError
from stopover_agent.application.utils.error_classifier import classify_error
from stopover_agent.infrastructure.llm.openrouter_llm import OpenRouterLLM, _drain, _translate

REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _status_error(cls, status: int, message: str = "failed"):
    return cls(message, response=httpx.Response(status, request=REQUEST), body=None)


def test_missing_key_is_a_configuration_error():
    llm = OpenRouterLLM(api_key=None)

    async def run() -> None:
        stream = llm.stream_chat(
            model="google/gemini-2.5-flash",
            messages=[{"role": "user", "content": "hi"}],
            tools=[],
            system_prompt="sys",
            max_tokens=10,
            temperature=0.7,
        )
        await stream.__anext__()

    with pytest.raises(LLMUpstreamError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.kind is ErrorKind.configuration


@pytest.mark.parametrize(
    "error, kind",
    [
        (_status_error(openai.RateLimitError, 429), ErrorKind.rate_limit),
        (_status_error(openai.AuthenticationError, 401), ErrorKind.authentication),
        (_status_error(openai.APIStatusError, 413), ErrorKind.context_length),
        (
            _status_error(openai.BadRequestError, 400, "This model's maximum context length is 8192 tokens"),
            ErrorKind.context_length,
        ),
        (openai.APITimeoutError(request=REQUEST), ErrorKind.timeout),
        (openai.APIConnectionError(request=REQUEST), ErrorKind.network),
        (_status_error(openai.InternalServerError, 500, "upstream exploded"), ErrorKind.unknown),
    ],
)
def test_openai_errors_are_translated(error, kind):
    translated = _translate(error)

    assert isinstance(translated, LLMUpstreamError)
    assert translated.kind is kind


def test_classifier_handles_plain_exceptions():
    assert classify_error(asyncio.TimeoutError()) is ErrorKind.timeout
    assert classify_error(TimeoutError()) is ErrorKind.timeout
    assert classify_error(ConnectionResetError()) is ErrorKind.network
    assert classify_error(RuntimeError("429 Too Many Requests")) is ErrorKind.rate_limit
    assert classify_error(RuntimeError("something odd")) is ErrorKind.unknown
    assert classify_error(LLMUpstreamError("x", kind=ErrorKind.authentication)) is ErrorKind.authentication


def test_streamed_tool_calls_are_assembled_in_index_order():
    pending = {
        1: {"id": "", "name": "selectHotel", "arguments": '{"hotelId": "millennium"}'},
        0: {"id": "call_a", "name": "selectCategory", "arguments": '{"categoryId": "standard"}'},
    }

    calls = _drain(pending)

    assert [(c.id, c.name) for c in calls] == [("call_a", "selectCategory"), ("call_1", "selectHotel")]
    assert pending == {}


def test_tool_call_without_a_name_breaks_the_adapter_contract():
    pending = {0: {"id": "call_a", "name": "", "arguments": "{}"}}

    with pytest.raises(LLMContractError):
        _drain(pending)


def test_contract_errors_classify_as_unknown():
    # The message mentions a connection, but contract errors never take a message-based kind.
    error = LLMContractError("tool call arrived without a name over the connection")

    assert classify_error(error) is ErrorKind.unknown
