from __future__ import annotations

import logging
from typing import Any, AsyncIterator

import httpx
import openai
from openai import AsyncOpenAI

from stopover_agent.application.exceptions import ErrorKind, LLMContractError, LLMUpstreamError
from stopover_agent.application.ports.llm import LLMEvent, LLMPort, TextDelta, ToolCallRequest
from stopover_agent.application.utils.error_classifier import classify_error


class OpenRouterLLM(LLMPort):
    """
    OpenAI-compatible streaming adapter (OpenRouter by default) implementing LLMPort.

    Contract guarantees:
    - text deltas are yielded as they arrive
    - tool calls are assembled from streamed fragments and yielded whole
    - Raises:
        LLMUpstreamError: provider failures, with an ErrorKind classification
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self.client: AsyncOpenAI | None = None
        if api_key and api_key.strip():
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=httpx.Timeout(timeout_seconds, connect=10.0),
                max_retries=0,  # retries are owned by the fallback controller
            )

    async def stream_chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        system_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> AsyncIterator[LLMEvent]:
        if self.client is None:
            raise LLMUpstreamError("OPENROUTER_API_KEY not configured.", kind=ErrorKind.configuration)

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stream": True,
        }
        if tools:
            kwargs["tools"] = tools

        try:
            stream = await self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise _translate(e) from e

        pending: dict[int, dict[str, str]] = {}
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta
                if delta is not None and delta.content:
                    yield TextDelta(text=delta.content)
                for fragment in (delta.tool_calls if delta is not None else None) or []:
                    slot = pending.setdefault(fragment.index, {"id": "", "name": "", "arguments": ""})
                    if fragment.id:
                        slot["id"] = fragment.id
                    if fragment.function is not None:
                        slot["name"] += fragment.function.name or ""
                        slot["arguments"] += fragment.function.arguments or ""
                if choice.finish_reason and pending:
                    for call in _drain(pending):
                        yield call
            for call in _drain(pending):
                yield call
        except openai.OpenAIError as e:
            raise _translate(e) from e
        finally:
            await stream.close()


def _drain(pending: dict[int, dict[str, str]]) -> list[ToolCallRequest]:
    for index, slot in pending.items():
        if not slot["name"]:
            raise LLMContractError(f"Streamed tool call {index} has no function name")
    calls = [
        ToolCallRequest(id=slot["id"] or f"call_{index}", name=slot["name"], arguments=slot["arguments"])
        for index, slot in sorted(pending.items())
    ]
    pending.clear()
    return calls


def _translate(error: openai.OpenAIError) -> LLMUpstreamError:
    if isinstance(error, openai.RateLimitError):
        kind = ErrorKind.rate_limit
    elif isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        kind = ErrorKind.authentication
    elif isinstance(error, openai.APITimeoutError):
        kind = ErrorKind.timeout
    elif isinstance(error, openai.APIConnectionError):
        kind = ErrorKind.network
    elif isinstance(error, openai.APIStatusError) and error.status_code == 413:
        kind = ErrorKind.context_length
    else:
        kind = classify_error(error)
    return LLMUpstreamError(f"OpenRouter API error: {error}", kind=kind)
