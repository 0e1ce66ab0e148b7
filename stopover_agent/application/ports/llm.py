from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ToolCallRequest:
    id: str
    name: str
    arguments: str  # raw JSON text as produced by the model


LLMEvent = TextDelta | ToolCallRequest


class LLMPort(ABC):
    @abstractmethod
    def stream_chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        system_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> AsyncIterator[LLMEvent]:
        """
        Stream one model response.

        Requirements:
        - Yield TextDelta chunks in arrival order
        - Yield each ToolCallRequest once, complete, after its arguments are fully received
        - Raise LLMUpstreamError (with an ErrorKind) for provider failures
        - Release the upstream connection when the consumer stops iterating

        Args:
            model: Provider model identifier
            messages: Chat history in chat-completions format, without the system prompt
            tools: Tool definitions in chat-completions "function" format
            system_prompt: Instructions prepended as the system message
            max_tokens: Upper bound on generated tokens
            temperature: Sampling temperature
        """
        raise NotImplementedError
