from __future__ import annotations

import asyncio

from stopover_agent.application.exceptions import ErrorKind, LLMContractError, LLMUpstreamError

_MESSAGE_HINTS: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.context_length, ("context length", "context_length", "maximum context", "too many tokens")),
    (ErrorKind.rate_limit, ("rate limit", "rate_limit", "too many requests", "429")),
    (ErrorKind.authentication, ("authentication", "unauthorized", "invalid api key", "401")),
    (ErrorKind.timeout, ("timed out", "timeout")),
    (ErrorKind.network, ("connection", "network", "unreachable")),
)


def classify_error(error: BaseException) -> ErrorKind:
    """Map any failure from a model attempt to an ErrorKind."""
    if isinstance(error, LLMUpstreamError):
        return error.kind
    if isinstance(error, LLMContractError):
        return ErrorKind.unknown
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.timeout
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorKind.network

    text = str(error).lower()
    for kind, hints in _MESSAGE_HINTS:
        if any(hint in text for hint in hints):
            return kind
    return ErrorKind.unknown
