from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator

from stopover_agent.application.exceptions import ErrorKind, ModelChainError
from stopover_agent.application.ports.llm import LLMEvent, LLMPort
from stopover_agent.application.utils.error_classifier import classify_error

_DONE = object()


@dataclass(frozen=True)
class ModelChainConfig:
    models: tuple[str, ...]
    max_tokens: int = 4096
    temperature: float = 0.7
    attempt_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class ModelAttempt:
    model: str
    index: int
    error_kind: ErrorKind | None = None


class ModelFallbackController:
    """
    Runs one model request against an ordered chain of models.

    Attempts are strictly sequential. A retryable failure moves on to the next
    model with the same request, so there are at most len(models) attempts.
    Non-retryable failures (context length, authentication, configuration)
    stop immediately. An `unknown` failure is retried once only.

    Events are forwarded as soon as they arrive. Once an attempt has forwarded
    anything, a later failure of that attempt cannot be replayed on another
    model and is surfaced as-is.
    """

    def __init__(self, llm: LLMPort, config: ModelChainConfig) -> None:
        if not config.models:
            raise ValueError("Model chain needs at least one model.")
        self._llm = llm
        self._config = config
        self._logger = logging.getLogger(__name__)

    @property
    def models(self) -> tuple[str, ...]:
        return self._config.models

    async def invoke(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        system_prompt: str,
    ) -> AsyncIterator[LLMEvent]:
        attempts: list[ModelAttempt] = []
        unknown_retried = False
        last_kind = ErrorKind.unknown
        last_error: Exception | None = None

        for index, model in enumerate(self._config.models):
            stream = self._llm.stream_chat(
                model=model,
                messages=messages,
                tools=tools,
                system_prompt=system_prompt,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
            )
            forwarded = False
            try:
                while True:
                    event = await asyncio.wait_for(_next_event(stream), self._config.attempt_timeout_seconds)
                    if event is _DONE:
                        break
                    forwarded = True
                    yield event
                if index > 0:
                    self._logger.info("Served by fallback model", extra={"model": model, "attempt": index + 1})
                return
            except Exception as e:
                kind = classify_error(e)
                attempts.append(ModelAttempt(model=model, index=index, error_kind=kind))
                last_kind, last_error = kind, e
                self._log_failure(model, index, kind, e)

                if forwarded or not kind.retryable:
                    raise ModelChainError(kind, f"{kind.value}: {e}", attempts=len(attempts), models=[a.model for a in attempts]) from e
                if kind is ErrorKind.unknown:
                    if unknown_retried:
                        raise ModelChainError(kind, f"{kind.value}: {e}", attempts=len(attempts), models=[a.model for a in attempts]) from e
                    unknown_retried = True
            finally:
                await stream.aclose()

        raise ModelChainError(
            last_kind,
            f"All {len(attempts)} model attempts failed; last error {last_kind.value}: {last_error}",
            attempts=len(attempts),
            models=[a.model for a in attempts],
        ) from last_error

    def _log_failure(self, model: str, index: int, kind: ErrorKind, error: Exception) -> None:
        extra = {"model": model, "attempt": index + 1, "error_kind": kind.value, "reason": str(error)}
        if kind in {ErrorKind.authentication, ErrorKind.configuration}:
            self._logger.error("LLM configuration failure", extra=extra)
        elif kind.retryable and index + 1 < len(self._config.models):
            self._logger.warning("LLM attempt failed, falling back", extra=extra)
        else:
            self._logger.warning("LLM attempt failed", extra=extra)


async def _next_event(stream: AsyncIterator[LLMEvent]) -> Any:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return _DONE
