from __future__ import annotations

from typing import Any, AsyncIterator

import pytest

from stopover_agent.application.ports.llm import LLMEvent, LLMPort
from stopover_agent.application.use_cases.handle_chat_turn import HandleChatTurnUseCase, OrchestratorConfig
from stopover_agent.application.use_cases.model_fallback import ModelChainConfig, ModelFallbackController
from stopover_agent.domain.entities.pricing import PricingConfig
from stopover_agent.infrastructure.knowledge.catalog_store import StaticCatalogStore
from stopover_agent.infrastructure.store.memory_store import MemoryConversationStore


class ScriptedLLM(LLMPort):
    """
    Replays one script per stream_chat call.

    A script is a list of events; an exception instance in the list is raised
    at that point of the stream.
    """

    def __init__(self, scripts: list[list[Any]]) -> None:
        self._scripts = list(scripts)
        self.calls: list[dict[str, Any]] = []

    async def stream_chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        system_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> AsyncIterator[LLMEvent]:
        self.calls.append(
            {
                "model": model,
                "messages": list(messages),
                "tools": [t["function"]["name"] for t in tools],
                "system_prompt": system_prompt,
            }
        )
        script = self._scripts.pop(0) if self._scripts else []
        for item in script:
            if isinstance(item, BaseException):
                raise item
            yield item


@pytest.fixture
def scripted_llm():
    return ScriptedLLM


@pytest.fixture
def build_use_case():
    def _build(
        llm: LLMPort,
        models: tuple[str, ...] = ("primary-model", "fallback-model"),
        store: MemoryConversationStore | None = None,
        max_tool_rounds: int = 2,
        **kwargs: Any,
    ) -> tuple[HandleChatTurnUseCase, MemoryConversationStore]:
        store = store or MemoryConversationStore()
        controller = ModelFallbackController(
            llm,
            ModelChainConfig(models=tuple(models), attempt_timeout_seconds=kwargs.pop("timeout", 2.0)),
        )
        use_case = HandleChatTurnUseCase(
            store=store,
            catalog=StaticCatalogStore(),
            controller=controller,
            pricing=PricingConfig(),
            config=OrchestratorConfig(max_tool_rounds=max_tool_rounds),
            **kwargs,
        )
        return use_case, store

    return _build
