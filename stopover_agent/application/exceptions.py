from __future__ import annotations

from enum import Enum

from stopover_agent.domain.entities.tool_result import FieldError


class ErrorKind(str, Enum):
    rate_limit = "rate-limit"
    context_length = "context-length"
    authentication = "authentication"
    configuration = "configuration"
    timeout = "timeout"
    network = "network"
    unknown = "unknown"

    @property
    def retryable(self) -> bool:
        return self not in {ErrorKind.context_length, ErrorKind.authentication, ErrorKind.configuration}

    @property
    def status_code(self) -> int:
        return _STATUS_CODES.get(self, 500)

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self]


_STATUS_CODES = {
    ErrorKind.rate_limit: 429,
    ErrorKind.context_length: 413,
    ErrorKind.authentication: 401,
}

_USER_MESSAGES = {
    ErrorKind.rate_limit: "Rate limit exceeded. Please try again in a moment.",
    ErrorKind.context_length: "Conversation too long. Please start a new conversation.",
    ErrorKind.authentication: "Authentication failed. Please check API configuration.",
    ErrorKind.configuration: "LLM configuration invalid. Please check environment variables.",
    ErrorKind.timeout: "The assistant took too long to respond. Please try again.",
    ErrorKind.network: "The assistant is temporarily unreachable. Please try again.",
    ErrorKind.unknown: "An unexpected error occurred. Please try again.",
}


class LLMUpstreamError(RuntimeError):
    """Raised when LLM provider fails (timeouts, network errors, service unavailable)."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.unknown) -> None:
        super().__init__(message)
        self.kind = kind


class LLMContractError(RuntimeError):
    """Raised when a model stream violates the adapter contract, e.g. a tool call without a name."""


class ModelChainError(RuntimeError):
    """Raised when a turn cannot be served by any model in the fallback chain."""

    def __init__(self, kind: ErrorKind, message: str, attempts: int, models: list[str] | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.attempts = attempts
        self.models = list(models or [])

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class ToolValidationError(ValueError):
    """Raised when tool arguments fail the declared parameter schema."""

    def __init__(self, tool_name: str, errors: list[FieldError]) -> None:
        summary = "; ".join(f"{e.field}: {e.message}" for e in errors) or "invalid arguments"
        super().__init__(f"{tool_name}: {summary}")
        self.tool_name = tool_name
        self.errors = errors


class ConversationNotFoundError(KeyError):
    pass
