from __future__ import annotations

import json
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from stopover_agent.api.schemas import (
    ChatApiConfig,
    ConversationSchema,
    ErrorResponseSchema,
    ToolCatalogSchema,
    ToolSchema,
)
from stopover_agent.application.dto.chat_request import ChatRequestDTO
from stopover_agent.application.dto.stream_parts import StreamPart, error_part
from stopover_agent.application.exceptions import ConversationNotFoundError, ModelChainError
from stopover_agent.application.use_cases.handle_chat_turn import HandleChatTurnUseCase
from stopover_agent.application.use_cases.tool_registry import TOOL_REGISTRY
from stopover_agent.wiring.dependencies import get_chat_api_config, get_chat_use_case


router = APIRouter()
logger = logging.getLogger(__name__)

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def _error_response(status_code: int, error: str, **fields) -> JSONResponse:
    body = ErrorResponseSchema(error=error, **fields)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _chain_error_response(e: ModelChainError) -> JSONResponse:
    return _error_response(e.status_code, e.kind.user_message, type=e.kind.value, retryable=e.retryable)


@router.post("/chat")
async def chat(
    request: Request,
    use_case: HandleChatTurnUseCase = Depends(get_chat_use_case),
    api_config: ChatApiConfig = Depends(get_chat_api_config),
) -> Response:
    try:
        payload = json.loads(await request.body() or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error_response(400, "Invalid JSON body")

    if not isinstance(payload, dict) or not isinstance(payload.get("messages"), list):
        return _error_response(400, "Invalid messages format")

    try:
        chat_request = ChatRequestDTO.model_validate(payload)
    except ValidationError as e:
        details = e.errors(include_url=False, include_context=False, include_input=False)
        return _error_response(400, "Invalid messages format", details=details)

    record = use_case.open_conversation(chat_request)
    conversation_id = record.conversation_id
    parts = use_case.run_turn(conversation_id, chat_request)

    # Pull the first part eagerly so failures before any output become a plain JSON error.
    try:
        first = await anext(parts)
    except StopAsyncIteration:
        first = None
    except ModelChainError as e:
        await parts.aclose()
        logger.warning(
            "Chat turn failed before streaming",
            extra={"conversation_id": conversation_id, "error_kind": e.kind.value, "reason": str(e)},
        )
        return _chain_error_response(e)

    headers = {"X-Conversation-Id": conversation_id}
    body = _encode_stream(conversation_id, first, parts)
    if not api_config.streaming_enabled:
        text = "".join([chunk async for chunk in body])
        return Response(content=text, media_type=STREAM_MEDIA_TYPE, headers=headers)
    return StreamingResponse(body, media_type=STREAM_MEDIA_TYPE, headers=headers)


async def _encode_stream(
    conversation_id: str,
    first: StreamPart | None,
    parts: AsyncIterator[StreamPart],
) -> AsyncIterator[str]:
    try:
        if first is not None:
            yield first.encode()
        async for part in parts:
            yield part.encode()
    except ModelChainError as e:
        logger.warning(
            "Chat turn failed mid-stream",
            extra={"conversation_id": conversation_id, "error_kind": e.kind.value, "reason": str(e)},
        )
        yield error_part(e.kind.user_message).encode()
    finally:
        await parts.aclose()


@router.get("/tools", response_model=ToolCatalogSchema)
def list_tools() -> ToolCatalogSchema:
    return ToolCatalogSchema(
        tools=[
            ToolSchema(
                name=spec.name.value,
                description=spec.description,
                step=spec.step.value,
                parameters=spec.parameters_schema(),
            )
            for spec in TOOL_REGISTRY.values()
        ]
    )


@router.get("/conversations/{conversation_id}", response_model=ConversationSchema)
def get_conversation(
    conversation_id: str,
    use_case: HandleChatTurnUseCase = Depends(get_chat_use_case),
) -> ConversationSchema:
    try:
        record = use_case.get_conversation(conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return ConversationSchema.from_record(record)
