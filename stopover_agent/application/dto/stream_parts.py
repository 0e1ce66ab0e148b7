from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class StreamPart:
    """
    One line of the chat data stream: `<code>:<json>\\n`.

    Codes: 0 text chunk, 9 tool call, a tool result, 3 error, d finish.
    """

    code: str
    value: Any

    def encode(self) -> str:
        return f"{self.code}:{json.dumps(self.value, ensure_ascii=False)}\n"


def text_part(text: str) -> StreamPart:
    return StreamPart("0", text)


def tool_call_part(tool_call_id: str, tool_name: str, args: Any) -> StreamPart:
    return StreamPart("9", {"toolCallId": tool_call_id, "toolName": tool_name, "args": args})


def tool_result_part(tool_call_id: str, tool_name: str, result: dict[str, Any]) -> StreamPart:
    return StreamPart("a", {"toolCallId": tool_call_id, "toolName": tool_name, "result": result})


def error_part(message: str) -> StreamPart:
    return StreamPart("3", message)


def finish_part(finish_reason: str, conversation_id: str, current_step: str) -> StreamPart:
    return StreamPart(
        "d",
        {"finishReason": finish_reason, "conversationId": conversation_id, "currentStep": current_step},
    )
