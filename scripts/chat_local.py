#!/usr/bin/env python3
"""
Interactive local chat harness (no HTTP).

Usage:
  python3 scripts/chat_local.py

What it does:
- Keeps a stable conversation id for the session
- Sends your typed messages through the same HandleChatTurnUseCase as POST /api/chat
- Prints streamed text, tool calls and tool results, and the booking step after each turn
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stopover_agent.application.dto.chat_request import ChatRequestDTO
from stopover_agent.application.exceptions import ModelChainError
from stopover_agent.wiring.dependencies import get_chat_use_case


def _print_header(conversation_id: str) -> None:
    print("\nLocal Stopover Chat Harness")
    print("-" * 60)
    print(f"conversation_id: {conversation_id}")
    print("Type your message and press Enter.")
    print("Commands: /new (new conversation), /state, /quit, /help")
    print("-" * 60)


async def _run_turn(use_case, conversation_id: str, transcript: list[dict[str, str]]) -> str:
    request = ChatRequestDTO.model_validate(
        {
            "messages": transcript,
            "conversationId": conversation_id,
            "conversationContext": {"entryPoint": "email"},
        }
    )
    use_case.open_conversation(request)
    reply: list[str] = []
    try:
        async for part in use_case.run_turn(conversation_id, request):
            if part.code == "0":
                reply.append(part.value)
                print(part.value, end="", flush=True)
            elif part.code == "9":
                print(f"\n[tool call] {part.value['toolName']} {json.dumps(part.value['args'])}")
            elif part.code == "a":
                result = part.value["result"]
                ui = result.get("uiComponent") or {}
                print(f"[tool result] success={result['success']} ui={ui.get('type')} :: {result['message']}")
            elif part.code == "d":
                print(f"\n(step: {part.value['currentStep']})")
    except ModelChainError as e:
        print(f"\nERROR ({e.kind.value}, retryable={e.retryable}): {e.kind.user_message}")
    return "".join(reply)


def main() -> None:
    conversation_id = os.getenv("CHAT_CONVERSATION_ID", "local_conversation_1")
    use_case = get_chat_use_case()
    transcript: list[dict[str, str]] = []
    _print_header(conversation_id)

    while True:
        try:
            user_text = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return

        if not user_text:
            continue

        cmd = user_text.lower()
        if cmd in ("/quit", "/exit"):
            print("Bye!")
            return
        if cmd == "/help":
            print("Commands:")
            print("  /new   -> start a new conversation id")
            print("  /state -> show the stored booking step and selection")
            print("  /quit  -> exit")
            continue
        if cmd == "/new":
            conversation_id = f"local_conversation_{int(time.time())}"
            transcript = []
            print(f"New conversation_id: {conversation_id}")
            continue
        if cmd == "/state":
            try:
                record = use_case.get_conversation(conversation_id)
            except KeyError:
                print("(no conversation yet)")
                continue
            print(f"step: {record.current_step.value}")
            print(f"selection: {record.selection}")
            print(f"messages stored: {len(record.messages)}")
            continue

        transcript.append({"role": "user", "content": user_text})
        reply = asyncio.run(_run_turn(use_case, conversation_id, transcript))
        if reply:
            transcript.append({"role": "assistant", "content": reply})
        print("-" * 60)


if __name__ == "__main__":
    main()
