"""
Conversation Export Loader

Parses conversation export files into normalized Conversation objects.

Accepted top-level shapes:
    - A list of conversations
    - {"conversations": [...]} or {"data": [...]}
    - A single conversation object with "id" or "conversation_id"

Each conversation takes its messages from a "messages" list, or from a
ChatGPT-style "mapping" of nodes (user and assistant nodes only, ordered
by creation time).

Message content is read from a plain string, "content.parts",
"message.content.parts" or "parts", in that order.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

from infopiece.exceptions import ConversationFormatError
from infopiece.types.messages import Conversation, ConversationMessage

_KNOWN_ROLES = ("user", "assistant", "system")


def load_conversation_file(path: str | Path) -> list[Conversation]:
    """
    Read and parse a conversation export file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConversationFormatError: If the content is not a recognized export
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Conversation file not found: {path}")
    return parse_conversation_file(path.read_text(encoding="utf-8"))


def parse_conversation_file(content: str) -> list[Conversation]:
    """
    Parse the text of a conversation export.

    Raises:
        ConversationFormatError: On invalid JSON or an unrecognized structure
    """
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConversationFormatError(f"Failed to parse conversation file: {e}") from e

    if isinstance(parsed, list):
        raw_conversations = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("conversations"), list):
        raw_conversations = parsed["conversations"]
    elif isinstance(parsed, dict) and isinstance(parsed.get("data"), list):
        raw_conversations = parsed["data"]
    elif isinstance(parsed, dict) and (parsed.get("id") or parsed.get("conversation_id")):
        raw_conversations = [parsed]
    else:
        raise ConversationFormatError(
            "Failed to parse conversation file: Invalid conversation file structure"
        )

    conversations = []
    for idx, raw in enumerate(raw_conversations):
        if not isinstance(raw, dict):
            raise ConversationFormatError(
                f"Failed to parse conversation file: conversation {idx} is not an object"
            )
        conversations.append(normalize_conversation(raw))
    return conversations


def normalize_conversation(raw: dict[str, Any]) -> Conversation:
    """Normalize one raw conversation object."""
    create_time = _as_float(raw.get("create_time")) or time.time()
    conversation_id = raw.get("id") or raw.get("conversation_id") or f"conv_{int(time.time() * 1000)}"

    messages: list[ConversationMessage] = []
    if isinstance(raw.get("messages"), list):
        messages = [normalize_message(m) for m in raw["messages"] if isinstance(m, dict)]
    elif isinstance(raw.get("mapping"), dict):
        messages = _messages_from_mapping(raw["mapping"], create_time)

    return Conversation(
        id=str(conversation_id),
        title=str(raw.get("title") or ""),
        create_time=create_time,
        update_time=_as_float(raw.get("update_time")),
        messages=messages,
    )


def normalize_message(raw: dict[str, Any]) -> ConversationMessage:
    """Normalize one raw message object."""
    nested = raw.get("message") if isinstance(raw.get("message"), dict) else {}

    content = ""
    if isinstance(raw.get("content"), str):
        content = raw["content"]
    elif (parts := _parts(raw.get("content"))) is not None:
        content = "\n".join(parts)
    elif (parts := _parts(nested.get("content"))) is not None:
        content = "\n".join(parts)
    elif isinstance(raw.get("parts"), list):
        content = "\n".join(str(p) for p in raw["parts"])

    role = raw.get("role") or _author_role(raw) or _author_role(nested) or "user"

    return ConversationMessage(
        role=_normalize_role(role),
        content=content.strip(),
        timestamp=_as_float(
            raw.get("timestamp") or raw.get("create_time") or nested.get("create_time")
        ),
    )


def _messages_from_mapping(mapping: dict[str, Any], default_time: float) -> list[ConversationMessage]:
    messages = []
    for node in mapping.values():
        message = node.get("message") if isinstance(node, dict) else None
        if not isinstance(message, dict):
            continue
        parts = _parts(message.get("content"))
        if parts is None:
            continue

        role = _author_role(message) or "user"
        content = "\n".join(parts).strip()
        if content and role in ("user", "assistant"):
            messages.append(
                ConversationMessage(
                    role=role,
                    content=content,
                    timestamp=_as_float(message.get("create_time")) or default_time,
                )
            )

    return sorted(messages, key=lambda m: m.timestamp or 0)


def _parts(content: Any) -> list[str] | None:
    if isinstance(content, dict) and isinstance(content.get("parts"), list):
        return [p if isinstance(p, str) else json.dumps(p) for p in content["parts"]]
    return None


def _author_role(raw: dict[str, Any]) -> str | None:
    author = raw.get("author")
    if isinstance(author, dict) and isinstance(author.get("role"), str):
        return author["role"]
    return None


def _normalize_role(role: Any) -> str:
    # Other author roles (tool, function) are kept as never-processed turns
    return role if role in _KNOWN_ROLES else "system"


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
