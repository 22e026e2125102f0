"""
Conversation Ingestion

Loading of conversation export files for batch processing.

Modules:
    conversations: Export parsing and normalization
"""

from infopiece.ingestion.conversations import (
    load_conversation_file,
    normalize_conversation,
    normalize_message,
    parse_conversation_file,
)

__all__ = [
    "load_conversation_file",
    "parse_conversation_file",
    "normalize_conversation",
    "normalize_message",
]
