"""
Conversation Processing

Runs the refinement loop over the assistant messages of a conversation,
one message at a time with a fixed pacing delay between calls, and builds
the downloadable result and log payloads.

Example:
    >>> processed = await process_conversation(conversation, refiner, include_verification=True)
    >>> processed.summary.total_extractions
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from infopiece.extraction.refiner import ExtractionRefiner
from infopiece.types.messages import Conversation, ConversationMessage
from infopiece.types.results import (
    ConversationSummary,
    ProcessedConversation,
    ProcessedMessage,
    RefinementContext,
)

logger = logging.getLogger(__name__)

BatchProgressCallback = Callable[[int, int], None]
"""Called with (current message number, total eligible messages) before each message."""


def eligible_messages(
    conversation: Conversation,
    min_length: int = 20,
) -> list[ConversationMessage]:
    """Assistant messages with more than `min_length` characters of stripped content."""
    return [
        message
        for message in conversation.messages
        if message.role == "assistant" and len(message.content.strip()) > min_length
    ]


async def process_conversation(
    conversation: Conversation,
    refiner: ExtractionRefiner,
    *,
    include_verification: bool | None = None,
    max_iterations: int | None = None,
    pacing_delay: float | None = None,
    progress: BatchProgressCallback | None = None,
) -> ProcessedConversation:
    """
    Process every eligible assistant message of a conversation in order.

    Messages are never processed concurrently. Every extraction of the
    result is marked accepted.

    Args:
        conversation: Normalized conversation
        refiner: Refiner shared by all messages
        include_verification: Verify each extraction (default from config)
        max_iterations: Per-message iteration limit (default from config)
        pacing_delay: Seconds between messages (default from config)
        progress: Optional (current, total) callback

    Returns:
        ProcessedConversation with a summary of counts and errors
    """
    config = refiner.config
    delay = config.pacing_delay_seconds if pacing_delay is None else pacing_delay
    messages = eligible_messages(conversation, config.min_message_length)
    total = len(messages)
    logger.info(f"Processing {total} of {len(conversation.messages)} messages in conversation {conversation.id}")

    processed: list[ProcessedMessage] = []
    for index, message in enumerate(messages):
        if progress is not None:
            progress(index + 1, total)

        result = await refiner.refine(
            message,
            include_verification=include_verification,
            max_iterations=max_iterations,
        )
        if result.failed:
            logger.warning(f"Message {index + 1}/{total} failed: {result.processing_error}")
        processed.append(result.with_acceptance(default=True))

        if index < total - 1 and delay > 0:
            await asyncio.sleep(delay)

    return ProcessedConversation(
        conversation=conversation,
        processed_messages=processed,
        summary=ConversationSummary.build(conversation, processed),
    )


async def continue_conversation_message(
    processed: ProcessedConversation,
    index: int,
    refiner: ExtractionRefiner,
    *,
    include_verification: bool | None = None,
) -> ProcessedConversation:
    """
    Run one more iteration on one processed message of a conversation.

    The message's last feedback is carried forward and acceptance states
    are kept by position.

    Raises:
        IndexError: If there is no processed message at `index`
        ValueError: If the message already reached the continue ceiling
    """
    previous = processed.processed_messages[index]
    done = previous.completed_iterations
    if done >= refiner.config.continue_ceiling:
        raise ValueError(
            f"Cannot continue refinement: {done} iterations already run "
            f"(limit {refiner.config.continue_ceiling})"
        )

    result = await refiner.refine(
        previous.original_message,
        include_verification=include_verification,
        max_iterations=done + 1,
        context=RefinementContext.from_processed(previous),
    )
    return processed.replace_message(
        index,
        result.with_acceptance(default=True, previous=previous.extractions),
    )


# -----------------------------------------------------------------------------
# Download Payloads
# -----------------------------------------------------------------------------


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _original_message(message: ConversationMessage) -> dict[str, Any]:
    return message.model_dump(mode="json", include={"role", "content", "timestamp"})


def _conversation_metadata(
    processed: ProcessedConversation,
    include_verification: bool,
    max_iterations: int,
) -> dict[str, Any]:
    return {
        "conversationId": processed.conversation.id,
        "conversationTitle": processed.conversation.display_title,
        "processedAt": _timestamp(),
        "summary": processed.summary.to_wire(),
        "includedVerification": include_verification,
        "maxIterations": max_iterations,
    }


def build_results_payload(
    processed: ProcessedConversation,
    *,
    include_verification: bool,
    max_iterations: int,
) -> dict[str, Any]:
    """Results download: only extractions not explicitly rejected."""
    return {
        "metadata": _conversation_metadata(processed, include_verification, max_iterations),
        "results": [
            {
                "originalMessage": _original_message(pm.original_message),
                "extractions": [e.to_wire() for e in pm.extractions if e.accepted is not False],
            }
            for pm in processed.processed_messages
        ],
    }


def build_logs_payload(
    processed: ProcessedConversation,
    *,
    include_verification: bool,
    max_iterations: int,
) -> dict[str, Any]:
    """Logs download: verification, errors, history and all extractions per message."""
    return {
        "metadata": _conversation_metadata(processed, include_verification, max_iterations),
        "logs": [
            {
                "originalMessage": _original_message(pm.original_message),
                "verification": pm.verification.to_wire() if pm.verification else None,
                "processingError": pm.processing_error,
                "iterationCount": pm.iteration_count,
                "iterationHistory": (
                    [step.to_wire() for step in pm.iteration_history]
                    if pm.iteration_history is not None
                    else None
                ),
                "allExtractions": [e.to_wire() for e in pm.extractions],
            }
            for pm in processed.processed_messages
        ],
    }


def build_text_results_payload(result: ProcessedMessage, *, max_iterations: int) -> dict[str, Any]:
    """Results download for a single text."""
    return {
        "metadata": {
            "processedAt": _timestamp(),
            "inputText": result.original_message.content,
            "maxIterations": max_iterations,
            "iterationCount": result.iteration_count or 0,
        },
        "extractions": [e.to_wire() for e in result.extractions if e.accepted is not False],
    }


def build_text_logs_payload(result: ProcessedMessage, *, max_iterations: int) -> dict[str, Any]:
    """Logs download for a single text."""
    return {
        "metadata": {
            "processedAt": _timestamp(),
            "inputText": result.original_message.content,
            "maxIterations": max_iterations,
            "iterationCount": result.iteration_count or 0,
        },
        "logs": {
            "verification": result.verification.to_wire() if result.verification else None,
            "iterationHistory": [step.to_wire() for step in result.iteration_history or []],
            "allExtractions": [e.to_wire() for e in result.extractions],
            "processingError": result.processing_error,
        },
    }
