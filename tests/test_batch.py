"""Tests for conversation processing and download payloads."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from infopiece.config.settings import ExtractorConfig
from infopiece.exceptions import TransportError
from infopiece.extraction.batch import (
    build_logs_payload,
    build_results_payload,
    build_text_logs_payload,
    build_text_results_payload,
    continue_conversation_message,
    eligible_messages,
    process_conversation,
)
from infopiece.extraction.refiner import ExtractionRefiner
from infopiece.providers.base import CompletionResponse
from infopiece.types.extractions import Extraction
from infopiece.types.messages import Conversation, ConversationMessage
from infopiece.types.results import ProcessedMessage

LONG_A = "The migration to the new database cluster finishes on Thursday night."
LONG_B = "Remember to rotate the API keys before the audit next week."


def extraction_response(*pieces: str) -> CompletionResponse:
    return CompletionResponse(parsed={
        "extractions": [
            {"informationPiece": p, "isInstruction": False, "reasoning": "", "rank": i}
            for i, p in enumerate(pieces, start=1)
        ]
    })


def verification_response(comprehensive: bool, score: float) -> CompletionResponse:
    return CompletionResponse(parsed={
        "isComprehensive": comprehensive,
        "confidenceScore": score,
        "missedInformation": [],
        "summary": "",
    })


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.complete = AsyncMock()
    client.model_name = "test-model"
    return client


@pytest.fixture
def refiner(mock_client) -> ExtractionRefiner:
    return ExtractionRefiner(mock_client, ExtractorConfig(include_verification=False, max_iterations=1))


@pytest.fixture
def conversation() -> Conversation:
    return Conversation(
        id="conv-000012345678",
        title="Ops sync",
        messages=[
            ConversationMessage(role="user", content="What's the plan for this week, in detail?"),
            ConversationMessage(role="assistant", content=LONG_A),
            ConversationMessage(role="assistant", content="Sure, noted."),
            ConversationMessage(role="system", content="x" * 40),
            ConversationMessage(role="assistant", content=LONG_B),
        ],
    )


class TestEligibleMessages:

    def test_only_long_assistant_messages(self, conversation):
        assert [m.content for m in eligible_messages(conversation)] == [LONG_A, LONG_B]

    def test_exactly_twenty_characters_excluded(self):
        conversation = Conversation(
            id="c",
            messages=[ConversationMessage(role="assistant", content="y" * 20)],
        )
        assert eligible_messages(conversation) == []


class TestProcessConversation:
    """Sequential processing with pacing."""

    @pytest.mark.asyncio
    async def test_processes_in_order_and_accepts_all(self, refiner, mock_client, conversation):
        mock_client.complete.side_effect = [
            extraction_response("Migration Thursday night"),
            extraction_response("Rotate API keys", "Audit next week"),
        ]

        with patch("infopiece.extraction.batch.asyncio.sleep", new=AsyncMock()) as sleep:
            processed = await process_conversation(conversation, refiner, pacing_delay=0.5)

        assert [pm.original_message.content for pm in processed.processed_messages] == [LONG_A, LONG_B]
        assert all(e.accepted is True for pm in processed.processed_messages for e in pm.extractions)
        assert processed.summary.total_messages == 5
        assert processed.summary.processed_messages == 2
        assert processed.summary.total_extractions == 3
        assert processed.summary.errors == 0
        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_pacing_from_config(self, mock_client, conversation):
        refiner = ExtractionRefiner(
            mock_client,
            ExtractorConfig(include_verification=False, pacing_delay_seconds=1.25),
        )
        mock_client.complete.side_effect = [extraction_response("a"), extraction_response("b")]

        with patch("infopiece.extraction.batch.asyncio.sleep", new=AsyncMock()) as sleep:
            await process_conversation(conversation, refiner)

        sleep.assert_awaited_once_with(1.25)

    @pytest.mark.asyncio
    async def test_errors_counted_and_processing_continues(self, refiner, mock_client, conversation):
        mock_client.complete.side_effect = [
            TransportError("OpenAI API returned status 503", status_code=503),
            extraction_response("Rotate API keys"),
        ]

        processed = await process_conversation(conversation, refiner, pacing_delay=0)

        first, second = processed.processed_messages
        assert first.processing_error == "OpenAI API returned status 503"
        assert second.extractions[0].information_piece == "Rotate API keys"
        assert processed.summary.errors == 1
        assert processed.summary.total_extractions == 1

    @pytest.mark.asyncio
    async def test_progress_callback(self, refiner, mock_client, conversation):
        mock_client.complete.side_effect = [extraction_response("a"), extraction_response("b")]
        calls = []

        await process_conversation(
            conversation, refiner, pacing_delay=0, progress=lambda current, total: calls.append((current, total))
        )

        assert calls == [(1, 2), (2, 2)]

    @pytest.mark.asyncio
    async def test_verification_override(self, refiner, mock_client, conversation):
        mock_client.complete.side_effect = [
            extraction_response("a"), verification_response(True, 0.9),
            extraction_response("b"), verification_response(True, 0.9),
        ]

        processed = await process_conversation(
            conversation, refiner, include_verification=True, pacing_delay=0
        )

        assert all(pm.verification is not None for pm in processed.processed_messages)
        assert mock_client.complete.await_count == 4


class TestContinueConversationMessage:

    @pytest.mark.asyncio
    async def test_continue_replaces_message_and_summary(self, refiner, mock_client, conversation):
        mock_client.complete.side_effect = [
            extraction_response("a"), verification_response(False, 0.5),
            extraction_response("b"), verification_response(False, 0.5),
            extraction_response("a", "c"), verification_response(True, 0.9),
        ]
        processed = await process_conversation(
            conversation, refiner, include_verification=True, pacing_delay=0
        )
        processed = processed.replace_message(
            0, processed.processed_messages[0].toggle_acceptance(0)
        )

        updated = await continue_conversation_message(processed, 0, refiner, include_verification=True)

        message = updated.processed_messages[0]
        assert message.iteration_count == 2
        assert [e.accepted for e in message.extractions] == [False, True]
        assert updated.summary.total_extractions == 3
        assert updated.processed_messages[1] == processed.processed_messages[1]

    @pytest.mark.asyncio
    async def test_continue_after_failed_message(self, refiner, mock_client, conversation):
        mock_client.complete.side_effect = [
            extraction_response("a"), verification_response(False, 0.5),
            TransportError("OpenAI API returned status 503", status_code=503),
            extraction_response("b"), verification_response(True, 0.9),
        ]
        processed = await process_conversation(
            conversation, refiner, include_verification=True, max_iterations=3, pacing_delay=0
        )
        assert processed.processed_messages[0].iteration_count == 2
        assert processed.summary.errors == 1

        mock_client.complete.reset_mock()
        mock_client.complete.side_effect = [extraction_response("a", "c"), verification_response(True, 0.9)]
        updated = await continue_conversation_message(processed, 0, refiner, include_verification=True)

        message = updated.processed_messages[0]
        assert mock_client.complete.await_count == 2
        assert [step.iteration_number for step in message.iteration_history] == [1, 2]
        assert message.processing_error is None
        assert updated.summary.errors == 0

    @pytest.mark.asyncio
    async def test_ceiling(self, refiner, conversation):
        processed_message = ProcessedMessage(
            original_message=ConversationMessage(role="assistant", content=LONG_A),
            iteration_count=3,
        )
        from infopiece.types.results import ConversationSummary, ProcessedConversation

        processed = ProcessedConversation(
            conversation=conversation,
            processed_messages=[processed_message],
            summary=ConversationSummary.build(conversation, [processed_message]),
        )
        with pytest.raises(ValueError):
            await continue_conversation_message(processed, 0, refiner)


class TestPayloads:
    """Download payload shapes."""

    @pytest.fixture
    def processed(self, conversation):
        from infopiece.types.results import ConversationSummary, ProcessedConversation

        message = ProcessedMessage(
            original_message=ConversationMessage(role="assistant", content=LONG_A, timestamp=1700000000.5),
            extractions=[
                Extraction(information_piece="kept", is_instruction=False, rank=1, accepted=True),
                Extraction(information_piece="rejected", is_instruction=False, rank=2, accepted=False),
                Extraction(information_piece="undecided", is_instruction=True, rank=3),
            ],
            iteration_count=1,
            iteration_history=[],
        )
        return ProcessedConversation(
            conversation=conversation,
            processed_messages=[message],
            summary=ConversationSummary.build(conversation, [message]),
        )

    def test_results_only_accepted(self, processed):
        payload = build_results_payload(processed, include_verification=True, max_iterations=2)

        metadata = payload["metadata"]
        assert metadata["conversationId"] == "conv-000012345678"
        assert metadata["conversationTitle"] == "Ops sync"
        assert metadata["includedVerification"] is True
        assert metadata["maxIterations"] == 2
        assert metadata["summary"]["totalExtractions"] == 3
        assert metadata["processedAt"].endswith("Z")

        (result,) = payload["results"]
        assert result["originalMessage"] == {"role": "assistant", "content": LONG_A, "timestamp": 1700000000.5}
        assert [e["informationPiece"] for e in result["extractions"]] == ["kept", "undecided"]
        json.dumps(payload)

    def test_logs_include_everything(self, processed):
        payload = build_logs_payload(processed, include_verification=False, max_iterations=1)

        (log,) = payload["logs"]
        assert log["iterationCount"] == 1
        assert log["iterationHistory"] == []
        assert log["verification"] is None
        assert log["processingError"] is None
        assert [e["accepted"] for e in log["allExtractions"] if "accepted" in e] == [True, False]
        assert len(log["allExtractions"]) == 3

    def test_single_text_payloads(self, processed):
        message = processed.processed_messages[0]

        results = build_text_results_payload(message, max_iterations=3)
        logs = build_text_logs_payload(message, max_iterations=3)

        assert results["metadata"]["inputText"] == LONG_A
        assert results["metadata"]["iterationCount"] == 1
        assert [e["informationPiece"] for e in results["extractions"]] == ["kept", "undecided"]
        assert len(logs["logs"]["allExtractions"]) == 3
        assert logs["logs"]["iterationHistory"] == []
