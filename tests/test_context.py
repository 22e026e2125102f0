"""Tests for the conversation context and prompt templates."""

import json

from infopiece.extraction import prompts
from infopiece.extraction.context import ConversationContext, render_dialogue
from infopiece.types.extractions import Extraction, MissedInformationItem, VerificationResult
from infopiece.types.messages import Message

ORIGINAL = "The quarterly report is due Monday and must include churn figures."


def _extractions() -> list[Extraction]:
    return [
        Extraction(information_piece="Report due Monday", is_instruction=True, reasoning="deadline", rank=1),
        Extraction(information_piece="Include churn figures", is_instruction=False, reasoning="scope", rank=2),
    ]


class TestConversationContext:
    """Dialogue bookkeeping for one run."""

    def test_initial_dialogues(self):
        context = ConversationContext(ORIGINAL)

        assert context.extraction_messages == (
            Message(role="system", content=prompts.EXTRACTION_SYSTEM_PROMPT),
            Message(role="user", content=ORIGINAL),
        )
        assert context.verification_messages == (
            Message(role="system", content=prompts.VERIFICATION_SYSTEM_PROMPT),
        )

    def test_resume_feedback_seeded(self):
        context = ConversationContext(ORIGINAL, last_feedback="Previous Results: ...")
        assert [m.role for m in context.extraction_messages] == ["system", "user", "user"]
        assert context.extraction_messages[-1].content == "Previous Results: ..."

    def test_blank_feedback_ignored(self):
        context = ConversationContext(ORIGINAL, last_feedback="   ")
        assert len(context.extraction_messages) == 2

    def test_record_extraction(self):
        context = ConversationContext(ORIGINAL)
        context.record_extraction(_extractions())

        last = context.extraction_messages[-1]
        assert last.role == "assistant"
        assert json.loads(last.content) == [
            {"informationPiece": "Report due Monday", "isInstruction": True, "reasoning": "deadline", "rank": 1},
            {"informationPiece": "Include churn figures", "isInstruction": False, "reasoning": "scope", "rank": 2},
        ]

    def test_verification_request_goes_to_both_dialogues(self):
        context = ConversationContext(ORIGINAL)
        context.request_verification(_extractions())

        extraction_turn = context.extraction_messages[-1]
        verification_turn = context.verification_messages[-1]
        assert extraction_turn.role == verification_turn.role == "user"
        assert extraction_turn.content.startswith("Please verify if my extraction covers")
        assert verification_turn.content.startswith('Original Text:\n"""\n' + ORIGINAL)
        for content in (extraction_turn.content, verification_turn.content):
            assert "1. [INSTRUCTION] Report due Monday\n2. [INFORMATION] Include churn figures" in content

    def test_record_verification(self):
        context = ConversationContext(ORIGINAL)
        verification = VerificationResult(
            is_comprehensive=False,
            confidence_score=0.65,
            missed_information=[MissedInformationItem(information_piece="Owner", importance="high")],
        )
        context.record_verification(verification)

        verifier_turn = context.verification_messages[-1]
        assert verifier_turn.role == "assistant"
        assert json.loads(verifier_turn.content)["confidenceScore"] == 0.65

        recap = context.extraction_messages[-1]
        assert recap.role == "assistant"
        assert recap.content == "Verification complete. Comprehensive: false, Confidence: 0.65. Missing: Owner"

    def test_request_improvement_returns_feedback(self):
        context = ConversationContext(ORIGINAL)
        missed = [
            MissedInformationItem(information_piece="Owner", importance="high"),
            MissedInformationItem(information_piece="Format", importance="low"),
        ]

        feedback = context.request_improvement(missed)

        assert feedback == (
            "Based on the verification, please improve your extraction. Missing important "
            'information: "Owner" (high importance), "Format" (low importance). '
            "Please extract these missing pieces in your next attempt."
        )
        assert context.extraction_messages[-1] == Message(role="user", content=feedback)

    def test_returned_messages_are_snapshots(self):
        context = ConversationContext(ORIGINAL)
        before = context.extraction_messages
        context.record_extraction(_extractions())
        assert len(before) == 2
        assert len(context.extraction_messages) == 3

    def test_render_prompts(self):
        context = ConversationContext(ORIGINAL)
        assert context.render_extraction_prompt() == (
            f"system: {prompts.EXTRACTION_SYSTEM_PROMPT}\n\nuser: {ORIGINAL}"
        )
        assert context.render_verification_prompt() == f"system: {prompts.VERIFICATION_SYSTEM_PROMPT}"


class TestPrompts:
    """Template rendering."""

    def test_render_dialogue(self):
        messages = [Message(role="user", content="a"), Message(role="assistant", content="b")]
        assert render_dialogue(messages) == "user: a\n\nassistant: b"

    def test_outcome_without_missed(self):
        verification = VerificationResult(is_comprehensive=True, confidence_score=1.0)
        assert prompts.verification_outcome(verification) == (
            "Verification complete. Comprehensive: true, Confidence: 1. No missing information identified."
        )

    def test_resume_feedback_filters_low_importance(self):
        verification = VerificationResult(
            is_comprehensive=False,
            confidence_score=0.7,
            summary="Mostly there",
            missed_information=[
                MissedInformationItem(information_piece="Owner", importance="medium", reasoning="who"),
                MissedInformationItem(information_piece="Font", importance="low", reasoning="style"),
            ],
        )

        feedback = prompts.resume_feedback(verification)

        assert feedback == (
            "Previous Results:\n"
            "- Confidence Score: 0.7\n"
            "- Is Comprehensive: false\n"
            "- Evaluator Summary: Mostly there\n"
            "\n"
            "Missed Information:\n"
            "- Missing: Owner (medium importance) - who\n"
            "\n"
            "Please address these issues in your next extraction attempt."
        )

    def test_resume_feedback_without_missed(self):
        verification = VerificationResult(is_comprehensive=True, confidence_score=0.75, summary="ok")
        feedback = prompts.resume_feedback(verification)
        assert "Missed Information" not in feedback
        assert feedback.endswith("\n\nPlease address these issues in your next extraction attempt.")
