"""
Prompt Templates

System prompts and per-turn templates for the extraction and verification
dialogues.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infopiece.types.extractions import Extraction, MissedInformationItem, VerificationResult


# -----------------------------------------------------------------------------
# System Prompts
# -----------------------------------------------------------------------------

EXTRACTION_SYSTEM_PROMPT = """\
You are an extraction assistant. Extract the most essential and distinct \
information pieces from the text (1-5 pieces). Focus on critical facts, key \
decisions, important outcomes, or actionable items. Keep each piece concise \
(less than 10 words). For every piece give a short reasoning and a rank \
(1 = most important). Prioritize quality over quantity. Return exactly one \
JSON object that conforms to the provided schema."""

VERIFICATION_SYSTEM_PROMPT = """\
You are a verification assistant. Your task is to analyze whether the provided \
extractions cover the most important information from the original text. Be \
lenient and focus only on truly critical missing information. Compare the \
original text with the extracted information pieces and determine:
1. If any truly critical information was missed (be selective)
2. Rate the completeness on a 0-1 confidence scale (favor higher scores for \
reasonable extractions)
3. List only the most important missed information if any exists.
Return exactly one JSON object conforming to the schema."""


# -----------------------------------------------------------------------------
# Turn Templates
# -----------------------------------------------------------------------------

_VERIFICATION_USER_TEMPLATE = """\
Original Text:
\"\"\"
{original_text}
\"\"\"

Extracted Information Pieces:
\"\"\"
{extraction_summary}
\"\"\"

Please verify if the extraction covers the essential information. Be lenient - \
only flag truly critical missing information that would significantly impact \
understanding."""

_SELF_CHECK_USER_TEMPLATE = """\
Please verify if my extraction covers the essential information. Be lenient - \
only flag truly critical missing information.

Original Text:
\"\"\"
{original_text}
\"\"\"

Extracted Information Pieces:
\"\"\"
{extraction_summary}
\"\"\"

Please verify if the extraction covers the essential information."""

_IMPROVEMENT_TEMPLATE = (
    "Based on the verification, please improve your extraction. "
    "Missing important information: {missed}. "
    "Please extract these missing pieces in your next attempt."
)


def summarize_extractions(extractions: Sequence["Extraction"]) -> str:
    """Numbered "[LABEL] piece" lines."""
    return "\n".join(
        f"{idx}. [{extraction.label}] {extraction.information_piece}"
        for idx, extraction in enumerate(extractions, start=1)
    )


def verification_request(original_text: str, extractions: Sequence["Extraction"]) -> str:
    """User turn for the verification dialogue."""
    return _VERIFICATION_USER_TEMPLATE.format(
        original_text=original_text,
        extraction_summary=summarize_extractions(extractions),
    )


def self_check_request(original_text: str, extractions: Sequence["Extraction"]) -> str:
    """The same request, phrased in the extractor's voice for its own dialogue."""
    return _SELF_CHECK_USER_TEMPLATE.format(
        original_text=original_text,
        extraction_summary=summarize_extractions(extractions),
    )


def verification_outcome(verification: "VerificationResult") -> str:
    """One-line recap of a verification, appended to the extraction dialogue."""
    if verification.missed_information:
        missing = "Missing: " + ", ".join(
            item.information_piece for item in verification.missed_information
        )
    else:
        missing = "No missing information identified."
    comprehensive = "true" if verification.is_comprehensive else "false"
    return (
        f"Verification complete. Comprehensive: {comprehensive}, "
        f"Confidence: {verification.confidence_score:g}. {missing}"
    )


def improvement_request(missed: Sequence["MissedInformationItem"]) -> str:
    """Feedback turn naming each missed item with its importance."""
    return _IMPROVEMENT_TEMPLATE.format(
        missed=", ".join(
            f'"{item.information_piece}" ({item.importance} importance)' for item in missed
        )
    )


def resume_feedback(verification: "VerificationResult") -> str:
    """
    Feedback carried into a "continue refinement" run.

    Only high and medium importance misses are repeated.
    """
    missed = "\n".join(
        f"- Missing: {item.information_piece} ({item.importance} importance) - {item.reasoning}"
        for item in verification.missed_information
        if item.importance in ("high", "medium")
    )
    lines = [
        "Previous Results:",
        f"- Confidence Score: {verification.confidence_score:g}",
        f"- Is Comprehensive: {'true' if verification.is_comprehensive else 'false'}",
        f"- Evaluator Summary: {verification.summary}",
    ]
    if missed:
        lines.extend(["", "Missed Information:", missed])
    lines.extend(["", "Please address these issues in your next extraction attempt."])
    return "\n".join(lines)
