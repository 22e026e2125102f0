"""
Response Validation and Normalization

Validates structured model responses and repairs minor inconsistencies.

Extraction output is load-bearing and validated strictly; verification
output is advisory, so missing text fields fall back to empty strings and
unknown importance levels fall back to "medium".

Field aliases (tried in order, first non-null value wins):
    informationPiece: informationPiece, information, text
    reasoning:        reasoning, reason

Rank repair:
    If the N coerced ranks are exactly 1..N with no duplicates, items are
    sorted ascending by rank. Otherwise ranks are reassigned 1..N in the
    original array order. This is a deterministic fallback, not a sort by
    any semantic signal.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from infopiece.exceptions import ValidationError
from infopiece.extraction.schemas import MAX_EXTRACTIONS
from infopiece.types.extractions import (
    IMPORTANCE_LEVELS,
    Extraction,
    MissedInformationItem,
    VerificationResult,
)

INFORMATION_PIECE_FIELDS: tuple[str, ...] = ("informationPiece", "information", "text")
REASONING_FIELDS: tuple[str, ...] = ("reasoning", "reason")


def _first_present(item: Mapping[str, Any], fields: Sequence[str]) -> Any:
    """Return the value of the first field that is present and not None."""
    for field in fields:
        value = item.get(field)
        if value is not None:
            return value
    return None


def _coerce_bool(value: Any) -> bool | None:
    """Native bool, or "true"/"false" in any case. None if neither."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


def _coerce_rank(value: Any) -> int | None:
    """
    Integer rank from an int, integral float, or numeric string.

    Returns None (the not-a-number sentinel) for anything else; invalid
    ranks are repaired later rather than rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return None


def _ranks_are_permutation(ranks: list[int | None]) -> bool:
    n = len(ranks)
    return sorted(r for r in ranks if r is not None) == list(range(1, n + 1))


def validate_extraction_response(obj: Any) -> list[Extraction]:
    """
    Validate and normalize an extraction response.

    Args:
        obj: Parsed response, expected shape {"extractions": [...]}

    Returns:
        1-5 extractions with ranks forming a permutation of 1..N,
        ordered by rank

    Raises:
        ValidationError: On structural violations
    """
    if not isinstance(obj, Mapping):
        raise ValidationError("Response is not an object")

    items = obj.get("extractions")
    if not isinstance(items, list):
        raise ValidationError("`extractions` is missing or not an array")
    if not 1 <= len(items) <= MAX_EXTRACTIONS:
        raise ValidationError(f"Number of extractions must be between 1 and {MAX_EXTRACTIONS}")

    rows: list[tuple[str, bool, str, int | None]] = []

    for idx, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValidationError(f"Extraction at index {idx} is not an object")

        piece = _first_present(item, INFORMATION_PIECE_FIELDS)
        if not isinstance(piece, str):
            raise ValidationError(f"extractions[{idx}].informationPiece must be a string")

        is_instruction = _coerce_bool(item.get("isInstruction"))
        if is_instruction is None:
            raise ValidationError(f"extractions[{idx}].isInstruction must be a boolean")

        reasoning = _first_present(item, REASONING_FIELDS)
        if reasoning is None:
            reasoning = ""
        if not isinstance(reasoning, str):
            raise ValidationError(f"extractions[{idx}].reasoning must be a string")

        rows.append(
            (piece.strip(), is_instruction, reasoning.strip(), _coerce_rank(item.get("rank")))
        )

    if _ranks_are_permutation([row[3] for row in rows]):
        ranked = sorted(rows, key=lambda row: row[3] or 0)
    else:
        ranked = [(piece, flag, reason, idx + 1) for idx, (piece, flag, reason, _) in enumerate(rows)]

    return [
        Extraction(
            information_piece=piece,
            is_instruction=flag,
            reasoning=reason,
            rank=rank,
        )
        for piece, flag, reason, rank in ranked
    ]


def _text_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


def validate_verification_response(obj: Any) -> VerificationResult:
    """
    Validate a verification response.

    Raises:
        ValidationError: If isComprehensive is not a boolean, confidenceScore
            is not a number in [0, 1], missedInformation is not an array,
            or summary is not a string
    """
    if not isinstance(obj, Mapping):
        raise ValidationError("Verification response is not an object")

    is_comprehensive = obj.get("isComprehensive")
    if not isinstance(is_comprehensive, bool):
        raise ValidationError("isComprehensive must be a boolean")

    score = obj.get("confidenceScore")
    if (
        isinstance(score, bool)
        or not isinstance(score, (int, float))
        or math.isnan(score)
        or not 0 <= score <= 1
    ):
        raise ValidationError("confidenceScore must be a number between 0 and 1")

    missed = obj.get("missedInformation") or []
    if not isinstance(missed, list):
        raise ValidationError("missedInformation must be an array")

    summary = obj.get("summary") or ""
    if not isinstance(summary, str):
        raise ValidationError("summary must be a string")

    missed_items = []
    for item in missed:
        if not isinstance(item, Mapping):
            item = {}
        importance = item.get("importance")
        missed_items.append(
            MissedInformationItem(
                information_piece=_text_or_empty(item.get("informationPiece")),
                is_instruction=bool(item.get("isInstruction")),
                reasoning=_text_or_empty(item.get("reasoning")),
                importance=importance if importance in IMPORTANCE_LEVELS else "medium",
            )
        )

    return VerificationResult(
        is_comprehensive=is_comprehensive,
        confidence_score=float(score),
        missed_information=missed_items,
        summary=summary,
    )
