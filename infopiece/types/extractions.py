"""
Extraction Types

Extraction Models (output of the extraction call, after normalization):
    - Extraction: One ranked information piece

Verification Models (output of the verification call):
    - Importance: low / medium / high
    - MissedInformationItem: Something the verifier thinks was left out
    - VerificationResult: Completeness assessment of an extraction batch
"""

from typing import Literal

from pydantic import Field

from infopiece.types.base import WireModel

Importance = Literal["low", "medium", "high"]

IMPORTANCE_LEVELS: tuple[str, ...] = ("low", "medium", "high")


class Extraction(WireModel):
    """
    A single extracted information piece.

    Attributes:
        information_piece: Concise statement (usually under ten words)
        is_instruction: True for actionable items, False for plain information
        reasoning: Why the model considered this piece essential
        rank: Position within its batch (1 = most important)
        accepted: Caller's review decision; None until a caller decides.
            The model never produces this field.
    """

    information_piece: str
    is_instruction: bool
    reasoning: str = ""
    rank: int
    accepted: bool | None = None

    @property
    def label(self) -> str:
        """INSTRUCTION or INFORMATION, as shown in prompts and reports."""
        return "INSTRUCTION" if self.is_instruction else "INFORMATION"


class MissedInformationItem(WireModel):
    """An information piece the verifier believes is missing."""

    information_piece: str = ""
    is_instruction: bool = False
    reasoning: str = ""
    importance: Importance = "medium"


class VerificationResult(WireModel):
    """
    Verification of an extraction batch.

    Verification output is advisory: text fields default to empty rather
    than failing, but the decision fields are strictly typed.
    """

    is_comprehensive: bool
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    missed_information: list[MissedInformationItem] = Field(default_factory=list)
    summary: str = ""

    def needs_refinement(self, confidence_threshold: float = 0.8) -> bool:
        """True when the batch is incomplete or the verifier is not confident enough."""
        return (not self.is_comprehensive) or self.confidence_score < confidence_threshold
