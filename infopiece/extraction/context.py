"""
Conversation Context

Owns the two dialogues of one refinement run:

    extraction dialogue    system prompt, original text, then per iteration:
                           extraction response, self-check request,
                           verification recap, improvement request
    verification dialogue  system prompt, then per iteration:
                           verification request, verification response

Both are append-only and persist across iterations of a run. A resumed run
("continue refinement") starts a fresh context seeded with the original
text and the carried-forward feedback, not a replay of earlier turns.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING

from infopiece.extraction import prompts
from infopiece.types.messages import Message, Role

if TYPE_CHECKING:
    from infopiece.types.extractions import Extraction, MissedInformationItem, VerificationResult


def render_dialogue(messages: Sequence[Message]) -> str:
    """Render a dialogue as "role: content" blocks (the logged prompt text)."""
    return "\n\n".join(f"{message.role}: {message.content}" for message in messages)


class ConversationContext:
    """
    Extraction and verification dialogues for one refinement run.

    Args:
        original_text: Text being extracted from
        last_feedback: Feedback carried over from a previous run, appended
            as a user turn after the original text
    """

    def __init__(self, original_text: str, *, last_feedback: str | None = None) -> None:
        self.original_text = original_text
        self._extraction: list[Message] = [
            Message(role="system", content=prompts.EXTRACTION_SYSTEM_PROMPT),
            Message(role="user", content=original_text),
        ]
        if last_feedback and last_feedback.strip():
            self._extraction.append(Message(role="user", content=last_feedback))
        self._verification: list[Message] = [
            Message(role="system", content=prompts.VERIFICATION_SYSTEM_PROMPT),
        ]

    @property
    def extraction_messages(self) -> tuple[Message, ...]:
        return tuple(self._extraction)

    @property
    def verification_messages(self) -> tuple[Message, ...]:
        return tuple(self._verification)

    def _append(self, dialogue: list[Message], role: Role, content: str) -> None:
        dialogue.append(Message(role=role, content=content))

    def record_extraction(self, extractions: Sequence["Extraction"]) -> None:
        """Append the normalized extraction response as the assistant's turn."""
        payload = json.dumps([extraction.to_wire() for extraction in extractions], ensure_ascii=False)
        self._append(self._extraction, "assistant", payload)

    def request_verification(self, extractions: Sequence["Extraction"]) -> None:
        """Append the verification request to both dialogues."""
        self._append(
            self._extraction,
            "user",
            prompts.self_check_request(self.original_text, extractions),
        )
        self._append(
            self._verification,
            "user",
            prompts.verification_request(self.original_text, extractions),
        )

    def record_verification(self, verification: "VerificationResult") -> None:
        """Append the verification result to both dialogues."""
        self._append(
            self._verification,
            "assistant",
            json.dumps(verification.to_wire(), ensure_ascii=False),
        )
        self._append(self._extraction, "assistant", prompts.verification_outcome(verification))

    def request_improvement(self, missed: Sequence["MissedInformationItem"]) -> str:
        """Append an improvement request naming the missed items; returns its text."""
        feedback = prompts.improvement_request(missed)
        self._append(self._extraction, "user", feedback)
        return feedback

    def render_extraction_prompt(self) -> str:
        return render_dialogue(self._extraction)

    def render_verification_prompt(self) -> str:
        return render_dialogue(self._verification)
