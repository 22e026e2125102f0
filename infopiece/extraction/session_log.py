"""
Session Logging

Records every completion call of one refinement run and assembles the
ProcessingSession, also when the run fails part way.
"""

from __future__ import annotations

import json
import random
import string
import time
from collections.abc import Awaitable, Callable

from infopiece.providers.base import CompletionResponse
from infopiece.types.extractions import Extraction, VerificationResult
from infopiece.types.results import FinalResult, Interaction, InteractionKind, ProcessingSession

_SESSION_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def new_session_id() -> str:
    """Session id of the form session_<epoch ms>_<9 random chars>."""
    suffix = "".join(random.choices(_SESSION_SUFFIX_ALPHABET, k=9))
    return f"session_{epoch_ms()}_{suffix}"


class SessionLogger:
    """
    Interaction log for one refinement run.

    Interactions are appended in call order and never modified afterwards.
    """

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id or new_session_id()
        self.start_timestamp = epoch_ms()
        self._interactions: list[Interaction] = []

    @property
    def interactions(self) -> list[Interaction]:
        return list(self._interactions)

    async def record(
        self,
        kind: InteractionKind,
        prompt: str,
        call: Callable[[], Awaitable[CompletionResponse]],
    ) -> Interaction:
        """
        Time a completion call and append its interaction.

        Nothing is recorded if the call raises.
        """
        started = epoch_ms()
        start_ns = time.perf_counter_ns()
        response = await call()
        elapsed_ms = (time.perf_counter_ns() - start_ns) // 1_000_000

        interaction = Interaction(
            timestamp=started,
            kind=kind,
            prompt=prompt,
            response=response.parsed,
            raw_response=_raw_text(response),
            processing_time=elapsed_ms,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )
        self._interactions.append(interaction)
        return interaction

    def build(
        self,
        original_text: str,
        total_iterations: int,
        extractions: list[Extraction],
        verification: VerificationResult | None,
    ) -> ProcessingSession:
        """Close the session and return its log."""
        return ProcessingSession(
            session_id=self.session_id,
            start_timestamp=self.start_timestamp,
            end_timestamp=epoch_ms(),
            original_text=original_text,
            total_iterations=total_iterations,
            all_interactions=self.interactions,
            final_result=FinalResult(
                extractions=[e.model_copy() for e in extractions],
                verification=verification,
            ),
        )


def _raw_text(response: CompletionResponse) -> str:
    if response.raw_text is not None:
        return response.raw_text
    return json.dumps(response.parsed, indent=2, ensure_ascii=False, default=str)
