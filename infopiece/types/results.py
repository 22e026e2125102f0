"""
Result Types

Session Log Models (one refinement run):
    - Interaction: One model call (prompt, parsed/raw response, timing)
    - IterationStep: Snapshot of one extract/verify iteration
    - FinalResult: Final extractions and verification of a run
    - ProcessingSession: Complete record of a run, produced even on failure

Aggregate Models:
    - ProcessedMessage: What a refinement run returns to its caller
    - RefinementContext: Copied prior state handed to a "continue" run

Batch Models:
    - ConversationSummary: Counters for a processed conversation
    - ProcessedConversation: All processed messages of a conversation

Timestamps are epoch milliseconds throughout.
"""

from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from infopiece.exceptions import ProcessingError
from infopiece.types.base import WireModel
from infopiece.types.extractions import Extraction, VerificationResult
from infopiece.types.messages import Conversation, ConversationMessage

if TYPE_CHECKING:
    from infopiece.config.settings import ExtractorConfig

InteractionKind = Literal["extraction", "verification"]


# -----------------------------------------------------------------------------
# Session Log Models
# -----------------------------------------------------------------------------


class Interaction(WireModel):
    """
    One call to the completion service.

    Attributes:
        timestamp: Call start time
        kind: "extraction" or "verification" (serialized as "type")
        prompt: The dialogue sent, rendered as "role: content" blocks
        response: Parsed response object as returned by the client
        raw_response: Raw text of the response
        processing_time: Wall-clock duration of the call (ms)
        input_tokens: Prompt tokens, when the provider reports usage
        output_tokens: Completion tokens, when the provider reports usage
    """

    timestamp: int
    kind: InteractionKind = Field(..., alias="type")
    prompt: str
    response: Any = None
    raw_response: str | None = None
    processing_time: int = 0
    input_tokens: int | None = None
    output_tokens: int | None = None


class IterationStep(WireModel):
    """
    Record of one refinement iteration.

    feedback is only present when another iteration follows and the
    verifier named missed items.
    """

    iteration_number: int = Field(..., ge=1)
    extractions: list[Extraction] = Field(default_factory=list)
    verification: VerificationResult | None = None
    feedback: str | None = None
    timestamp: int
    interactions: list[Interaction] = Field(default_factory=list)


class FinalResult(WireModel):
    """Final extractions and verification of a run."""

    extractions: list[Extraction] = Field(default_factory=list)
    verification: VerificationResult | None = None


class ProcessingSession(WireModel):
    """
    The session log of one refinement run.

    Created once per top-level call and always returned, including on
    failure, with whatever interactions completed.
    """

    session_id: str
    start_timestamp: int
    end_timestamp: int
    original_text: str
    total_iterations: int = 0
    all_interactions: list[Interaction] = Field(default_factory=list)
    final_result: FinalResult = Field(default_factory=FinalResult)

    @property
    def duration_ms(self) -> int:
        """Total wall-clock duration of the run."""
        return self.end_timestamp - self.start_timestamp


# -----------------------------------------------------------------------------
# Aggregate Models
# -----------------------------------------------------------------------------


class ProcessedMessage(WireModel):
    """
    Aggregate result of a refinement run.

    A run never raises to its caller: failures are recorded in
    processing_error, possibly alongside zero extractions.
    """

    original_message: ConversationMessage
    extractions: list[Extraction] = Field(default_factory=list)
    verification: VerificationResult | None = None
    processing_error: str | None = None
    iteration_count: int | None = None
    iteration_history: list[IterationStep] | None = None
    full_log: ProcessingSession | None = None

    @property
    def failed(self) -> bool:
        return self.processing_error is not None

    def raise_for_error(self) -> None:
        """Raise ProcessingError if the run recorded a failure."""
        if self.processing_error is not None:
            raise ProcessingError(self.processing_error)

    @property
    def completed_iterations(self) -> int:
        """
        Iterations that finished, which is what a continue run builds on.

        A failed run counts the iteration it failed in, but that iteration
        has no step in the history.
        """
        if self.iteration_history is not None:
            return len(self.iteration_history)
        return self.iteration_count or 0

    def can_continue(
        self,
        config: "ExtractorConfig | None" = None,
        *,
        confidence_threshold: float | None = None,
        ceiling: int | None = None,
    ) -> bool:
        """
        Whether a "continue refinement" call should be offered.

        Requires a verification that still asks for refinement and fewer
        than `ceiling` completed iterations. Threshold and ceiling default
        to the config's values (0.8 and 3 without a config).
        """
        if confidence_threshold is None:
            confidence_threshold = config.confidence_threshold if config is not None else 0.8
        if ceiling is None:
            ceiling = config.continue_ceiling if config is not None else 3
        if self.verification is None:
            return False
        return (
            self.verification.needs_refinement(confidence_threshold)
            and self.completed_iterations < ceiling
        )

    def with_acceptance(
        self,
        default: bool = True,
        previous: list[Extraction] | None = None,
    ) -> "ProcessedMessage":
        """
        Return a copy whose extractions carry an explicit accepted flag.

        When `previous` is given, acceptance states are carried over by
        index; positions without a decided predecessor get `default`.
        """
        extractions = []
        for idx, extraction in enumerate(self.extractions):
            accepted = default
            if previous is not None and idx < len(previous) and previous[idx].accepted is not None:
                accepted = previous[idx].accepted
            extractions.append(extraction.model_copy(update={"accepted": accepted}))
        return self.model_copy(update={"extractions": extractions})

    def toggle_acceptance(self, index: int) -> "ProcessedMessage":
        """Return a copy with one extraction's accepted flag flipped (unset -> True)."""
        if not 0 <= index < len(self.extractions):
            raise IndexError(f"No extraction at index {index}")
        extractions = list(self.extractions)
        current = extractions[index].accepted
        extractions[index] = extractions[index].model_copy(
            update={"accepted": current is not True}
        )
        return self.model_copy(update={"extractions": extractions})


class RefinementContext(WireModel):
    """
    Prior state handed to a "continue refinement" run.

    Always a deep copy: the new run never mutates the previous session.
    """

    iteration_history: list[IterationStep] = Field(default_factory=list)
    last_feedback: str | None = None

    @classmethod
    def from_processed(
        cls,
        previous: ProcessedMessage,
        last_feedback: str | None = None,
    ) -> "RefinementContext":
        """Build a context from a previous result, copying its history."""
        history = [step.model_copy(deep=True) for step in previous.iteration_history or []]
        if last_feedback is None and history:
            last_feedback = history[-1].feedback
        return cls(iteration_history=history, last_feedback=last_feedback)


# -----------------------------------------------------------------------------
# Batch Models
# -----------------------------------------------------------------------------


class ConversationSummary(WireModel):
    """Counters for a processed conversation."""

    total_messages: int = 0
    processed_messages: int = 0
    total_extractions: int = 0
    errors: int = 0

    @classmethod
    def build(
        cls,
        conversation: Conversation,
        processed: list[ProcessedMessage],
    ) -> "ConversationSummary":
        return cls(
            total_messages=len(conversation.messages),
            processed_messages=len(processed),
            total_extractions=sum(len(pm.extractions) for pm in processed),
            errors=sum(1 for pm in processed if pm.processing_error),
        )


class ProcessedConversation(WireModel):
    """A conversation with every eligible message processed."""

    conversation: Conversation
    processed_messages: list[ProcessedMessage] = Field(default_factory=list)
    summary: ConversationSummary = Field(default_factory=ConversationSummary)

    def replace_message(self, index: int, message: ProcessedMessage) -> "ProcessedConversation":
        """Return a copy with one processed message replaced and the summary recomputed."""
        processed = list(self.processed_messages)
        processed[index] = message
        return self.model_copy(
            update={
                "processed_messages": processed,
                "summary": ConversationSummary.build(self.conversation, processed),
            }
        )
