"""
Extraction Refiner

Iterative extract / verify / refine loop for a single message.

States per iteration:
    Extracting  extraction call, validated and normalized, recorded in the
                extraction dialogue
    Verifying   only when verification is enabled and something was
                extracted; verification call, validated, recorded in both
                dialogues
    Deciding    continue while verification is enabled, the verifier is not
                satisfied (not comprehensive or score below the confidence
                threshold) and the per-call iteration limit is not reached

The iteration counter starts at the length of any supplied prior history,
so a resumed run numbers its steps after the ones it was given.

Failures never propagate: the first exception aborts the run, its message
is stored in ProcessedMessage.processing_error, and the session log still
covers every interaction that completed.

Example:
    >>> refiner = ExtractionRefiner(client, config)
    >>> result = await refiner.refine(message, include_verification=True, max_iterations=3)
    >>> [e.information_piece for e in result.extractions]
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from infopiece.config.settings import ExtractorConfig
from infopiece.extraction.context import ConversationContext, render_dialogue
from infopiece.extraction.prompts import resume_feedback
from infopiece.extraction.schemas import (
    EXTRACTION_SCHEMA,
    EXTRACTION_SCHEMA_NAME,
    VERIFICATION_SCHEMA,
    VERIFICATION_SCHEMA_NAME,
)
from infopiece.extraction.session_log import SessionLogger, epoch_ms
from infopiece.extraction.validation import (
    validate_extraction_response,
    validate_verification_response,
)
from infopiece.types.extractions import Extraction, VerificationResult
from infopiece.types.messages import ConversationMessage, Message
from infopiece.types.results import (
    Interaction,
    InteractionKind,
    IterationStep,
    ProcessedMessage,
    RefinementContext,
)

if TYPE_CHECKING:
    from infopiece.providers.base import CompletionClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]
"""Called with (stage, iteration number); stage is "extracting" or "verifying"."""


class ExtractionRefiner:
    """
    Runs the refinement loop against a completion client.

    Args:
        client: Completion client used for both extraction and verification
        config: Optional configuration (thresholds and defaults)
    """

    def __init__(
        self,
        client: "CompletionClient",
        config: ExtractorConfig | None = None,
    ) -> None:
        self.client = client
        self.config = config or ExtractorConfig()

    async def refine(
        self,
        message: ConversationMessage,
        *,
        include_verification: bool | None = None,
        max_iterations: int | None = None,
        context: RefinementContext | None = None,
        progress: ProgressCallback | None = None,
    ) -> ProcessedMessage:
        """
        Extract information pieces from one message.

        Args:
            message: Message to process
            include_verification: Verify each extraction (default from config)
            max_iterations: Per-call iteration limit (default from config)
            context: Prior history and feedback when continuing a run
            progress: Optional stage callback

        Returns:
            ProcessedMessage; check processing_error for failures
        """
        result = ProcessedMessage(original_message=message)
        text = message.content
        if message.role == "system" or len(text.strip()) < self.config.min_message_length:
            return result

        verify = self.config.include_verification if include_verification is None else include_verification
        limit = self.config.max_iterations if max_iterations is None else max_iterations
        threshold = self.config.confidence_threshold

        history: list[IterationStep] = []
        last_feedback = None
        if context is not None:
            history = [step.model_copy(deep=True) for step in context.iteration_history]
            last_feedback = context.last_feedback

        session = SessionLogger()
        dialogue = ConversationContext(text, last_feedback=last_feedback)
        iteration = len(history)
        extractions: list[Extraction] = []
        verification: VerificationResult | None = None

        try:
            while iteration < limit:
                iteration += 1

                # --- Extracting ---
                _notify(progress, "extracting", iteration)
                extraction_call = await self._call(
                    session,
                    "extraction",
                    dialogue.extraction_messages,
                    EXTRACTION_SCHEMA,
                    EXTRACTION_SCHEMA_NAME,
                )
                extractions = validate_extraction_response(extraction_call.response)
                dialogue.record_extraction(extractions)

                step_interactions = [extraction_call]
                step_verification = None
                feedback = None
                should_continue = False

                # --- Verifying ---
                if verify and extractions:
                    _notify(progress, "verifying", iteration)
                    dialogue.request_verification(extractions)
                    verification_call = await self._call(
                        session,
                        "verification",
                        dialogue.verification_messages,
                        VERIFICATION_SCHEMA,
                        VERIFICATION_SCHEMA_NAME,
                    )
                    step_interactions.append(verification_call)
                    verification = validate_verification_response(verification_call.response)
                    dialogue.record_verification(verification)
                    step_verification = verification

                    # --- Deciding ---
                    should_continue = verification.needs_refinement(threshold) and iteration < limit
                    if should_continue and verification.missed_information:
                        feedback = dialogue.request_improvement(verification.missed_information)

                history.append(
                    IterationStep(
                        iteration_number=iteration,
                        extractions=[e.model_copy() for e in extractions],
                        verification=step_verification,
                        feedback=feedback,
                        timestamp=epoch_ms(),
                        interactions=step_interactions,
                    )
                )

                if step_verification is not None:
                    logger.info(
                        f"Iteration {iteration}: {len(extractions)} extractions, "
                        f"confidence {step_verification.confidence_score:.2f}, "
                        f"comprehensive={step_verification.is_comprehensive}"
                    )
                else:
                    logger.info(f"Iteration {iteration}: {len(extractions)} extractions")

                if not should_continue:
                    break

        except Exception as e:
            error = str(e) or "Unknown processing error"
            logger.warning(f"Refinement aborted at iteration {iteration}: {error}")
            return result.model_copy(
                update={
                    "extractions": extractions,
                    "verification": verification,
                    "processing_error": error,
                    "iteration_count": iteration,
                    "iteration_history": history,
                    "full_log": session.build(text, iteration, extractions, verification),
                }
            )

        return result.model_copy(
            update={
                "extractions": extractions,
                "verification": verification,
                "iteration_count": iteration,
                "iteration_history": history,
                "full_log": session.build(text, iteration, extractions, verification),
            }
        )

    async def _call(
        self,
        session: SessionLogger,
        kind: InteractionKind,
        messages: Sequence[Message],
        schema: dict[str, Any],
        schema_name: str,
    ) -> Interaction:
        prompt = render_dialogue(messages)
        logger.debug(f"{kind} call: {len(messages)} messages, {len(prompt)} chars")
        return await session.record(
            kind,
            prompt,
            lambda: self.client.complete(messages, schema, schema_name=schema_name),
        )


def _notify(progress: ProgressCallback | None, stage: str, iteration: int) -> None:
    if progress is not None:
        progress(stage, iteration)


# -----------------------------------------------------------------------------
# Convenience API
# -----------------------------------------------------------------------------


def _build_refiner(
    client: "CompletionClient | None",
    config: ExtractorConfig | None,
    api_key: str | None,
) -> ExtractionRefiner:
    config = config or ExtractorConfig()
    if client is None:
        from infopiece.providers.llm.openai import OpenAICompletionClient

        client = OpenAICompletionClient.from_config(config, api_key=api_key)
    return ExtractionRefiner(client, config)


async def refine_text(
    text: str,
    *,
    client: "CompletionClient | None" = None,
    config: ExtractorConfig | None = None,
    api_key: str | None = None,
    include_verification: bool | None = None,
    max_iterations: int | None = None,
    progress: ProgressCallback | None = None,
) -> ProcessedMessage:
    """
    Extract information pieces from a piece of text.

    Without a client, an OpenAI client is built from config and the
    resolved API key.

    Raises:
        MissingCredentialError: If a client must be built and no key resolves
    """
    refiner = _build_refiner(client, config, api_key)
    return await refiner.refine(
        ConversationMessage(role="user", content=text),
        include_verification=include_verification,
        max_iterations=max_iterations,
        progress=progress,
    )


async def continue_refinement(
    previous: ProcessedMessage,
    *,
    client: "CompletionClient | None" = None,
    config: ExtractorConfig | None = None,
    api_key: str | None = None,
    progress: ProgressCallback | None = None,
) -> ProcessedMessage:
    """
    Run one more verified iteration on a previous result.

    The previous history is copied, the last verification is fed back as
    a user turn, and acceptance decisions are carried over by position
    (undecided positions default to accepted).

    Raises:
        ValueError: If the previous result already reached the continue ceiling
        MissingCredentialError: If a client must be built and no key resolves
    """
    refiner = _build_refiner(client, config, api_key)
    done = previous.completed_iterations
    if done >= refiner.config.continue_ceiling:
        raise ValueError(
            f"Cannot continue refinement: {done} iterations already run "
            f"(limit {refiner.config.continue_ceiling})"
        )

    feedback = resume_feedback(previous.verification) if previous.verification else ""
    context = RefinementContext.from_processed(previous, last_feedback=feedback)
    result = await refiner.refine(
        previous.original_message,
        include_verification=True,
        max_iterations=done + 1,
        context=context,
        progress=progress,
    )
    return result.with_acceptance(default=True, previous=previous.extractions)


def refine_text_sync(text: str, **kwargs: Any) -> ProcessedMessage:
    """Synchronous wrapper for refine_text()."""
    return asyncio.run(refine_text(text, **kwargs))


def continue_refinement_sync(previous: ProcessedMessage, **kwargs: Any) -> ProcessedMessage:
    """Synchronous wrapper for continue_refinement()."""
    return asyncio.run(continue_refinement(previous, **kwargs))
