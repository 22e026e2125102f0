"""
infopiece - Iterative Information Piece Extraction

Extracts 1-5 essential, ranked information pieces from free text with a
language model, verifies the result for completeness, and refines it over
a bounded number of iterations. Every model call is recorded in a session
log that can be exported as json, text or csv.

Example:
    >>> from infopiece import refine_text
    >>> result = await refine_text(
    ...     "Ship the release on Friday once QA signs off; notify support.",
    ...     include_verification=True,
    ...     max_iterations=3,
    ... )
    >>> for extraction in result.extractions:
    ...     print(extraction.rank, extraction.information_piece)

Main Classes:
    ExtractionRefiner: The extract / verify / refine loop
    ExtractorConfig: Configuration management
    OpenAICompletionClient: Completion client for the OpenAI API
"""

__version__ = "0.1.0"

# Public API - lazy imports to avoid loading provider dependencies
def __getattr__(name: str):
    """Lazy import public API components."""

    if name == "ExtractionRefiner":
        from infopiece.extraction.refiner import ExtractionRefiner
        return ExtractionRefiner

    if name == "ExtractorConfig":
        from infopiece.config.settings import ExtractorConfig
        return ExtractorConfig

    if name == "OpenAICompletionClient":
        from infopiece.providers.llm.openai import OpenAICompletionClient
        return OpenAICompletionClient

    # Convenience functions
    if name in ("refine_text", "refine_text_sync", "continue_refinement", "continue_refinement_sync"):
        from infopiece.extraction import refiner
        return getattr(refiner, name)

    if name == "process_conversation":
        from infopiece.extraction.batch import process_conversation
        return process_conversation

    # Types
    if name in (
        "Extraction",
        "VerificationResult",
        "ConversationMessage",
        "Conversation",
        "ProcessedMessage",
        "ProcessingSession",
        "ProcessedConversation",
    ):
        from infopiece import types
        return getattr(types, name)

    raise AttributeError(f"module 'infopiece' has no attribute {name!r}")


__all__ = [
    # Main classes
    "ExtractionRefiner",
    "ExtractorConfig",
    "OpenAICompletionClient",

    # Convenience functions
    "refine_text",
    "refine_text_sync",
    "continue_refinement",
    "continue_refinement_sync",
    "process_conversation",

    # Types
    "Extraction",
    "VerificationResult",
    "ConversationMessage",
    "Conversation",
    "ProcessedMessage",
    "ProcessingSession",
    "ProcessedConversation",

    # Version
    "__version__",
]
