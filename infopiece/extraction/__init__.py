"""
Extraction Engine

Extract / verify / refine loop over a completion client.

Modules:
    schemas: Strict JSON schemas sent with each call
    validation: Response validation and normalization (aliases, rank repair)
    json_recovery: Recover the first JSON object from free text
    prompts: System prompts and turn templates
    context: Extraction and verification dialogues of one run
    session_log: Interaction log and session assembly
    refiner: The refinement loop and convenience functions
    batch: Sequential conversation processing and result payloads

Example:
    >>> from infopiece.extraction import ExtractionRefiner
    >>> refiner = ExtractionRefiner(client, config)
    >>> result = await refiner.refine(message, include_verification=True, max_iterations=3)
"""

from infopiece.extraction.batch import (
    build_logs_payload,
    build_results_payload,
    build_text_logs_payload,
    build_text_results_payload,
    continue_conversation_message,
    process_conversation,
)
from infopiece.extraction.context import ConversationContext
from infopiece.extraction.json_recovery import extract_first_json_object, parse_json_object
from infopiece.extraction.refiner import (
    ExtractionRefiner,
    continue_refinement,
    continue_refinement_sync,
    refine_text,
    refine_text_sync,
)
from infopiece.extraction.session_log import SessionLogger
from infopiece.extraction.validation import (
    validate_extraction_response,
    validate_verification_response,
)

__all__ = [
    "ExtractionRefiner",
    "refine_text",
    "refine_text_sync",
    "continue_refinement",
    "continue_refinement_sync",
    "process_conversation",
    "continue_conversation_message",
    "build_results_payload",
    "build_logs_payload",
    "build_text_results_payload",
    "build_text_logs_payload",
    "ConversationContext",
    "SessionLogger",
    "extract_first_json_object",
    "parse_json_object",
    "validate_extraction_response",
    "validate_verification_response",
]
