"""
Response Schemas

JSON schemas sent to the completion service as structured-output targets.
Both are strict: every property is required and additional properties are
forbidden. Responses are still validated locally (see validation.py) since
a raw-text fallback may bypass the service-side schema.
"""

from __future__ import annotations

from typing import Any

MAX_EXTRACTIONS = 5

EXTRACTION_SCHEMA_NAME = "extraction_response"
VERIFICATION_SCHEMA_NAME = "verification_response"

EXTRACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "extractions": {
            "type": "array",
            "minItems": 1,
            "maxItems": MAX_EXTRACTIONS,
            "items": {
                "type": "object",
                "properties": {
                    "informationPiece": {"type": "string"},
                    "isInstruction": {"type": "boolean"},
                    "reasoning": {"type": "string"},
                    "rank": {"type": "integer", "minimum": 1, "maximum": MAX_EXTRACTIONS},
                },
                "required": ["informationPiece", "isInstruction", "reasoning", "rank"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["extractions"],
    "additionalProperties": False,
}

VERIFICATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "isComprehensive": {"type": "boolean"},
        "confidenceScore": {"type": "number", "minimum": 0, "maximum": 1},
        "missedInformation": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "informationPiece": {"type": "string"},
                    "isInstruction": {"type": "boolean"},
                    "reasoning": {"type": "string"},
                    "importance": {"type": "string", "enum": ["low", "medium", "high"]},
                },
                "required": ["informationPiece", "isInstruction", "reasoning", "importance"],
                "additionalProperties": False,
            },
        },
        "summary": {"type": "string"},
    },
    "required": ["isComprehensive", "confidenceScore", "missedInformation", "summary"],
    "additionalProperties": False,
}


def response_format(name: str, schema: dict[str, Any]) -> dict[str, Any]:
    """Wrap a schema in the named, strict json_schema envelope."""
    return {"name": name, "strict": True, "schema": schema}
