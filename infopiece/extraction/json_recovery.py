"""
Raw-Text JSON Recovery

Fallback parser for model responses that arrive as free text instead of a
pre-parsed object: code-fenced JSON, or JSON followed by commentary.

Algorithm:
    1. If the text contains a fenced block (``` or ```json), use its interior.
    2. Find the first "{" and scan forward tracking brace depth.
    3. Each time depth returns to zero, try to parse the span so far.
    4. Return the first span that parses; otherwise raise ParseError.

Only the first balanced, parseable object starting at the first "{" is
accepted. Braces inside JSON strings are counted like any other brace,
so an object whose strings contain unbalanced braces is not recovered.
"""

from __future__ import annotations

import json
import re
from typing import Any

from infopiece.exceptions import ParseError

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def extract_first_json_object(text: str) -> str:
    """
    Locate the first balanced, parseable JSON object in `text`.

    Args:
        text: Raw model output

    Returns:
        The JSON object substring

    Raises:
        ParseError: If no parseable object is found
    """
    fence = _FENCE_RE.search(text)
    if fence and fence.group(1):
        text = fence.group(1).strip()

    start = text.find("{")
    if start == -1:
        raise ParseError("Could not find JSON object in model response content")

    depth = 0
    for idx in range(start, len(text)):
        char = text[idx]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                candidate = text[start : idx + 1]
                try:
                    json.loads(candidate)
                except json.JSONDecodeError:
                    continue
                return candidate

    raise ParseError("Could not find JSON object in model response content")


def parse_json_object(text: str) -> Any:
    """Recover and decode the first JSON object in `text`."""
    return json.loads(extract_first_json_object(text))
