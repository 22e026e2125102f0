"""
Abstract Provider Interfaces

Base class for completion clients.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from infopiece.types.messages import Message


class CompletionResponse(BaseModel):
    """
    Result of one completion call.

    Attributes:
        parsed: Object conforming (structurally) to the requested schema
        raw_text: Raw text content of the model message, if any
        input_tokens: Prompt tokens reported by the provider
        output_tokens: Completion tokens reported by the provider
    """

    parsed: Any
    raw_text: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None


class CompletionClient(ABC):
    """Abstract interface for completion services."""

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[Message],
        schema: dict[str, Any],
        *,
        schema_name: str,
    ) -> CompletionResponse:
        """
        Send an ordered dialogue with a target JSON schema.

        Raises:
            TransportError: On a non-success response
            ParseError: If no JSON object can be recovered from raw output
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Current model name."""
        ...
