"""
Exceptions

Error taxonomy for the extraction engine and its collaborators.

Engine errors:
    - MissingCredentialError: no usable API key could be resolved
    - TransportError: the completion service returned a non-success response
    - ParseError: no balanced JSON object could be recovered from raw text
    - ValidationError: a structured response violated its schema
    - ProcessingError: a failure recorded on a ProcessedMessage, re-raised on demand

Collaborator errors:
    - ConversationFormatError: a conversation export could not be parsed
    - CredentialStoreError: the local credential file could not be read or written

All errors derive from InfoPieceError so callers can catch the family at once.
"""

from __future__ import annotations


class InfoPieceError(Exception):
    """Base class for all infopiece errors."""


class MissingCredentialError(InfoPieceError):
    """No API key was supplied, persisted, or found in the environment."""


class TransportError(InfoPieceError):
    """Non-success response from the completion service."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(InfoPieceError):
    """No JSON object could be recovered from a model response."""


class ValidationError(InfoPieceError):
    """A model response failed structural or range validation."""


class ProcessingError(InfoPieceError):
    """A refinement run failed; carries the recorded error message."""


class ConversationFormatError(InfoPieceError):
    """A conversation export file has an unrecognised structure."""


class CredentialStoreError(InfoPieceError):
    """The persisted credential file is unreadable or unwritable."""


__all__ = [
    "InfoPieceError",
    "MissingCredentialError",
    "TransportError",
    "ParseError",
    "ValidationError",
    "ProcessingError",
    "ConversationFormatError",
    "CredentialStoreError",
]
