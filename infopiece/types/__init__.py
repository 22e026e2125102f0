"""
Type Definitions

Pydantic models for all data structures.

Message Models:
    - Message - One dialogue turn sent to the completion service
    - ConversationMessage, Conversation - Extraction inputs

Extraction Models:
    - Extraction - Ranked information piece
    - MissedInformationItem, VerificationResult - Verifier output

Result Models:
    - Interaction, IterationStep, ProcessingSession - Session log
    - ProcessedMessage, RefinementContext - Refinement results
    - ProcessedConversation, ConversationSummary - Batch results

All types are:
    - Pydantic BaseModel subclasses
    - Serialized with camelCase keys (model.to_wire())
    - Constructible from either snake_case or camelCase keys
"""

from infopiece.types.extractions import (
    IMPORTANCE_LEVELS,
    Extraction,
    Importance,
    MissedInformationItem,
    VerificationResult,
)
from infopiece.types.messages import Conversation, ConversationMessage, Message, Role
from infopiece.types.results import (
    ConversationSummary,
    FinalResult,
    Interaction,
    InteractionKind,
    IterationStep,
    ProcessedConversation,
    ProcessedMessage,
    ProcessingSession,
    RefinementContext,
)

__all__ = [
    # Messages
    "Message",
    "Role",
    "ConversationMessage",
    "Conversation",
    # Extractions
    "Extraction",
    "Importance",
    "IMPORTANCE_LEVELS",
    "MissedInformationItem",
    "VerificationResult",
    # Results
    "Interaction",
    "InteractionKind",
    "IterationStep",
    "FinalResult",
    "ProcessingSession",
    "ProcessedMessage",
    "RefinementContext",
    "ConversationSummary",
    "ProcessedConversation",
]
