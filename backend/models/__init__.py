"""Data models for MimicChat."""
from .error import ServiceError
from .turn import ConversationTurn, TurnInput
from .messages import EmbeddingRequest, EmbeddingResult, GenerationRequest, GenerationResult
from .api import ChatRequest, ChatResponse, ChatMetadata, TurnView, HistoryResponse

__all__ = [
    "ServiceError",
    "ConversationTurn",
    "TurnInput",
    "EmbeddingRequest",
    "EmbeddingResult",
    "GenerationRequest",
    "GenerationResult",
    "ChatRequest",
    "ChatResponse",
    "ChatMetadata",
    "TurnView",
    "HistoryResponse",
]
