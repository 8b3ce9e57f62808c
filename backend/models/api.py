"""Request and response models for the chat API."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Incoming chat message."""
    message: str = Field(..., description="The user's message")


class ChatMetadata(BaseModel):
    """How the reply was produced."""
    context_turns: int
    embedding_available: bool
    retrieval_available: bool
    generation_ok: bool
    persisted: bool
    turn_id: Optional[int] = None
    latency_ms: int


class ChatResponse(BaseModel):
    """Reply to a chat message."""
    response: str
    metadata: ChatMetadata


class TurnView(BaseModel):
    """A stored turn as exposed by the history endpoint."""
    id: int
    user_message: str
    bot_response: str
    timestamp: datetime
    has_embedding: bool


class HistoryResponse(BaseModel):
    """Most recent turns, newest first."""
    turns: List[TurnView]
    count: int
