"""Conversation turn data models."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class ConversationTurn:
    """One user message and the bot's reply, as stored."""
    id: int
    user_message: str
    bot_response: str
    timestamp: datetime
    embedding: Optional[Tuple[float, ...]] = None

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None


@dataclass(frozen=True)
class TurnInput:
    """A turn about to be appended; the store assigns id and timestamp."""
    user_message: str
    bot_response: str
    embedding: Optional[Tuple[float, ...]] = None
