"""Append-only conversation store: interface and in-memory implementation."""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import numpy as np

from config import EMBEDDING_DIMENSION
from models.turn import ConversationTurn, TurnInput
from services.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class ConversationStore(ABC):
    """
    Append-only log of conversation turns with two read queries.

    Similarity is Euclidean (L2) distance over the embedding column, for
    every implementation. Turns without an embedding are reachable only
    through find_recent.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.dimension = dimension

    @abstractmethod
    def append(self, turn_input: TurnInput) -> int:
        """
        Insert a new turn atomically.

        Returns:
            The id assigned to the turn

        Raises:
            PersistenceFailure: If the turn could not be stored
        """

    @abstractmethod
    def find_similar(self, query: Sequence[float], k: int) -> List[ConversationTurn]:
        """
        Return at most k embedded turns, nearest first.

        Raises:
            ValueError: If query is empty or k is not positive
            RetrievalUnavailable: If the store cannot be queried
        """

    @abstractmethod
    def find_recent(self, n: int) -> List[ConversationTurn]:
        """
        Return the n most recent turns, newest first.

        Raises:
            RetrievalUnavailable: If the store cannot be queried
        """

    @abstractmethod
    def count(self) -> int:
        """Total number of stored turns."""

    def _check_embedding(self, embedding: Optional[Sequence[float]]) -> None:
        """Reject vectors whose length differs from the store's dimension."""
        if embedding is not None and len(embedding) != self.dimension:
            raise PersistenceFailure.from_code(
                "DIMENSION_MISMATCH",
                f"Expected {self.dimension} dimensions, got {len(embedding)}",
                {"expected": self.dimension, "actual": len(embedding)}
            )

    @staticmethod
    def _check_query(query: Sequence[float], k: int) -> None:
        if query is None or len(query) == 0:
            raise ValueError("Query embedding cannot be empty")
        if k <= 0:
            raise ValueError("k must be positive")


class InMemoryConversationStore(ConversationStore):
    """
    Process-local store with a brute-force nearest-neighbor scan.

    Suitable for tests, demos and small corpora; contents are lost on exit.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        super().__init__(dimension)
        self._turns: List[ConversationTurn] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        logger.info(f"Initialized InMemoryConversationStore (dim={dimension})")

    def append(self, turn_input: TurnInput) -> int:
        self._check_embedding(turn_input.embedding)
        embedding = tuple(float(x) for x in turn_input.embedding) if turn_input.embedding is not None else None

        with self._lock:
            turn = ConversationTurn(
                id=next(self._ids),
                user_message=turn_input.user_message,
                bot_response=turn_input.bot_response,
                timestamp=datetime.now(timezone.utc),
                embedding=embedding
            )
            self._turns.append(turn)

        logger.debug(f"Appended turn {turn.id} (embedding={'yes' if embedding else 'no'})")
        return turn.id

    def find_similar(self, query: Sequence[float], k: int) -> List[ConversationTurn]:
        self._check_query(query, k)
        if len(query) != self.dimension:
            raise ValueError(f"Query has {len(query)} dimensions, store expects {self.dimension}")

        with self._lock:
            candidates = [turn for turn in self._turns if turn.embedding is not None]

        if not candidates:
            return []

        matrix = np.asarray([turn.embedding for turn in candidates], dtype=np.float64)
        distances = np.linalg.norm(matrix - np.asarray(query, dtype=np.float64), axis=1)

        # Stable sort keeps insertion order among equal distances
        order = np.argsort(distances, kind="stable")[:k]
        return [candidates[i] for i in order]

    def find_recent(self, n: int) -> List[ConversationTurn]:
        if n <= 0:
            return []

        with self._lock:
            snapshot = list(self._turns)

        snapshot.sort(key=lambda turn: (turn.timestamp, turn.id), reverse=True)
        return snapshot[:n]

    def count(self) -> int:
        with self._lock:
            return len(self._turns)
