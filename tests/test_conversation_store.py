"""Unit tests for InMemoryConversationStore."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import math
import threading
import pytest
from models.turn import TurnInput
from services.conversation_store import InMemoryConversationStore
from services.errors import PersistenceFailure


def distance(a, b) -> float:
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


@pytest.fixture
def store():
    """Three-dimensional in-memory store."""
    return InMemoryConversationStore(dimension=3)


@pytest.fixture
def populated_store(store):
    """Store with five embedded turns and two without embeddings."""
    vectors = [
        (1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0),
        (0.0, 0.0, 1.0),
        (0.9, 0.1, 0.0),
        (0.5, 0.5, 0.5),
    ]
    for i, vector in enumerate(vectors):
        store.append(TurnInput(f"user {i}", f"bot {i}", vector))
    store.append(TurnInput("no vector a", "bot a"))
    store.append(TurnInput("no vector b", "bot b"))
    return store


class TestAppend:
    """Tests for append."""

    def test_assigns_increasing_ids(self, store):
        """Ids are assigned monotonically."""
        first = store.append(TurnInput("hi", "hello", (0.1, 0.2, 0.3)))
        second = store.append(TurnInput("bye", "see ya"))

        assert second > first

    def test_assigns_timestamp(self, store):
        """The store sets a timezone-aware timestamp."""
        store.append(TurnInput("hi", "hello"))

        turn = store.find_recent(1)[0]
        assert turn.timestamp.tzinfo is not None

    def test_turn_without_embedding(self, store):
        """Embedding is optional."""
        store.append(TurnInput("hi", "hello"))

        turn = store.find_recent(1)[0]
        assert turn.embedding is None
        assert not turn.has_embedding

    def test_rejects_wrong_dimension(self, store):
        """A vector of the wrong length is never stored."""
        with pytest.raises(PersistenceFailure) as exc_info:
            store.append(TurnInput("hi", "hello", (0.1, 0.2)))

        assert exc_info.value.error.code == "DIMENSION_MISMATCH"
        assert store.count() == 0

    def test_count(self, populated_store):
        """count() covers embedded and plain turns."""
        assert populated_store.count() == 7

    def test_concurrent_appends_get_unique_ids(self, store):
        """Parallel writers never share an id."""
        ids = []
        lock = threading.Lock()

        def writer(n):
            turn_id = store.append(TurnInput(f"msg {n}", "ok", (float(n), 0.0, 0.0)))
            with lock:
                ids.append(turn_id)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(ids)) == 20
        assert store.count() == 20


class TestFindSimilar:
    """Tests for find_similar."""

    def test_sorted_by_distance(self, populated_store):
        """Results come back nearest first."""
        query = (1.0, 0.0, 0.0)

        results = populated_store.find_similar(query, k=5)

        distances = [distance(turn.embedding, query) for turn in results]
        assert distances == sorted(distances)
        assert results[0].user_message == "user 0"
        assert results[1].user_message == "user 3"

    def test_only_embedded_turns(self, populated_store):
        """Turns without embeddings are never returned."""
        results = populated_store.find_similar((0.0, 0.0, 0.0), k=10)

        assert all(turn.embedding is not None for turn in results)
        assert "no vector a" not in [turn.user_message for turn in results]

    def test_k_bound(self, populated_store):
        """Never more than k results."""
        assert len(populated_store.find_similar((0.2, 0.2, 0.2), k=3)) == 3
        assert len(populated_store.find_similar((0.2, 0.2, 0.2), k=1)) == 1

    def test_fewer_than_k_returns_all_embedded(self, populated_store):
        """Fewer embedded turns than k: all of them, no padding."""
        assert len(populated_store.find_similar((0.2, 0.2, 0.2), k=50)) == 5

    def test_empty_store(self, store):
        """Zero matches is a normal, empty result."""
        assert store.find_similar((0.1, 0.2, 0.3), k=3) == []

    def test_only_unembedded_turns(self, store):
        """A store with no vectors has nothing to match."""
        store.append(TurnInput("hi", "hello"))

        assert store.find_similar((0.1, 0.2, 0.3), k=3) == []

    def test_invalid_k(self, populated_store):
        """k must be positive."""
        with pytest.raises(ValueError, match="k must be positive"):
            populated_store.find_similar((0.1, 0.2, 0.3), k=0)

    def test_empty_query(self, populated_store):
        """An empty query vector is rejected."""
        with pytest.raises(ValueError, match="Query embedding cannot be empty"):
            populated_store.find_similar([], k=3)

    def test_query_dimension_mismatch(self, populated_store):
        """A query of the wrong length is rejected."""
        with pytest.raises(ValueError, match="dimensions"):
            populated_store.find_similar((0.1, 0.2), k=3)


class TestFindRecent:
    """Tests for find_recent."""

    def test_newest_first(self, populated_store):
        """Recency results descend by timestamp."""
        results = populated_store.find_recent(7)

        assert [turn.user_message for turn in results[:2]] == ["no vector b", "no vector a"]
        timestamps = [turn.timestamp for turn in results]
        assert timestamps == sorted(timestamps, reverse=True)

    def test_includes_unembedded_turns(self, populated_store):
        """Recency covers every turn."""
        messages = [turn.user_message for turn in populated_store.find_recent(10)]

        assert "no vector a" in messages
        assert "user 0" in messages

    def test_limit(self, populated_store):
        """At most n turns."""
        assert len(populated_store.find_recent(3)) == 3

    def test_non_positive_limit(self, populated_store):
        """n <= 0 yields nothing."""
        assert populated_store.find_recent(0) == []


class TestAppendVisibility:
    """Append-only visibility."""

    def test_new_turn_visible_after_append(self, populated_store):
        """A completed append shows up in later reads."""
        turn_id = populated_store.append(TurnInput("fresh", "turn", (0.0, 0.0, 0.9)))

        assert populated_store.find_recent(1)[0].id == turn_id
        assert populated_store.find_similar((0.0, 0.0, 0.9), k=1)[0].id == turn_id

    def test_earlier_snapshot_unaffected(self, populated_store):
        """Results taken before an append do not contain the new turn."""
        recent_before = populated_store.find_recent(10)
        similar_before = populated_store.find_similar((0.0, 0.0, 0.9), k=10)

        turn_id = populated_store.append(TurnInput("fresh", "turn", (0.0, 0.0, 0.9)))

        assert turn_id not in [turn.id for turn in recent_before]
        assert turn_id not in [turn.id for turn in similar_before]

    def test_turns_are_immutable(self, populated_store):
        """Stored turns cannot be modified."""
        turn = populated_store.find_recent(1)[0]

        with pytest.raises(AttributeError):
            turn.bot_response = "changed"
