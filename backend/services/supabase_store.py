"""Conversation store backed by Supabase Postgres with pgvector."""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from supabase import create_client, Client, ClientOptions

from config import (
    SUPABASE_URL,
    SUPABASE_KEY,
    TURNS_TABLE,
    MATCH_FUNCTION,
    STORE_TIMEOUT,
    EMBEDDING_DIMENSION,
)
from models.turn import ConversationTurn, TurnInput
from services.conversation_store import ConversationStore
from services.errors import PersistenceFailure, RetrievalUnavailable

logger = logging.getLogger(__name__)


class SupabaseConversationStore(ConversationStore):
    """
    Append-only turn log in a Postgres table with a vector(768) column.

    Expected schema:

        CREATE EXTENSION IF NOT EXISTS vector;

        CREATE TABLE chat_messages (
          id bigserial PRIMARY KEY,
          user_message text NOT NULL,
          bot_response text NOT NULL,
          embedding vector(768),
          timestamp timestamptz NOT NULL DEFAULT now()
        );

        CREATE OR REPLACE FUNCTION match_chat_messages(
          query_embedding vector(768),
          match_count int
        )
        RETURNS TABLE (
          id bigint,
          user_message text,
          bot_response text,
          embedding vector(768),
          timestamp timestamptz,
          distance float
        )
        LANGUAGE sql STABLE
        AS $$
          SELECT c.id, c.user_message, c.bot_response, c.embedding, c.timestamp,
                 c.embedding <-> query_embedding AS distance
          FROM chat_messages c
          WHERE c.embedding IS NOT NULL
          ORDER BY c.embedding <-> query_embedding
          LIMIT match_count;
        $$;

    `<->` is Euclidean distance; any ANN index on the column is the
    database's business.
    """

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        table_name: str = TURNS_TABLE,
        match_function: str = MATCH_FUNCTION,
        dimension: int = EMBEDDING_DIMENSION,
        timeout: int = STORE_TIMEOUT
    ):
        """
        Initialize the store with a Supabase client.

        Args:
            supabase_url: Supabase project URL (defaults to SUPABASE_URL)
            supabase_key: Supabase API key (defaults to SUPABASE_KEY)
            table_name: Table holding the turns
            match_function: RPC function running the nearest-neighbor query
            dimension: Length of the embedding column
            timeout: PostgREST request timeout in seconds

        Raises:
            ValueError: If Supabase credentials are missing
        """
        super().__init__(dimension)

        supabase_url = supabase_url or SUPABASE_URL
        supabase_key = supabase_key or SUPABASE_KEY
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.table_name = table_name
        self.match_function = match_function
        self.client: Client = create_client(
            supabase_url,
            supabase_key,
            options=ClientOptions(postgrest_client_timeout=timeout)
        )

        logger.info(f"Initialized SupabaseConversationStore with table: {table_name}")

    def append(self, turn_input: TurnInput) -> int:
        self._check_embedding(turn_input.embedding)

        record: Dict[str, Any] = {
            "user_message": turn_input.user_message,
            "bot_response": turn_input.bot_response,
        }
        if turn_input.embedding is not None:
            record["embedding"] = [float(x) for x in turn_input.embedding]

        try:
            response = self.client.table(self.table_name).insert(record).execute()
        except Exception as e:
            error_msg = f"Failed to append turn: {str(e)}"
            logger.error(error_msg)
            raise PersistenceFailure.from_code(
                "STORE_ERROR", error_msg, {"table": self.table_name, "error_type": type(e).__name__}
            )

        if not response.data:
            raise PersistenceFailure.from_code(
                "STORE_ERROR", "Insert returned no row", {"table": self.table_name}
            )

        turn_id = int(response.data[0]["id"])
        logger.debug(f"Appended turn {turn_id} to {self.table_name}")
        return turn_id

    def find_similar(self, query: Sequence[float], k: int) -> List[ConversationTurn]:
        self._check_query(query, k)

        try:
            response = self.client.rpc(
                self.match_function,
                {
                    "query_embedding": [float(x) for x in query],
                    "match_count": k
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to search conversation store: {str(e)}"
            logger.error(error_msg)
            raise RetrievalUnavailable.from_code(
                "STORE_ERROR", error_msg, {"function": self.match_function, "error_type": type(e).__name__}
            )

        rows = [row for row in (response.data or []) if row.get("embedding") is not None]
        if all("distance" in row for row in rows):
            rows.sort(key=lambda row: row["distance"])

        turns = [self._row_to_turn(row) for row in rows[:k]]
        logger.debug(f"Found {len(turns)} similar turns")
        return turns

    def find_recent(self, n: int) -> List[ConversationTurn]:
        if n <= 0:
            return []

        try:
            response = (
                self.client.table(self.table_name)
                .select("*")
                .order("timestamp", desc=True)
                .order("id", desc=True)
                .limit(n)
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to read recent turns: {str(e)}"
            logger.error(error_msg)
            raise RetrievalUnavailable.from_code(
                "STORE_ERROR", error_msg, {"table": self.table_name, "error_type": type(e).__name__}
            )

        return [self._row_to_turn(row) for row in (response.data or [])]

    def count(self) -> int:
        try:
            response = self.client.table(self.table_name).select("id", count="exact").execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count turns: {str(e)}"
            logger.error(error_msg)
            raise RetrievalUnavailable.from_code("STORE_ERROR", error_msg, {"table": self.table_name})

    def _row_to_turn(self, row: Dict[str, Any]) -> ConversationTurn:
        return ConversationTurn(
            id=int(row["id"]),
            user_message=row["user_message"],
            bot_response=row["bot_response"],
            timestamp=self._parse_timestamp(row["timestamp"]),
            embedding=self._parse_embedding(row.get("embedding"))
        )

    @staticmethod
    def _parse_embedding(value: Any) -> Optional[tuple]:
        """PostgREST serializes vector columns as text like "[0.1,0.2]"."""
        if value is None:
            return None
        if isinstance(value, str):
            value = json.loads(value)
        return tuple(float(x) for x in value)

    @staticmethod
    def _parse_timestamp(timestamp_str: str) -> datetime:
        """
        Parse timestamp string from Supabase, handling various formats.

        Supabase can return timestamps with varying microsecond precision,
        which Python's fromisoformat() can't always handle.
        """
        timestamp_str = timestamp_str.replace("Z", "+00:00")

        # Format: 2026-02-21T02:08:26.18976+00:00
        if "." in timestamp_str:
            date_part, fraction = timestamp_str.split(".", 1)
            for sign in ("+", "-"):
                if sign in fraction:
                    micros, tz = fraction.split(sign, 1)
                    timestamp_str = f"{date_part}.{micros[:6].ljust(6, '0')}{sign}{tz}"
                    break
            else:
                timestamp_str = f"{date_part}.{fraction[:6].ljust(6, '0')}"

        return datetime.fromisoformat(timestamp_str)
