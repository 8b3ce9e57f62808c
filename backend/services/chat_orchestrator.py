"""Chat orchestrator: the retrieval-augmented turn-processing pipeline."""
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from config import SIMILAR_TURNS_K, INDEX_FAILED_GENERATIONS
from models.error import ServiceError
from models.turn import ConversationTurn, TurnInput
from services.context_assembler import ContextAssembler
from services.conversation_store import ConversationStore
from services.embedding_provider import EmbeddingProvider
from services.errors import PersistenceFailure, RetrievalUnavailable
from services.failure_reporter import FailureReporter
from services.response_generator import ResponseGenerator

logger = logging.getLogger(__name__)


@dataclass
class TurnOutcome:
    """The reply to one message plus how each stage fared."""
    response: str
    context_turns: int
    embedding_available: bool
    retrieval_available: bool
    generation_ok: bool
    persisted: bool
    turn_id: Optional[int]
    latency_ms: int


class ChatOrchestrator:
    """
    Runs embed → retrieve → assemble → generate → persist for each message.

    Holds no per-request state; everything durable lives in the store.
    Any single dependency failing degrades the turn instead of aborting it.
    """

    PERSONA_PREAMBLE = (
        "You are an AI that has learned to communicate exactly like a specific person "
        "based on their chat history. Analyze the conversation patterns, tone, vocabulary, "
        "interests, and communication style from the following past conversations, then "
        "respond to the current message EXACTLY as that person would respond.\n\n"
        "Past conversations showing this person's communication style:\n"
    )
    PERSONA_INSTRUCTION = (
        "\n\nBased on the above conversations, respond to this message in the SAME style, "
        "tone, and manner:\n"
    )
    PLAIN_PREAMBLE = "You are having a casual conversation. Respond naturally and conversationally.\n\n"

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        store: ConversationStore,
        generator: ResponseGenerator,
        reporter: Optional[FailureReporter] = None,
        similar_k: int = SIMILAR_TURNS_K,
        index_failed_generations: bool = INDEX_FAILED_GENERATIONS
    ):
        """
        Initialize the orchestrator.

        Args:
            embedding_provider: Text → vector
            store: Append-only turn log with similarity and recency queries
            generator: Prompt → text
            reporter: Observability sink for recovered failures
            similar_k: How many similar past turns to condition on
            index_failed_generations: Keep the embedding on turns whose
                generation failed, making the diagnostic retrievable
        """
        if similar_k <= 0:
            raise ValueError("similar_k must be positive")

        self.embedding_provider = embedding_provider
        self.store = store
        self.generator = generator
        self.reporter = reporter or FailureReporter()
        self.similar_k = similar_k
        self.index_failed_generations = index_failed_generations
        logger.info(f"Initialized ChatOrchestrator (k={similar_k})")

    def process(self, message: str) -> str:
        """Answer a message; always returns a string."""
        return self.process_turn(message).response

    def process_turn(self, message: str) -> TurnOutcome:
        """
        Answer a message and report how each stage went.

        Args:
            message: The user's message

        Returns:
            TurnOutcome whose response is the generated text, or the
            generator's diagnostic string when generation failed
        """
        start_time = time.time()
        logger.info(f"Processing message: {message[:100]}...")

        # Step 1: Embed
        embedding = self.embedding_provider.embed(message)
        if not embedding.available:
            self.reporter.report("embedding", embedding.error)

        # Step 2: Retrieve (only with an embedding)
        similar_turns: List[ConversationTurn] = []
        retrieval_available = False
        if embedding.available:
            similar_turns, retrieval_available = self._retrieve(embedding.vector)

        # Step 3: Assemble context
        context = ContextAssembler.build(similar_turns)

        # Step 4: Construct prompt
        prompt = self.build_prompt(message, context)

        # Step 5: Generate
        generation = self.generator.generate(prompt)
        if not generation.ok:
            self.reporter.report("generation", generation.error)

        # Step 6: Persist
        stored_embedding = embedding.vector
        if not generation.ok and not self.index_failed_generations:
            stored_embedding = None
        turn_id = self._persist(TurnInput(
            user_message=message,
            bot_response=generation.text,
            embedding=stored_embedding
        ))

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Processed message in {latency_ms}ms: context_turns={len(similar_turns)}, "
            f"generation_ok={generation.ok}, persisted={turn_id is not None}"
        )

        return TurnOutcome(
            response=generation.text,
            context_turns=len(similar_turns),
            embedding_available=embedding.available,
            retrieval_available=retrieval_available,
            generation_ok=generation.ok,
            persisted=turn_id is not None,
            turn_id=turn_id,
            latency_ms=latency_ms
        )

    @classmethod
    def build_prompt(cls, message: str, context: str) -> str:
        """
        Build the generation prompt.

        Non-empty context gets the persona preamble followed by the
        context block; empty context gets the plain conversational one.
        """
        if context:
            head = cls.PERSONA_PREAMBLE + context + cls.PERSONA_INSTRUCTION
        else:
            head = cls.PLAIN_PREAMBLE

        return f"{head}Message: {message}\n\nResponse:"

    def _retrieve(self, vector: Tuple[float, ...]) -> Tuple[List[ConversationTurn], bool]:
        """Similar past turns, or an empty list when the store cannot answer."""
        try:
            turns = self.store.find_similar(vector, self.similar_k)
            logger.debug(f"Retrieved {len(turns)} similar turns")
            return turns, True
        except RetrievalUnavailable as e:
            self.reporter.report("retrieval", e.error)
        except Exception as e:
            logger.error(f"Unexpected retrieval error: {e}", exc_info=True)
            self.reporter.report("retrieval", ServiceError(
                code="UNKNOWN_ERROR",
                message=f"Unexpected error during retrieval: {str(e)}",
                details={"error_type": type(e).__name__}
            ))
        return [], False

    def _persist(self, turn_input: TurnInput) -> Optional[int]:
        """Append the turn; failures are reported, never raised."""
        try:
            return self.store.append(turn_input)
        except PersistenceFailure as e:
            self.reporter.report("persistence", e.error)
        except Exception as e:
            logger.error(f"Unexpected persistence error: {e}", exc_info=True)
            self.reporter.report("persistence", ServiceError(
                code="UNKNOWN_ERROR",
                message=f"Unexpected error while saving turn: {str(e)}",
                details={"error_type": type(e).__name__}
            ))
        return None
