"""Main entry point for MimicChat API."""
import logging
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, CORS_ORIGINS, STORE_BACKEND, HISTORY_LIMIT, FAILURE_LOG_PATH
from models.api import ChatRequest, ChatResponse, ChatMetadata, TurnView, HistoryResponse
from services.chat_orchestrator import ChatOrchestrator
from services.conversation_store import ConversationStore, InMemoryConversationStore
from services.embedding_provider import EmbeddingProvider
from services.errors import RetrievalUnavailable
from services.failure_reporter import FailureReporter
from services.response_generator import ResponseGenerator
from services.supabase_store import SupabaseConversationStore

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="MimicChat",
    description="Chatbot that answers in the style of its own past conversations",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
store: ConversationStore = None
orchestrator: ChatOrchestrator = None
failure_reporter: FailureReporter = None


def build_store(backend: str = STORE_BACKEND) -> ConversationStore:
    """Create the configured conversation store."""
    if backend == "memory":
        return InMemoryConversationStore()
    if backend == "supabase":
        return SupabaseConversationStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend!r} (expected 'supabase' or 'memory')")


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global store, orchestrator, failure_reporter

    logger.info("Initializing MimicChat services...")

    try:
        store = build_store()
        logger.info(f"Initialized {type(store).__name__}")

        failure_reporter = FailureReporter(log_file_path=FAILURE_LOG_PATH)

        orchestrator = ChatOrchestrator(
            embedding_provider=EmbeddingProvider(),
            store=store,
            generator=ResponseGenerator(),
            reporter=failure_reporter
        )

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Flush and close the failure log."""
    if failure_reporter is not None:
        failure_reporter.close()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "MimicChat API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "mimic-chat",
        "version": "1.0.0",
        "store_backend": type(store).__name__ if store is not None else None,
        "degraded_stages": failure_reporter.counts() if failure_reporter is not None else {}
    }


@app.post("/api/chat/message", response_model=ChatResponse)
def send_message(request: ChatRequest) -> ChatResponse:
    """
    Answer a chat message.

    Embedding, retrieval and persistence outages only degrade the reply;
    a generation failure comes back as the response text itself.

    Raises:
        HTTPException: 400 for an empty message
    """
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=400, detail="Message field is required and cannot be empty")

    outcome = orchestrator.process_turn(request.message)

    return ChatResponse(
        response=outcome.response,
        metadata=ChatMetadata(
            context_turns=outcome.context_turns,
            embedding_available=outcome.embedding_available,
            retrieval_available=outcome.retrieval_available,
            generation_ok=outcome.generation_ok,
            persisted=outcome.persisted,
            turn_id=outcome.turn_id,
            latency_ms=outcome.latency_ms
        )
    )


@app.get("/api/chat/history", response_model=HistoryResponse)
def get_chat_history(limit: int = Query(HISTORY_LIMIT, ge=1, le=1000)) -> HistoryResponse:
    """
    Most recent turns, newest first.

    Raises:
        HTTPException: 503 when the store cannot be read
    """
    try:
        turns = store.find_recent(limit)
    except RetrievalUnavailable as e:
        logger.error(f"History unavailable: {e.error.message}")
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": e.error.code,
                    "message": e.error.message
                }
            }
        )

    return HistoryResponse(
        turns=[
            TurnView(
                id=turn.id,
                user_message=turn.user_message,
                bot_response=turn.bot_response,
                timestamp=turn.timestamp,
                has_embedding=turn.has_embedding
            )
            for turn in turns
        ],
        count=len(turns)
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting MimicChat API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
