"""Services for MimicChat."""
from .errors import (
    PipelineError,
    EmbeddingUnavailable,
    RetrievalUnavailable,
    GenerationFailure,
    PersistenceFailure,
)
from .embedding_provider import EmbeddingProvider
from .conversation_store import ConversationStore, InMemoryConversationStore
from .supabase_store import SupabaseConversationStore
from .context_assembler import ContextAssembler
from .response_generator import ResponseGenerator
from .failure_reporter import FailureReporter
from .chat_orchestrator import ChatOrchestrator, TurnOutcome

__all__ = [
    'PipelineError', 'EmbeddingUnavailable', 'RetrievalUnavailable', 'GenerationFailure', 'PersistenceFailure',
    'EmbeddingProvider', 'ConversationStore', 'InMemoryConversationStore', 'SupabaseConversationStore',
    'ContextAssembler', 'ResponseGenerator', 'FailureReporter', 'ChatOrchestrator', 'TurnOutcome',
]
