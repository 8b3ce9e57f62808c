"""Error taxonomy for the chat pipeline."""
from typing import Any, Dict, Optional

from models.error import ServiceError


class PipelineError(Exception):
    """Exception carrying a structured ServiceError."""

    def __init__(self, error: ServiceError):
        self.error = error
        super().__init__(error.message)

    @classmethod
    def from_code(cls, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "PipelineError":
        return cls(ServiceError(code=code, message=message, details=details or {}))


class EmbeddingUnavailable(PipelineError):
    """Embedding call failed, timed out or returned malformed data."""


class RetrievalUnavailable(PipelineError):
    """The store could not answer a read query."""


class GenerationFailure(PipelineError):
    """Generation call failed or returned unparsable output."""


class PersistenceFailure(PipelineError):
    """The store could not append a turn."""
