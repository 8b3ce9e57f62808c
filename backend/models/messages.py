"""Typed request/result structures for the remote embedding and generation calls."""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .error import ServiceError


@dataclass
class EmbeddingRequest:
    """Text to embed with the feature-extraction model."""
    text: str
    model: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "inputs": [self.text],
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }


@dataclass
class EmbeddingResult:
    """Either a fixed-dimension vector or an unavailable marker."""
    vector: Optional[Tuple[float, ...]]
    error: Optional[ServiceError] = None
    latency_ms: int = 0

    @property
    def available(self) -> bool:
        return self.vector is not None

    @classmethod
    def success(cls, vector: List[float], latency_ms: int = 0) -> "EmbeddingResult":
        return cls(vector=tuple(vector), latency_ms=latency_ms)

    @classmethod
    def unavailable(cls, error: ServiceError, latency_ms: int = 0) -> "EmbeddingResult":
        return cls(vector=None, error=error, latency_ms=latency_ms)


@dataclass
class GenerationRequest:
    """A fully assembled prompt plus sampling parameters."""
    prompt: str
    model: str
    max_tokens: int = 500
    temperature: float = 0.7

    def to_messages(self) -> List[Dict[str, str]]:
        return [
            {
                "role": "user",
                "content": self.prompt
            }
        ]


@dataclass
class GenerationResult:
    """
    Response from text generation.

    On failure `ok` is False and `text` holds a user-visible diagnostic,
    so callers can always reply with `text`.
    """
    text: str
    ok: bool
    error: Optional[ServiceError] = None
    tokens_input: int = 0
    tokens_output: int = 0
    latency_ms: int = 0
    model_used: str = ""

    @classmethod
    def success(
        cls,
        text: str,
        tokens_input: int,
        tokens_output: int,
        latency_ms: int,
        model_used: str
    ) -> "GenerationResult":
        return cls(
            text=text,
            ok=True,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=model_used
        )

    @classmethod
    def failure(cls, error: ServiceError, latency_ms: int = 0, model_used: str = "") -> "GenerationResult":
        return cls(
            text=f"Error processing request: {error.message}",
            ok=False,
            error=error,
            latency_ms=latency_ms,
            model_used=model_used
        )
