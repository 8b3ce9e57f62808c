"""Embedding provider backed by the Hugging Face Inference API."""
import time
import logging
from typing import List, Optional
import httpx
from config import (
    HUGGINGFACE_API_KEY,
    EMBEDDING_MODEL,
    EMBEDDING_DIMENSION,
    EMBEDDING_TIMEOUT,
    HF_INFERENCE_URL,
)
from models.messages import EmbeddingRequest, EmbeddingResult
from services.errors import EmbeddingUnavailable

logger = logging.getLogger(__name__)


class EmbeddingProvider:
    """Turns text into a fixed-dimension vector, or reports it unavailable."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = EMBEDDING_MODEL,
        dimension: int = EMBEDDING_DIMENSION,
        timeout: float = EMBEDDING_TIMEOUT,
        max_retries: int = 1,
        initial_delay: float = 5.0
    ):
        """
        Initialize the embedding provider.

        Args:
            api_key: Hugging Face API key (defaults to HUGGINGFACE_API_KEY from environment)
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            dimension: Expected vector length; anything else counts as malformed
            timeout: Per-request timeout in seconds
            max_retries: Attempts on 503 "model loading"; 1 means no retry
            initial_delay: Initial delay in seconds for exponential backoff

        Raises:
            ValueError: If no API key is available or the settings are invalid
        """
        self.api_key = api_key or HUGGINGFACE_API_KEY
        if not self.api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.model_name = model_name
        self.dimension = dimension
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.api_url = f"{HF_INFERENCE_URL.rstrip('/')}/{model_name}"

        logger.info(f"Initialized EmbeddingProvider with model: {model_name} (dim={dimension})")

    def embed(self, text: str) -> EmbeddingResult:
        """
        Embed a single text.

        Never raises: every failure (empty input, transport error, timeout,
        bad status, malformed body, wrong dimension) comes back as an
        unavailable result with the structured error attached for logging.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult holding the vector, or unavailable
        """
        start_time = time.time()

        try:
            if not text or not text.strip():
                raise EmbeddingUnavailable.from_code("EMPTY_INPUT", "Text cannot be empty")

            vector = self._embed_with_retry(EmbeddingRequest(text=text, model=self.model_name))
            latency_ms = int((time.time() - start_time) * 1000)
            logger.debug(f"Embedded text ({len(text)} chars) in {latency_ms}ms")
            return EmbeddingResult.success(vector, latency_ms=latency_ms)

        except EmbeddingUnavailable as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.warning(
                f"Embedding unavailable: {e.error.message}",
                extra={"error_code": e.error.code, "error_details": e.error.details}
            )
            return EmbeddingResult.unavailable(e.error, latency_ms=latency_ms)

        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            error = EmbeddingUnavailable.from_code(
                "UNKNOWN_ERROR",
                f"Unexpected error during embedding: {str(e)}",
                {"error_type": type(e).__name__}
            ).error
            logger.error(f"Unexpected embedding error: {e}", exc_info=True)
            return EmbeddingResult.unavailable(error, latency_ms=latency_ms)

    def _embed_with_retry(self, request: EmbeddingRequest) -> List[float]:
        """
        Call the HF API, retrying only on 503 while the model loads.

        HF free tier models "sleep" and take 15-20s to load on first query.
        Retry is opt-in through max_retries; the default is a single attempt.

        Raises:
            EmbeddingUnavailable: On any failure
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = request.to_payload()

        delay = self.initial_delay

        for attempt in range(self.max_retries):
            try:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.api_url,
                        headers=headers,
                        json=payload
                    )
            except httpx.TimeoutException:
                raise EmbeddingUnavailable.from_code(
                    "TIMEOUT_ERROR",
                    f"Request timeout after {self.timeout}s",
                    {"model": self.model_name}
                )
            except httpx.RequestError as e:
                raise EmbeddingUnavailable.from_code(
                    "NETWORK_ERROR",
                    f"Network error: {str(e)}",
                    {"model": self.model_name}
                )

            # Handle 503 Service Unavailable (model loading)
            if response.status_code == 503:
                if attempt < self.max_retries - 1:
                    logger.warning(
                        f"Model loading (503) on attempt {attempt + 1}/{self.max_retries}. "
                        f"Retrying in {delay}s..."
                    )
                    time.sleep(delay)
                    delay = min(delay * 2, 60.0)  # Exponential backoff, max 60s
                    continue
                raise EmbeddingUnavailable.from_code(
                    "MODEL_LOADING",
                    f"Model failed to load after {self.max_retries} attempts",
                    {"model": self.model_name, "attempts": self.max_retries}
                )

            if response.status_code == 429:
                raise EmbeddingUnavailable.from_code(
                    "RATE_LIMIT_ERROR",
                    "Rate limit exceeded for Hugging Face API",
                    {"model": self.model_name}
                )

            if response.status_code == 401:
                raise EmbeddingUnavailable.from_code(
                    "AUTHENTICATION_ERROR",
                    "Invalid API key",
                    {"model": self.model_name}
                )

            if response.status_code != 200:
                raise EmbeddingUnavailable.from_code(
                    "HTTP_ERROR",
                    f"API request failed with status {response.status_code}",
                    {"model": self.model_name, "status_code": response.status_code}
                )

            return self._parse_vector(response)

        # Only reached when max_retries attempts all hit 503 and continued
        raise EmbeddingUnavailable.from_code("MODEL_LOADING", "Model failed to load")

    def _parse_vector(self, response: httpx.Response) -> List[float]:
        """
        Extract one vector from the feature-extraction response.

        The API answers a list input with a list of vectors, `[[...]]`;
        a bare `[...]` is accepted too.
        """
        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingUnavailable.from_code(
                "MALFORMED_RESPONSE",
                f"Response is not valid JSON: {str(e)}"
            )

        if isinstance(data, list) and data and isinstance(data[0], list):
            data = data[0]

        if not isinstance(data, list) or not all(
            isinstance(x, (int, float)) and not isinstance(x, bool) for x in data
        ):
            raise EmbeddingUnavailable.from_code(
                "MALFORMED_RESPONSE",
                "Response does not contain a numeric vector",
                {"response_type": type(data).__name__}
            )

        if len(data) != self.dimension:
            raise EmbeddingUnavailable.from_code(
                "DIMENSION_MISMATCH",
                f"Expected {self.dimension} dimensions, got {len(data)}",
                {"expected": self.dimension, "actual": len(data)}
            )

        return [float(x) for x in data]

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        logger.info("Warming up embedding model...")
        start_time = time.time()

        result = self.embed("warmup query")

        elapsed = time.time() - start_time
        if result.available:
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        logger.error(f"Model warmup failed: {result.error.message}")
        return False
