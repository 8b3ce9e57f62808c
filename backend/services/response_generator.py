"""Response generator for Groq API integration."""
import time
import logging
from typing import Optional
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError

from config import GROQ_API_KEY, GENERATION_MODEL, MAX_TOKENS, TEMPERATURE, GENERATION_TIMEOUT
from models.error import ServiceError
from models.messages import GenerationRequest, GenerationResult
from services.errors import GenerationFailure

logger = logging.getLogger(__name__)


class ResponseGenerator:
    """Client for interfacing with Groq API for text generation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GENERATION_MODEL,
        max_tokens: int = MAX_TOKENS,
        temperature: float = TEMPERATURE,
        timeout: float = GENERATION_TIMEOUT
    ):
        """
        Initialize the generator with a Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Chat model name
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

        # Retry policy is layered outside the generator
        self.client = Groq(api_key=self.api_key, timeout=timeout, max_retries=0)
        logger.info(f"ResponseGenerator initialized with model: {model}")

    def generate(self, prompt: str) -> GenerationResult:
        """
        Generate a reply for a fully assembled prompt.

        Never raises. On failure the result carries ok=False and a
        diagnostic string as its text, so the caller can still answer.

        Args:
            prompt: Complete prompt with preamble, context and message

        Returns:
            GenerationResult with text, token counts, and latency
        """
        request = GenerationRequest(
            prompt=prompt,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {request.model}")

            response = self.client.chat.completions.create(
                model=request.model,
                messages=request.to_messages(),
                max_tokens=request.max_tokens,
                temperature=request.temperature
            )

            latency_ms = int((time.time() - start_time) * 1000)

            # Extract the first candidate's text
            if not response.choices or response.choices[0].message.content is None:
                raise GenerationFailure.from_code("MALFORMED_RESPONSE", "Generation returned no candidate text")
            text = response.choices[0].message.content

            tokens_input = response.usage.prompt_tokens if response.usage else 0
            tokens_output = response.usage.completion_tokens if response.usage else 0

            logger.info(
                f"Generated response: model={request.model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return GenerationResult.success(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=request.model
            )

        except GenerationFailure as e:
            return self._failure(
                e.error.code,
                e.error.message,
                request,
                int((time.time() - start_time) * 1000)
            )

        except RateLimitError as e:
            return self._failure(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                request,
                int((time.time() - start_time) * 1000),
                e,
                retry_after=60
            )

        except AuthenticationError as e:
            return self._failure(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                request,
                int((time.time() - start_time) * 1000),
                e
            )

        except APITimeoutError as e:
            return self._failure(
                "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                request,
                int((time.time() - start_time) * 1000),
                e
            )

        except APIError as e:
            return self._failure(
                "API_ERROR",
                f"Groq API error: {str(e)}",
                request,
                int((time.time() - start_time) * 1000),
                e
            )

        except Exception as e:
            return self._failure(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                request,
                int((time.time() - start_time) * 1000),
                e,
                error_type=type(e).__name__
            )

    def _failure(
        self,
        code: str,
        message: str,
        request: GenerationRequest,
        latency_ms: int,
        exc: Optional[Exception] = None,
        **details
    ) -> GenerationResult:
        """Log a generation failure and wrap it as a diagnostic result."""
        details.update({"model": request.model, "latency_ms": latency_ms})
        if exc is not None:
            details["original_error"] = str(exc)

        error = ServiceError(code=code, message=message, details=details)
        logger.error(
            f"Generation failed: code={code}, model={request.model}, latency={latency_ms}ms, error={exc}",
            exc_info=exc is not None,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return GenerationResult.failure(error, latency_ms=latency_ms, model_used=request.model)
