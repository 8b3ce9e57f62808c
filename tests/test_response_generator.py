"""Unit tests for ResponseGenerator."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
from models.messages import GenerationResult
from services.response_generator import ResponseGenerator


def groq_reply(content, prompt_tokens=150, completion_tokens=12):
    """Build a chat completion response the way the Groq SDK shapes it."""
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    mock_response.usage = Mock(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    return mock_response


class TestResponseGenerator:
    """Test suite for ResponseGenerator class."""

    def test_initialization_with_api_key(self):
        """Test ResponseGenerator initializes with provided API key."""
        generator = ResponseGenerator(api_key="test_key")
        assert generator.api_key == "test_key"
        assert generator.model == "llama-3.1-8b-instant"

    def test_initialization_without_api_key_raises_error(self):
        """Test ResponseGenerator raises error when no API key provided."""
        with patch('services.response_generator.GROQ_API_KEY', None):
            with pytest.raises(ValueError, match="GROQ_API_KEY must be provided"):
                ResponseGenerator()

    @patch('services.response_generator.Groq')
    def test_client_timeout_and_no_sdk_retries(self, mock_groq_class):
        """The SDK client is bounded by the timeout and does not retry."""
        ResponseGenerator(api_key="test_key", timeout=12.0)

        mock_groq_class.assert_called_once_with(api_key="test_key", timeout=12.0, max_retries=0)

    @patch('services.response_generator.Groq')
    def test_generate_success(self, mock_groq_class):
        """Test successful response generation."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = groq_reply("Hi there!")
        mock_groq_class.return_value = mock_client

        generator = ResponseGenerator(api_key="test_key")
        result = generator.generate("Message: Hello\n\nResponse:")

        assert isinstance(result, GenerationResult)
        assert result.ok
        assert result.text == "Hi there!"
        assert result.error is None
        assert result.tokens_input == 150
        assert result.tokens_output == 12
        assert result.model_used == "llama-3.1-8b-instant"
        assert result.latency_ms >= 0

    @patch('services.response_generator.Groq')
    def test_prompt_sent_verbatim_as_single_message(self, mock_groq_class):
        """No templating happens inside the generator."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = groq_reply("ok")
        mock_groq_class.return_value = mock_client

        generator = ResponseGenerator(api_key="test_key", max_tokens=64, temperature=0.2)
        generator.generate("exact prompt text")

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "exact prompt text"}]
        assert kwargs["max_tokens"] == 64
        assert kwargs["temperature"] == 0.2

    @patch('services.response_generator.Groq')
    def test_text_returned_without_post_processing(self, mock_groq_class):
        """Whitespace and formatting survive untouched."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = groq_reply("  lol ok\n\n")
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("prompt")

        assert result.text == "  lol ok\n\n"

    @patch('services.response_generator.Groq')
    def test_empty_choices_is_failure(self, mock_groq_class):
        """A response without candidates yields a diagnostic."""
        mock_response = Mock()
        mock_response.choices = []
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = mock_response
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("prompt")

        assert not result.ok
        assert result.error.code == "MALFORMED_RESPONSE"
        assert result.text.startswith("Error processing request:")

    @patch('services.response_generator.Groq')
    def test_null_content_is_failure(self, mock_groq_class):
        """A candidate with no text yields a diagnostic."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = groq_reply(None)
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("prompt")

        assert not result.ok
        assert result.error.code == "MALFORMED_RESPONSE"

    @patch('services.response_generator.Groq')
    def test_generate_handles_unexpected_error(self, mock_groq_class):
        """Unexpected errors become a diagnostic string, not an exception."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = Exception("API Error")
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("Test prompt")

        assert not result.ok
        assert result.error.code == "UNKNOWN_ERROR"
        assert "Unexpected error" in result.error.message
        assert result.error.details["model"] == "llama-3.1-8b-instant"
        assert result.text == f"Error processing request: {result.error.message}"

    @patch('services.response_generator.Groq')
    def test_generate_handles_rate_limit_error(self, mock_groq_class):
        """Test that rate limit errors carry a retry suggestion."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = RateLimitError(
            message="Rate limit exceeded",
            response=Mock(status_code=429),
            body=None
        )
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("Test prompt")

        assert not result.ok
        assert result.error.code == "RATE_LIMIT_ERROR"
        assert result.error.details["retry_after"] == 60
        assert "Rate limit exceeded" in result.text

    @patch('services.response_generator.Groq')
    def test_generate_handles_authentication_error(self, mock_groq_class):
        """Test that authentication errors are handled properly."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = AuthenticationError(
            message="Invalid API key",
            response=Mock(status_code=401),
            body=None
        )
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("Test prompt")

        assert result.error.code == "AUTHENTICATION_ERROR"
        assert "Authentication failed" in result.text

    @patch('services.response_generator.Groq')
    def test_generate_handles_timeout_error(self, mock_groq_class):
        """Test that timeout errors are handled properly."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = APITimeoutError(request=Mock())
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("Test prompt")

        assert result.error.code == "TIMEOUT_ERROR"
        assert "timed out" in result.text

    @patch('services.response_generator.Groq')
    def test_generate_handles_generic_api_error(self, mock_groq_class):
        """Test that generic API errors are handled properly."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = APIError(
            message="Service unavailable",
            request=Mock(),
            body=None
        )
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("Test prompt")

        assert result.error.code == "API_ERROR"
        assert "Groq API error" in result.error.message

    @patch('services.response_generator.Groq')
    def test_error_includes_latency(self, mock_groq_class):
        """Test that failures include latency measurement."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = APITimeoutError(request=Mock())
        mock_groq_class.return_value = mock_client

        result = ResponseGenerator(api_key="test_key").generate("Test prompt")

        assert isinstance(result.error.details["latency_ms"], int)
        assert result.error.details["latency_ms"] >= 0
