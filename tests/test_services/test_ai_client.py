import pytest
from unittest.mock import MagicMock, patch

from google.api_core import exceptions as google_exceptions

from eduforce.domain.errors import AIClientError
from eduforce.services.ai_client import AIClient


def gemini_client(**overrides):
    kwargs = {
        "gemini_api_key": "valid-api-key",
        "gemini_model": "gemini-2.0-flash",
        "max_attempts": 1,
        "retry_backoff": 0,
    }
    kwargs.update(overrides)
    return AIClient(provider="gemini", **kwargs)


class TestAIClient:
    """Tests for AIClient with mocked AI services."""

    def test_ai_client_initialization(self):
        client = AIClient(provider="openai")
        assert client.provider == "openai"
        assert client._openai_client is None
        assert client._gemini_initialized is False

    def test_unsupported_provider(self):
        client = AIClient(provider="unsupported")
        with pytest.raises(AIClientError, match="Unsupported AI provider"):
            client.generate("hello")

    def test_missing_gemini_key(self):
        client = gemini_client(gemini_api_key="")
        with pytest.raises(AIClientError, match="Gemini API key is not configured"):
            client.generate("hello")

    def test_missing_openai_key(self):
        client = AIClient(provider="openai", openai_api_key="")
        with pytest.raises(AIClientError, match="OpenAI API key is not configured"):
            client.generate("hello")

    @patch('eduforce.services.ai_client.genai')
    def test_generate_gemini_json(self, mock_genai):
        mock_model = MagicMock()
        mock_model.generate_content.return_value.text = ' {"ok": true} '
        mock_genai.GenerativeModel.return_value = mock_model

        result = gemini_client(timeout=12).generate("Make a quiz", require_json=True)

        assert result == '{"ok": true}'
        mock_genai.configure.assert_called_once_with(api_key="valid-api-key")
        mock_genai.GenerativeModel.assert_called_once_with("gemini-2.0-flash")
        _, kwargs = mock_model.generate_content.call_args
        assert kwargs["generation_config"] == {"response_mime_type": "application/json"}
        assert kwargs["request_options"] == {"timeout": 12}

    @patch('eduforce.services.ai_client.genai')
    def test_transient_failure_is_retried(self, mock_genai):
        mock_model = MagicMock()
        ok = MagicMock(text="done")
        mock_model.generate_content.side_effect = [google_exceptions.ServiceUnavailable("overloaded"), ok]
        mock_genai.GenerativeModel.return_value = mock_model

        result = gemini_client(max_attempts=3).generate("prompt")

        assert result == "done"
        assert mock_model.generate_content.call_count == 2

    @patch('eduforce.services.ai_client.genai')
    def test_exhausted_retries_raise_client_error(self, mock_genai):
        mock_model = MagicMock()
        mock_model.generate_content.side_effect = google_exceptions.DeadlineExceeded("deadline exceeded")
        mock_genai.GenerativeModel.return_value = mock_model

        with pytest.raises(AIClientError, match="deadline exceeded"):
            gemini_client(max_attempts=2).generate("prompt")
        assert mock_model.generate_content.call_count == 2

    @pytest.mark.parametrize("error", [
        google_exceptions.PermissionDenied("API key not valid"),
        google_exceptions.ResourceExhausted("quota exceeded"),
        ValueError("response was blocked"),
    ])
    @patch('eduforce.services.ai_client.genai')
    def test_permanent_failure_is_not_retried(self, mock_genai, error):
        mock_model = MagicMock()
        mock_model.generate_content.side_effect = error
        mock_genai.GenerativeModel.return_value = mock_model

        with pytest.raises(AIClientError):
            gemini_client(max_attempts=3).generate("prompt")
        assert mock_model.generate_content.call_count == 1

    @patch('eduforce.services.ai_client.openai')
    def test_generate_openai_json(self, mock_openai):
        mock_completion = MagicMock()
        mock_completion.choices[0].message.content = '{"a": 1}'
        mock_openai.OpenAI.return_value.chat.completions.create.return_value = mock_completion

        client = AIClient(provider="openai", openai_api_key="sk-test", openai_model="gpt-4o-mini",
                          base_url="http://localhost:8080/v1", max_attempts=1, retry_backoff=0)
        result = client.generate("Return JSON please", require_json=True)

        assert result == '{"a": 1}'
        init_kwargs = mock_openai.OpenAI.call_args.kwargs
        assert init_kwargs["base_url"] == "http://localhost:8080/v1"
        assert init_kwargs["max_retries"] == 0
        create_kwargs = mock_openai.OpenAI.return_value.chat.completions.create.call_args.kwargs
        assert create_kwargs["response_format"] == {"type": "json_object"}
        assert create_kwargs["model"] == "gpt-4o-mini"


class TestAISafetyPrompt:
    """Tests for AI safety prompt generation."""

    def test_create_safety_guard_prompt(self):
        from ef_utils.ai_safety import create_safety_guard_prompt

        prompt = create_safety_guard_prompt("Write five questions", "Chlorophyll absorbs light.")

        assert "Write five questions" in prompt
        assert "Chlorophyll absorbs light." in prompt
