"""
Unit tests for LLMService.

Covers provider routing and retry logic. All OpenAI, Gemini and
Anthropic clients are mocked.
"""

import pytest
from unittest.mock import Mock, patch

from shared.services.llm_service import LLMService, LLMServiceError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_responses_result(output_text='{"key": "value"}', reasoning=None):
    """Create a mock result for client.responses.create."""
    result = Mock()
    result.output_text = output_text
    result.reasoning = reasoning
    return result


def _make_chat_response(content='{"result": "ok"}'):
    """Create a mock response for client.chat.completions.create."""
    response = Mock()
    response.choices = [Mock(message=Mock(content=content))]
    return response


def _make_rate_limit_error():
    from openai import RateLimitError
    response = Mock(status_code=429, headers={})
    return RateLimitError("rate limited", response=response, body=None)


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

class TestLLMServiceInit:
    @patch("shared.services.llm_service.OpenAI")
    def test_init_with_only_api_key(self, mock_openai_cls):
        service = LLMService(api_key="fake-key", provider="openai", model_id="gpt-5.2")

        mock_openai_cls.assert_called_once_with(api_key="fake-key")
        assert service.has_gemini is False
        assert service.anthropic_adapter is None
        assert service.max_retries == 3

    @patch("shared.services.llm_service.OpenAI")
    def test_no_openai_key_leaves_client_unset(self, mock_openai_cls):
        service = LLMService(None, provider="openai", model_id="gpt-4o")

        mock_openai_cls.assert_not_called()
        assert service.client is None
        with pytest.raises(LLMServiceError, match="not configured"):
            service.call("hi")

    @patch("shared.services.llm_service.genai")
    @patch("shared.services.llm_service.OpenAI")
    def test_init_with_gemini_key(self, mock_openai_cls, mock_genai):
        service = LLMService(None, provider="google", model_id="gemini-2.5-flash", gemini_api_key="gemini-key")

        assert service.has_gemini is True
        mock_genai.Client.assert_called_once_with(api_key="gemini-key")

    @patch("shared.services.llm_service.OpenAI")
    def test_from_settings(self, mock_openai_cls):
        settings = Mock(
            openai_api_key="sk-test",
            llm_provider="openai",
            llm_model="gpt-4o-mini",
            gemini_api_key="",
            anthropic_api_key="",
            llm_max_retries=2,
            llm_timeout_seconds=30,
        )
        service = LLMService.from_settings(settings)

        assert service.provider == "openai"
        assert service.model_id == "gpt-4o-mini"
        assert service.max_retries == 2
        assert service.timeout == 30
        assert service.has_gemini is False


# ---------------------------------------------------------------------------
# OpenAI routing
# ---------------------------------------------------------------------------

class TestOpenAIRouting:
    @patch("shared.services.llm_service.OpenAI")
    def test_gpt5_uses_responses_api(self, mock_openai_cls):
        mock_client = mock_openai_cls.return_value
        mock_client.responses.create.return_value = _make_responses_result('{"answer": "42"}')

        service = LLMService(api_key="fake-key", provider="openai", model_id="gpt-5.2")
        result = service.call(prompt="What is six times seven?")

        assert result == {"output_text": '{"answer": "42"}', "reasoning": None}
        kwargs = mock_client.responses.create.call_args.kwargs
        assert kwargs["text"] == {"format": {"type": "json_object"}}
        assert "reasoning" not in kwargs
        mock_client.chat.completions.create.assert_not_called()

    @patch("shared.services.llm_service.OpenAI")
    def test_responses_api_with_schema_and_reasoning(self, mock_openai_cls):
        mock_client = mock_openai_cls.return_value
        mock_result = _make_responses_result()
        mock_result.reasoning = Mock(summary="I thought about it")
        mock_client.responses.create.return_value = mock_result

        service = LLMService(api_key="fake-key", provider="openai", model_id="gpt-5.2")
        schema = {"type": "object", "properties": {"field": {"type": "string"}}}
        result = service.call(prompt="test", reasoning_effort="high", json_schema=schema, schema_name="TestSchema")

        kwargs = mock_client.responses.create.call_args.kwargs
        assert kwargs["reasoning"] == {"effort": "high"}
        assert kwargs["text"]["format"]["name"] == "TestSchema"
        assert kwargs["text"]["format"]["strict"] is True
        assert result["reasoning"] == "I thought about it"

    @patch("shared.services.llm_service.OpenAI")
    def test_other_models_use_chat_completions(self, mock_openai_cls):
        mock_client = mock_openai_cls.return_value
        mock_client.chat.completions.create.return_value = _make_chat_response("plain reply")

        service = LLMService(api_key="fake-key", provider="openai", model_id="gpt-4o")
        result = service.call(prompt="hello", json_mode=False)

        assert result == {"output_text": "plain reply", "reasoning": None}
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert "response_format" not in kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "hello"}]

    @patch("shared.services.llm_service.OpenAI")
    def test_chat_completions_schema(self, mock_openai_cls):
        mock_client = mock_openai_cls.return_value
        mock_client.chat.completions.create.return_value = _make_chat_response()

        service = LLMService(api_key="fake-key", provider="openai", model_id="gpt-4o")
        service.call(prompt="hello", json_schema={"type": "object"}, schema_name="Scored")

        response_format = mock_client.chat.completions.create.call_args.kwargs["response_format"]
        assert response_format["type"] == "json_schema"
        assert response_format["json_schema"]["name"] == "Scored"


# ---------------------------------------------------------------------------
# Anthropic and Gemini routing
# ---------------------------------------------------------------------------

class TestOtherProviders:
    @patch("shared.services.llm_service.OpenAI")
    def test_delegates_to_anthropic(self, mock_openai_cls):
        service = LLMService(None, provider="anthropic", model_id="claude-sonnet-4-5")
        service.anthropic_adapter = Mock()
        service.anthropic_adapter.call_sync.return_value = {
            "output_text": "claude says hi", "reasoning": None, "parsed": None,
        }

        result = service.call(prompt="test", json_mode=False)

        assert result["output_text"] == "claude says hi"
        service.anthropic_adapter.call_sync.assert_called_once_with(
            prompt="test", reasoning_effort="none", json_mode=False, json_schema=None, schema_name="response",
        )

    @patch("shared.services.llm_service.OpenAI")
    def test_anthropic_without_key_raises(self, mock_openai_cls):
        service = LLMService(None, provider="anthropic", model_id="claude-sonnet-4-5")
        with pytest.raises(LLMServiceError, match="Anthropic adapter not configured"):
            service.call("test")

    @patch("shared.services.llm_service.OpenAI")
    def test_anthropic_errors_are_wrapped(self, mock_openai_cls):
        service = LLMService(None, provider="anthropic", model_id="claude-sonnet-4-5")
        service.anthropic_adapter = Mock()
        service.anthropic_adapter.call_sync.side_effect = RuntimeError("overloaded")

        with pytest.raises(LLMServiceError, match="overloaded"):
            service.call("test")

    @patch("shared.services.llm_service.types")
    @patch("shared.services.llm_service.genai")
    @patch("shared.services.llm_service.OpenAI")
    def test_google_routes_to_gemini(self, mock_openai_cls, mock_genai, mock_types):
        gemini_client = mock_genai.Client.return_value
        gemini_client.models.generate_content.return_value = Mock(text='{"ok": true}')

        service = LLMService(None, provider="google", model_id="gemini-2.5-flash", gemini_api_key="g-key")
        result = service.call("test")

        assert result == {"output_text": '{"ok": true}', "reasoning": None}
        assert gemini_client.models.generate_content.call_args.kwargs["model"] == "gemini-2.5-flash"
        assert mock_types.GenerateContentConfig.call_args.kwargs["response_mime_type"] == "application/json"

    @patch("shared.services.llm_service.OpenAI")
    def test_google_without_key_raises(self, mock_openai_cls):
        service = LLMService(None, provider="google", model_id="gemini-2.5-flash")
        with pytest.raises(LLMServiceError, match="Gemini API key not configured"):
            service.call("test")


# ---------------------------------------------------------------------------
# Retry logic
# ---------------------------------------------------------------------------

class TestRetry:
    @patch("shared.services.llm_service.time.sleep")
    @patch("shared.services.llm_service.OpenAI")
    def test_retries_rate_limit_then_succeeds(self, mock_openai_cls, mock_sleep):
        mock_client = mock_openai_cls.return_value
        mock_client.chat.completions.create.side_effect = [
            _make_rate_limit_error(),
            _make_chat_response("ok"),
        ]

        service = LLMService(api_key="fake-key", provider="openai", model_id="gpt-4o")
        result = service.call("test", json_mode=False)

        assert result["output_text"] == "ok"
        assert mock_client.chat.completions.create.call_count == 2
        mock_sleep.assert_called_once_with(1.0)

    @patch("shared.services.llm_service.time.sleep")
    @patch("shared.services.llm_service.OpenAI")
    def test_gives_up_after_max_retries(self, mock_openai_cls, mock_sleep):
        mock_client = mock_openai_cls.return_value
        mock_client.chat.completions.create.side_effect = _make_rate_limit_error()

        service = LLMService(api_key="fake-key", provider="openai", model_id="gpt-4o", max_retries=3)
        with pytest.raises(LLMServiceError, match="failed after 3 attempts"):
            service.call("test")

        assert mock_client.chat.completions.create.call_count == 3
        # exponential backoff, no sleep after the last attempt
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @patch("shared.services.llm_service.OpenAI")
    def test_unexpected_error_not_retried(self, mock_openai_cls):
        mock_client = mock_openai_cls.return_value
        mock_client.chat.completions.create.side_effect = ValueError("bad payload")

        service = LLMService(api_key="fake-key", provider="openai", model_id="gpt-4o")
        with pytest.raises(LLMServiceError, match="unexpected error"):
            service.call("test")

        assert mock_client.chat.completions.create.call_count == 1

