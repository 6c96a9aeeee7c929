from unittest.mock import MagicMock, Mock, patch

import httpx
import pytest

from app.services.llm import LLMProviderError, OpenAIProvider


def _mock_openai(mock_client_class, status_code=200, payload=None):
    mock_client = MagicMock()
    mock_client_class.return_value.__enter__.return_value = mock_client
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_response.text = "error body"
    mock_response.json.return_value = payload or {}
    mock_client.post.return_value = mock_response
    return mock_client


class TestOpenAIProvider:
    @patch("app.services.llm.openai_provider.httpx.Client")
    def test_sends_json_mode_request(self, mock_client_class):
        mock_client = _mock_openai(
            mock_client_class,
            payload={
                "model": "gpt-4.1-mini",
                "choices": [{"message": {"content": '{"reply_text": "네"}'}}],
                "usage": {"total_tokens": 42},
            },
        )
        provider = OpenAIProvider(api_key="test-key")

        response = provider.generate(
            [{"role": "user", "content": "체크인 몇 시?"}],
            temperature=0.3,
            max_tokens=800,
            response_format={"type": "json_object"},
        )

        assert response.content == '{"reply_text": "네"}'
        assert response.usage == {"total_tokens": 42}
        call = mock_client.post.call_args
        assert call[0][0] == "https://api.openai.com/v1/chat/completions"
        assert call[1]["headers"]["Authorization"] == "Bearer test-key"
        payload = call[1]["json"]
        assert payload["model"] == "gpt-4.1-mini"
        assert payload["temperature"] == 0.3
        assert payload["response_format"] == {"type": "json_object"}

    @patch("app.services.llm.openai_provider.httpx.Client")
    def test_uses_timeout(self, mock_client_class):
        _mock_openai(mock_client_class, payload={"choices": []})

        OpenAIProvider(api_key="k", default_timeout=12.5).generate([], timeout_seconds=None)

        mock_client_class.assert_called_once_with(timeout=12.5)

    @patch("app.services.llm.openai_provider.httpx.Client")
    def test_empty_choices_give_empty_content(self, mock_client_class):
        _mock_openai(mock_client_class, payload={"choices": []})

        assert OpenAIProvider(api_key="k").generate([]).content == ""

    @patch("app.services.llm.openai_provider.httpx.Client")
    def test_non_200_raises(self, mock_client_class):
        _mock_openai(mock_client_class, status_code=500)

        with pytest.raises(LLMProviderError, match="500"):
            OpenAIProvider(api_key="k").generate([])

    @patch("app.services.llm.openai_provider.httpx.Client")
    def test_transport_error_raises(self, mock_client_class):
        mock_client = _mock_openai(mock_client_class)
        mock_client.post.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(LLMProviderError, match="transport"):
            OpenAIProvider(api_key="k").generate([])
