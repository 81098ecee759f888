from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from app.structuring.client_base import ChatRequest
from app.structuring.exceptions import StructuringError, StructuringNetworkError
from app.structuring.openai_client_adapter import OpenAIClientAdapter


def _make_mock_response(content: str | None, finish_reason: str = "stop") -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason
    response = MagicMock()
    response.choices = [choice]
    response.usage = None
    return response


def _complete(mock_client: MagicMock) -> str:
    with patch(
        "app.structuring.openai_client_adapter.openai.OpenAI",
        return_value=mock_client,
    ):
        adapter = OpenAIClientAdapter(api_key="k", timeout_seconds=30, base_url=None)
        return adapter.complete(
            ChatRequest(
                model="gpt-4o-mini",
                system_prompt="system",
                user_prompt="user",
                json_schema={"type": "object"},
                temperature=0.1,
            )
        )


class TestOpenAIClientAdapter:
    def test_returns_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response('{"ok": true}')

        assert _complete(mock_client) == '{"ok": true}'

    def test_requests_strict_json_schema(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response("{}")

        _complete(mock_client)

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.1
        assert kwargs["response_format"]["json_schema"]["name"] == "receipt_data"
        assert kwargs["response_format"]["json_schema"]["strict"] is True
        assert kwargs["response_format"]["json_schema"]["schema"] == {"type": "object"}
        assert [m["role"] for m in kwargs["messages"]] == ["system", "user"]

    def test_client_does_not_retry_on_its_own(self) -> None:
        with patch("app.structuring.openai_client_adapter.openai.OpenAI") as mock_cls:
            OpenAIClientAdapter(api_key="k", timeout_seconds=30, base_url="http://localhost:11434/v1")

        assert mock_cls.call_args.kwargs["max_retries"] == 0
        assert mock_cls.call_args.kwargs["base_url"] == "http://localhost:11434/v1"

    def test_raises_error_for_empty_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response(None)

        with pytest.raises(StructuringError, match="empty response"):
            _complete(mock_client)

    def test_raises_error_for_truncated_answer(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response(
            '{"merchant_name": "CARR', finish_reason="length"
        )

        with pytest.raises(StructuringError, match="truncated"):
            _complete(mock_client)

    def test_raises_error_for_no_choices(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = MagicMock(choices=[], usage=None)

        with pytest.raises(StructuringError, match="no choices"):
            _complete(mock_client)

    def test_raises_network_error_on_connection_failure(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=MagicMock()
        )

        with pytest.raises(StructuringNetworkError, match="network error"):
            _complete(mock_client)

    def test_raises_network_error_on_timeout(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = httpx.TimeoutException("timeout")

        with pytest.raises(StructuringNetworkError, match="network error"):
            _complete(mock_client)

    def test_rejected_api_key(self) -> None:
        mock_client = MagicMock()
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_client.chat.completions.create.side_effect = openai.AuthenticationError(
            "invalid api key",
            response=httpx.Response(401, request=request),
            body=None,
        )

        with pytest.raises(StructuringNetworkError, match="rejected the API key"):
            _complete(mock_client)

    def test_raises_network_error_on_api_error(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = openai.APIError(
            message="server error",
            request=MagicMock(),
            body=None,
        )

        with pytest.raises(StructuringNetworkError, match="API error"):
            _complete(mock_client)
