"""
Unit tests for the HTTP transports
"""

import httpx
import pytest
from unittest.mock import AsyncMock, Mock, patch

from core.exceptions import (
    AuthenticationError,
    GenerationError,
    NetworkError,
    RateLimitError,
)
from enrichment.clients import GenerationClient, VideoExistenceClient
from schemas.generation import GenerationRequest, VideoCheckRequest


def http_response(status_code, payload=None, headers=None):
    response = Mock()
    response.status_code = status_code
    response.json = Mock(return_value=payload)
    response.headers = headers or {}
    response.text = ""
    return response


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def mock_http():
    with patch("httpx.AsyncClient") as mock_client:
        http = mock_client.return_value.__aenter__.return_value
        http.post = AsyncMock()
        http.get = AsyncMock()
        yield http


@pytest.fixture
def request_():
    return GenerationRequest(task="tldr", prompt="Summarise caching", max_tokens=50)


class TestGenerationClient:
    def make_client(self):
        return GenerationClient(api_url="https://llm.example.com/v1/", api_key="test_key", model="test-model")

    @pytest.mark.asyncio
    async def test_returns_message_content(self, mock_http, request_):
        mock_http.post.return_value = http_response(200, completion("Cache hot reads."))

        text = await self.make_client().generate(request_)

        assert text == "Cache hot reads."
        args, kwargs = mock_http.post.call_args
        assert args[0] == "https://llm.example.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer test_key"
        assert kwargs["json"]["model"] == "test-model"
        assert kwargs["json"]["max_tokens"] == 50
        assert kwargs["json"]["messages"][-1]["content"] == "Summarise caching"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [
        (401, AuthenticationError),
        (403, AuthenticationError),
        (429, RateLimitError),
        (500, NetworkError),
        (503, NetworkError),
        (400, GenerationError),
        (422, GenerationError),
    ])
    async def test_status_mapping(self, mock_http, request_, status, error):
        mock_http.post.return_value = http_response(status)

        with pytest.raises(error):
            await self.make_client().generate(request_)

    @pytest.mark.asyncio
    async def test_retry_after_header(self, mock_http, request_):
        mock_http.post.return_value = http_response(429, headers={"Retry-After": "20"})

        with pytest.raises(RateLimitError) as exc_info:
            await self.make_client().generate(request_)

        assert exc_info.value.retry_after == 20.0

    @pytest.mark.asyncio
    async def test_transport_error_is_retryable(self, mock_http, request_):
        mock_http.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(NetworkError):
            await self.make_client().generate(request_)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{"choices": []}, {"error": "nope"}, completion("   ")])
    async def test_unusable_payload(self, mock_http, request_, payload):
        mock_http.post.return_value = http_response(200, payload)

        with pytest.raises(GenerationError):
            await self.make_client().generate(request_)

    def test_no_authorization_without_key(self):
        client = GenerationClient(api_url="http://localhost:11434/v1", api_key="")
        assert "Authorization" not in client._headers()


class TestVideoExistenceClient:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [(200, True), (404, False), (401, False), (400, False)])
    async def test_existence(self, mock_http, status, expected):
        mock_http.get.return_value = http_response(status)
        client = VideoExistenceClient(oembed_url="https://video.example.com/oembed")

        assert await client.exists(VideoCheckRequest(url="https://youtu.be/abc")) is expected
        _, kwargs = mock_http.get.call_args
        assert kwargs["params"] == {"url": "https://youtu.be/abc", "format": "json"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [(429, RateLimitError), (500, NetworkError), (502, NetworkError)])
    async def test_transient_statuses(self, mock_http, status, error):
        mock_http.get.return_value = http_response(status)

        with pytest.raises(error):
            await VideoExistenceClient().exists(VideoCheckRequest(url="https://youtu.be/abc"))

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self, mock_http):
        mock_http.get.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(NetworkError):
            await VideoExistenceClient()(VideoCheckRequest(url="https://youtu.be/abc"))
