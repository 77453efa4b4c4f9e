"""
Tests for the completion clients.

Verifies:
- Token-limit parameter and temperature depend on the model family
- Text, finish reason and usage are extracted
- Provider HTTP and transport failures raise ProviderRequestError
- The scripted mock client replays responses and records invocations
"""

import json

import httpx
import pytest

from campaign_backend.app.domains.regeneration.errors import ProviderRequestError
from campaign_backend.app.domains.regeneration.llm_client import (
    MockCompletionClient,
    OpenAICompletionClient,
    build_chat_payload,
)
from campaign_backend.app.domains.regeneration.schemas import (
    ChatMessage,
    CompletionRequest,
    CompletionResult,
)


def make_request(model: str = "gpt-4o-2024-08-06", temperature: float | None = 0.95):
    return CompletionRequest(
        model=model,
        messages=[
            ChatMessage(role="system", content="system"),
            ChatMessage(role="user", content="user"),
        ],
        max_tokens=4000,
        temperature=temperature,
        credential="sk-test",
    )


def completion_body(content: str | None, finish_reason: str = "stop") -> dict:
    return {
        "id": "chatcmpl-123",
        "model": "gpt-4o-2024-08-06",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": finish_reason}
        ],
        "usage": {"prompt_tokens": 1200, "completion_tokens": 800, "total_tokens": 2000},
    }


def client_with(handler) -> OpenAICompletionClient:
    return OpenAICompletionClient(
        api_base_url="https://api.test/v1",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestChatPayload:
    def test_chat_family_uses_max_tokens_and_temperature(self):
        payload = build_chat_payload(make_request("gpt-4o-2024-08-06"))

        assert payload["max_tokens"] == 4000
        assert payload["temperature"] == 0.95
        assert "max_completion_tokens" not in payload
        assert payload["messages"][1] == {"role": "user", "content": "user"}

    def test_reasoning_family_uses_completion_budget_without_temperature(self):
        payload = build_chat_payload(make_request("o3-mini-2025-01-31"))

        assert payload["max_completion_tokens"] == 4000
        assert "max_tokens" not in payload
        assert "temperature" not in payload

    def test_temperature_omitted_when_unset(self):
        payload = build_chat_payload(make_request(temperature=None))

        assert "temperature" not in payload


class TestOpenAICompletionClient:
    @pytest.mark.asyncio
    async def test_successful_completion(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion_body('{"themes": []}'))

        client = client_with(handler)
        result = await client.complete(make_request())

        assert captured["url"] == "https://api.test/v1/chat/completions"
        assert captured["auth"] == "Bearer sk-test"
        assert captured["body"]["model"] == "gpt-4o-2024-08-06"
        assert result.text == '{"themes": []}'
        assert result.finish_reason == "stop"
        assert not result.truncated
        assert result.usage.prompt_tokens == 1200
        assert result.usage.total_tokens == 2000
        assert result.invocation_metadata["token_parameter"] == "max_tokens"

    @pytest.mark.asyncio
    async def test_length_finish_reason_marks_truncation(self):
        client = client_with(
            lambda request: httpx.Response(200, json=completion_body('{"themes": [', "length"))
        )

        result = await client.complete(make_request())

        assert result.truncated

    @pytest.mark.asyncio
    async def test_missing_content_is_returned_as_none(self):
        client = client_with(lambda request: httpx.Response(200, json=completion_body(None)))

        result = await client.complete(make_request())

        assert result.text is None

    @pytest.mark.asyncio
    async def test_http_error_raises_provider_request_error(self):
        client = client_with(
            lambda request: httpx.Response(
                401, json={"error": {"message": "Incorrect API key provided"}}
            )
        )

        with pytest.raises(ProviderRequestError) as exc_info:
            await client.complete(make_request())

        assert exc_info.value.status_code == 401
        assert "Incorrect API key provided" in exc_info.value.message
        assert exc_info.value.code == "PROVIDER_REQUEST_FAILED"

    @pytest.mark.asyncio
    async def test_transport_error_raises_provider_request_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = client_with(handler)

        with pytest.raises(ProviderRequestError) as exc_info:
            await client.complete(make_request())

        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises_provider_request_error(self):
        client = client_with(lambda request: httpx.Response(200, json={"choices": []}))

        with pytest.raises(ProviderRequestError):
            await client.complete(make_request())


class TestMockCompletionClient:
    @pytest.mark.asyncio
    async def test_replays_responses_then_repeats_last(self):
        client = MockCompletionClient(responses=["first", "second"])

        texts = [(await client.complete(make_request())).text for _ in range(3)]

        assert texts == ["first", "second", "second"]
        assert client.invocation_count == 3
        assert len(client.invocations) == 3

    @pytest.mark.asyncio
    async def test_returns_scripted_results_verbatim(self):
        scripted = CompletionResult(text="x", finish_reason="length")
        client = MockCompletionClient(responses=[scripted])

        result = await client.complete(make_request())

        assert result is scripted

    @pytest.mark.asyncio
    async def test_raises_configured_error(self):
        client = MockCompletionClient(error=ProviderRequestError("boom"))

        with pytest.raises(ProviderRequestError):
            await client.complete(make_request())

        assert client.invocation_count == 1

    @pytest.mark.asyncio
    async def test_reset(self):
        client = MockCompletionClient()
        await client.complete(make_request())

        client.reset()

        assert client.invocation_count == 0
        assert client.invocations == []
