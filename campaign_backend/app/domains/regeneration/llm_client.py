from abc import ABC, abstractmethod
from typing import Any

import httpx

from campaign_backend.app.domains.regeneration.errors import ProviderRequestError
from campaign_backend.app.domains.regeneration.prompt_builder import is_reasoning_model
from campaign_backend.app.domains.regeneration.schemas import (
    CompletionRequest,
    CompletionResult,
    TokenUsage,
)
from campaign_backend.app.logging_config import get_logger

logger = get_logger("app.domains.regeneration.llm_client")


class BaseCompletionClient(ABC):
    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResult:
        pass


def build_chat_payload(request: CompletionRequest) -> dict[str, Any]:
    """Chat completions body; the token-limit parameter depends on the model family."""
    payload: dict[str, Any] = {
        "model": request.model,
        "messages": [m.model_dump() for m in request.messages],
    }
    if is_reasoning_model(request.model):
        payload["max_completion_tokens"] = request.max_tokens
    else:
        payload["max_tokens"] = request.max_tokens
        if request.temperature is not None:
            payload["temperature"] = request.temperature
    return payload


class OpenAICompletionClient(BaseCompletionClient):
    def __init__(
        self,
        api_base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        payload = build_chat_payload(request)
        client = self._get_client()

        try:
            response = await client.post(
                f"{self.api_base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {request.credential}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"Completion API returned {status_code} for model {request.model}")
            raise ProviderRequestError(
                self._error_message(e.response), model=request.model, status_code=status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Completion API transport error for model {request.model}: {e}")
            raise ProviderRequestError(str(e) or type(e).__name__, model=request.model) from e
        except ValueError as e:
            raise ProviderRequestError(
                f"provider returned a non-JSON body: {e}", model=request.model
            ) from e

        try:
            choice = data["choices"][0]
            text = (choice.get("message") or {}).get("content")
            finish_reason = choice.get("finish_reason")
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderRequestError(
                f"unexpected response shape: {e}", model=request.model
            ) from e

        usage_data = data.get("usage") or {}
        usage = TokenUsage(
            prompt_tokens=usage_data.get("prompt_tokens", 0),
            completion_tokens=usage_data.get("completion_tokens", 0),
            total_tokens=usage_data.get("total_tokens", 0),
        )

        logger.debug(
            f"Completion received: model={data.get('model', request.model)}, "
            f"finish_reason={finish_reason}, tokens={usage.total_tokens}"
        )

        return CompletionResult(
            text=text,
            finish_reason=finish_reason,
            usage=usage,
            model=data.get("model", request.model),
            invocation_metadata={
                "attempt_number": request.attempt_number,
                "response_id": data.get("id"),
                "token_parameter": (
                    "max_completion_tokens" if is_reasoning_model(request.model) else "max_tokens"
                ),
            },
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return f"HTTP {response.status_code}"


class MockCompletionClient(BaseCompletionClient):
    """Scripted client: returns ``responses`` in order, then repeats the last one."""

    def __init__(
        self,
        responses: list[str | CompletionResult] | None = None,
        default_response: str | None = None,
        finish_reason: str = "stop",
        usage: TokenUsage | None = None,
        error: Exception | None = None,
    ):
        self._responses = list(responses or [])
        self._default_response = default_response if default_response is not None else '{"themes": []}'
        self._finish_reason = finish_reason
        self._usage = usage or TokenUsage(prompt_tokens=100, completion_tokens=50, total_tokens=150)
        self._error = error
        self._invocation_count = 0
        self._invocations: list[CompletionRequest] = []

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        self._invocation_count += 1
        self._invocations.append(request)

        if self._error is not None:
            raise self._error

        if self._responses:
            index = min(self._invocation_count, len(self._responses)) - 1
            scripted = self._responses[index]
        else:
            scripted = self._default_response

        if isinstance(scripted, CompletionResult):
            return scripted

        return CompletionResult(
            text=scripted,
            finish_reason=self._finish_reason,
            usage=self._usage,
            model=request.model,
            invocation_metadata={
                "invocation_number": self._invocation_count,
                "simulated": True,
                "prompt_length": sum(len(m.content) for m in request.messages),
            },
        )

    @property
    def invocation_count(self) -> int:
        return self._invocation_count

    @property
    def invocations(self) -> list[CompletionRequest]:
        return self._invocations.copy()

    def reset(self) -> None:
        self._invocation_count = 0
        self._invocations = []
