"""Chat-completion gateway.

``ChatGateway`` is the interface the pipeline depends on; ``OpenRouterGateway``
implements it against the OpenRouter HTTP API. Request framing, streaming and
status handling live here so the research stages only see ``ChatResult``s.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, Protocol, TypeVar, runtime_checkable

import httpx
import logfire
from httpx_sse import aconnect_sse

from openrouter_deep_research.core.config import (
    OPENROUTER_BASE_URL,
    ReasoningEffort,
    ResearchConfig,
)
from openrouter_deep_research.core.exceptions import (
    APIError,
    ResearchCancelledError,
    ResponseFormatError,
)
from openrouter_deep_research.models.catalog import ModelInfo
from openrouter_deep_research.models.chat import ChatResult, Citation, GenerationMetadata
from openrouter_deep_research.models.messages import ChatMessage

T = TypeVar("T")

ChunkCallback = Callable[[str], Awaitable[None] | None]


@runtime_checkable
class ChatGateway(Protocol):
    """Operations the research pipeline needs from an LLM backend."""

    async def chat_completion(
        self,
        *,
        model: str,
        max_tokens: int,
        max_web_requests: int,
        messages: list[ChatMessage],
        cancel_event: asyncio.Event | None = None,
        reasoning_effort: ReasoningEffort | None = None,
    ) -> ChatResult: ...

    async def stream_chat_completion(
        self,
        *,
        model: str,
        max_tokens: int,
        max_web_requests: int,
        messages: list[ChatMessage],
        on_chunk: ChunkCallback,
        cancel_event: asyncio.Event | None = None,
        reasoning_effort: ReasoningEffort | None = None,
    ) -> ChatResult: ...

    async def fetch_generation_metadata(self, request_id: str) -> GenerationMetadata: ...

    async def list_models(self) -> list[ModelInfo]: ...


def _annotations(raw: list[dict[str, Any]] | None) -> list[Citation]:
    citations = []
    for item in raw or []:
        citation = Citation.from_annotation(item)
        if citation is not None:
            citations.append(citation)
    return citations


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class OpenRouterGateway:
    """``ChatGateway`` backed by the OpenRouter REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENROUTER_BASE_URL,
        timeout: float = 600.0,
        http_client: httpx.AsyncClient | None = None,
        app_title: str = "openrouter-deep-research",
    ):
        """Initialize the gateway.

        Args:
            api_key: OpenRouter API key
            base_url: API base URL
            timeout: Per-request timeout in seconds
            http_client: Optional shared client; the gateway closes only clients it creates
            app_title: Value sent in the X-Title attribution header
        """
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._app_title = app_title
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_config(
        cls, config: ResearchConfig, http_client: httpx.AsyncClient | None = None
    ) -> "OpenRouterGateway":
        return cls(
            api_key=config.api_key_value or "",
            base_url=config.base_url,
            timeout=config.request_timeout_seconds,
            http_client=http_client,
        )

    async def __aenter__(self) -> "OpenRouterGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_title,
        }

    def _build_payload(
        self,
        model: str,
        max_tokens: int,
        max_web_requests: int,
        messages: list[ChatMessage],
        reasoning_effort: ReasoningEffort | None,
        stream: bool,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [m.model_dump(mode="json", exclude_none=True) for m in messages],
        }
        if max_web_requests > 0:
            payload["plugins"] = [{"id": "web", "max_results": max_web_requests}]
        if reasoning_effort:
            payload["reasoning"] = {"effort": reasoning_effort}
        if stream:
            payload["stream"] = True
        return payload

    def _api_error(
        self, url: str, method: str, status_code: int | None, request_body: Any, response_body: Any
    ) -> APIError:
        logfire.error(
            "Gateway request failed", url=url, method=method, status_code=status_code
        )
        return APIError(
            f"{method} {url} failed with status {status_code}",
            url=url,
            method=method,
            status_code=status_code,
            request_body=request_body,
            response_body=response_body,
        )

    async def _cancellable(
        self,
        coro: Coroutine[Any, Any, T],
        cancel_event: asyncio.Event | None,
        model: str,
    ) -> T:
        """Await ``coro`` unless ``cancel_event`` fires first."""
        if cancel_event is None:
            return await coro
        if cancel_event.is_set():
            coro.close()
            raise ResearchCancelledError(model)

        call = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            call.cancel()
            raise
        finally:
            waiter.cancel()

        if call in done:
            return call.result()

        call.cancel()
        await asyncio.gather(call, return_exceptions=True)
        logfire.info("LLM call cancelled", model=model)
        raise ResearchCancelledError(model)

    def _check_error_body(self, url: str, payload: dict[str, Any], data: dict[str, Any]) -> None:
        # The API can report upstream failures inside a 200 body
        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            raise self._api_error(
                url, "POST", code if isinstance(code, int) else None, payload, data
            )

    async def _post_chat(self, url: str, payload: dict[str, Any], model: str) -> ChatResult:
        response = await self._client.post(url, json=payload, headers=self._headers)
        if response.is_error:
            raise self._api_error(
                url, "POST", response.status_code, payload, _response_body(response)
            )

        data = response.json()
        self._check_error_body(url, payload, data)
        choices = data.get("choices")
        if not choices:
            raise ResponseFormatError(url=url, reason="no choices in response")

        message = choices[0].get("message") or {}
        usage = data.get("usage") or {}
        return ChatResult(
            request_id=data.get("id") or "",
            model_id=data.get("model") or model,
            created_at=data.get("created") or 0,
            content=message.get("content") or "",
            annotations=_annotations(message.get("annotations")),
            usage=usage.get("total_tokens"),
        )

    async def chat_completion(
        self,
        *,
        model: str,
        max_tokens: int,
        max_web_requests: int,
        messages: list[ChatMessage],
        cancel_event: asyncio.Event | None = None,
        reasoning_effort: ReasoningEffort | None = None,
    ) -> ChatResult:
        """Issue one non-streaming chat completion."""
        url = f"{self.base_url}/chat/completions"
        payload = self._build_payload(
            model, max_tokens, max_web_requests, messages, reasoning_effort, stream=False
        )
        logfire.debug(
            "Chat completion", model=model, max_tokens=max_tokens, web=max_web_requests
        )
        return await self._cancellable(self._post_chat(url, payload, model), cancel_event, model)

    async def _stream_chat(
        self, url: str, payload: dict[str, Any], model: str, on_chunk: ChunkCallback
    ) -> ChatResult:
        parts: list[str] = []
        annotations: list[Citation] = []
        request_id = ""
        created = 0
        total_tokens: int | None = None

        async with aconnect_sse(
            self._client, "POST", url, json=payload, headers=self._headers
        ) as event_source:
            response = event_source.response
            if response.is_error:
                await response.aread()
                raise self._api_error(
                    url, "POST", response.status_code, payload, _response_body(response)
                )

            async for event in event_source.aiter_sse():
                if event.data == "[DONE]":
                    break
                chunk = event.json()
                self._check_error_body(url, payload, chunk)
                request_id = chunk.get("id") or request_id
                model = chunk.get("model") or model
                created = chunk.get("created") or created
                if chunk.get("usage"):
                    total_tokens = chunk["usage"].get("total_tokens", total_tokens)

                for choice in chunk.get("choices") or []:
                    delta = choice.get("delta") or {}
                    annotations.extend(_annotations(delta.get("annotations")))
                    text = delta.get("content")
                    if text:
                        parts.append(text)
                        maybe_awaitable = on_chunk(text)
                        if inspect.isawaitable(maybe_awaitable):
                            await maybe_awaitable

        return ChatResult(
            request_id=request_id,
            model_id=model,
            created_at=created,
            content="".join(parts),
            annotations=annotations,
            usage=total_tokens,
        )

    async def stream_chat_completion(
        self,
        *,
        model: str,
        max_tokens: int,
        max_web_requests: int,
        messages: list[ChatMessage],
        on_chunk: ChunkCallback,
        cancel_event: asyncio.Event | None = None,
        reasoning_effort: ReasoningEffort | None = None,
    ) -> ChatResult:
        """Issue one streaming chat completion, forwarding text deltas to ``on_chunk``."""
        url = f"{self.base_url}/chat/completions"
        payload = self._build_payload(
            model, max_tokens, max_web_requests, messages, reasoning_effort, stream=True
        )
        logfire.debug("Streaming chat completion", model=model, max_tokens=max_tokens)
        return await self._cancellable(
            self._stream_chat(url, payload, model, on_chunk), cancel_event, model
        )

    async def fetch_generation_metadata(self, request_id: str) -> GenerationMetadata:
        """Look up cost and timing for a completed request."""
        url = f"{self.base_url}/generation"
        response = await self._client.get(url, params={"id": request_id}, headers=self._headers)
        if response.is_error:
            raise self._api_error(
                f"{url}?id={request_id}",
                "GET",
                response.status_code,
                None,
                _response_body(response),
            )
        data = response.json().get("data")
        if not data:
            raise ResponseFormatError(url=url, reason="no generation data")
        return GenerationMetadata.from_api(data)

    async def list_models(self) -> list[ModelInfo]:
        url = f"{self.base_url}/models"
        response = await self._client.get(url, headers=self._headers)
        if response.is_error:
            raise self._api_error(url, "GET", response.status_code, None, _response_body(response))
        return [ModelInfo.from_api(item) for item in response.json().get("data") or []]


__all__ = ["ChatGateway", "ChunkCallback", "OpenRouterGateway"]
