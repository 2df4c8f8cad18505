"""
OpenAI-compatible chat-completion provider.

Works with any endpoint that speaks the OpenAI ``/chat/completions`` wire
protocol -- Zhipu's GLM API (the default), OpenAI itself, vLLM, LM Studio,
LocalAI, etc.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx

from companion.llm.providers.base import Provider, ProviderError
from companion.llm.types import Message

logger = logging.getLogger(__name__)


class OpenAICompatProvider(Provider):
    """
    Stream-capable provider for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Base URL of the API, e.g. ``"https://open.bigmodel.cn/api/paas/v4"``.
    model:
        Model identifier sent in the ``model`` field.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    timeout:
        HTTP request timeout in seconds (connect and per-read).
    max_retries:
        Number of automatic retries on transient HTTP errors (5xx, 429) and
        connection failures.  Only attempted before any body byte is read.
    transport:
        Optional ``httpx`` transport, mainly for tests.
    """

    def __init__(
        self,
        url: str = "https://open.bigmodel.cn/api/paas/v4",
        model: str = "glm-5",
        api_key: str = "",
        timeout: float = 120.0,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport

    # ------------------------------------------------------------------
    # Provider interface
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return "openai-compat"

    @property
    def model(self) -> str:
        return self._model

    async def chat_stream(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
    ) -> AsyncIterator[bytes]:
        body = self._build_body(messages, tools, stream=True)
        url = f"{self._url}/chat/completions"

        last_error: Exception | None = None
        streamed = False
        for attempt in range(1 + self._max_retries):
            try:
                async with self._client() as client:
                    async with client.stream(
                        "POST", url, json=body, headers=self._build_headers(stream=True)
                    ) as response:
                        if _retryable(response.status_code):
                            # Read body so the connection is released.
                            await response.aread()
                            last_error = _status_error(response)
                            logger.warning(
                                "Upstream returned HTTP %d (attempt %d/%d)",
                                response.status_code,
                                attempt + 1,
                                1 + self._max_retries,
                            )
                            continue

                        if response.is_error:
                            await response.aread()
                            raise _status_error(response)

                        async for chunk in response.aiter_bytes():
                            streamed = True
                            yield chunk
                        return  # success
            except httpx.TransportError as exc:
                # Retrying is only safe before the first byte went out.
                last_error = exc
                if not streamed and attempt < self._max_retries:
                    logger.warning("Upstream transport error, retrying: %s", exc)
                    continue
                raise ProviderError(f"Upstream stream failed: {exc}") from exc
            except httpx.HTTPError as exc:
                raise ProviderError(f"Upstream stream failed: {exc}") from exc

        raise ProviderError(f"Upstream stream failed: {last_error}") from last_error

    async def chat_complete(self, messages: list[Message]) -> str:
        body = self._build_body(messages, None, stream=False)
        url = f"{self._url}/chat/completions"

        last_error: Exception | None = None
        for attempt in range(1 + self._max_retries):
            try:
                async with self._client() as client:
                    resp = await client.post(
                        url, json=body, headers=self._build_headers(stream=False)
                    )

                    if _retryable(resp.status_code):
                        last_error = _status_error(resp)
                        continue

                    if resp.is_error:
                        raise _status_error(resp)
                    data = resp.json()
            except httpx.TransportError as exc:
                last_error = exc
                if attempt < self._max_retries:
                    continue
                raise ProviderError(f"Upstream completion failed: {exc}") from exc
            except httpx.HTTPError as exc:
                raise ProviderError(f"Upstream completion failed: {exc}") from exc
            except ValueError as exc:
                raise ProviderError(f"Upstream returned invalid JSON: {exc}") from exc
            else:
                return self._parse_non_stream(data)

        raise ProviderError(f"Upstream completion failed: {last_error}") from last_error

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _build_headers(self, *, stream: bool) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream" if stream else "application/json",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(
        self,
        messages: list[Message],
        tools: list[dict] | None,
        stream: bool,
    ) -> dict:
        wire_messages = [msg.to_wire() for msg in messages]

        body: dict = {
            "model": self._model,
            "messages": wire_messages,
            "stream": stream,
        }
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"
        logger.info(
            "REQUEST: model=%s stream=%s tools=%d messages=%d api_key=%s...",
            self._model,
            stream,
            len(tools) if tools else 0,
            len(wire_messages),
            self._api_key[:6] if self._api_key else "(none)",
        )
        return body

    def _parse_non_stream(self, data: dict) -> str:
        choices = data.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return message.get("content") or ""


def _retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _status_error(response: httpx.Response) -> httpx.HTTPStatusError:
    return httpx.HTTPStatusError(
        f"HTTP {response.status_code}",
        request=response.request,
        response=response,
    )
