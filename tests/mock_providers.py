"""
Mock LLM providers for testing.

Providers here speak the real wire format: ``chat_stream`` yields raw SSE
bytes, cut into chunks of a configurable size, so tests exercise the frame
decoder and the assembler exactly as production traffic would.
"""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator

from companion.llm.providers.base import Provider, ProviderError
from companion.llm.types import Message


# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------

def sse_chunk(delta: dict, finish_reason: str | None = None) -> bytes:
    """One ``chat.completion.chunk`` SSE frame carrying *delta*."""
    payload = {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


DONE = b"data: [DONE]\n\n"


def text_stream(text: str, reasoning: str = "") -> bytes:
    """A whole stream answering with *text*, word by word."""
    body = b""
    if reasoning:
        for word in reasoning.split(" "):
            body += sse_chunk({"reasoning_content": word + " "})
    words = text.split(" ")
    for i, word in enumerate(words):
        suffix = " " if i < len(words) - 1 else ""
        body += sse_chunk({"content": word + suffix})
    body += sse_chunk({}, finish_reason="stop")
    return body + DONE


def tool_call_stream(
    tool_name: str,
    tool_args: dict,
    call_id: str = "call_abc123",
    index: int = 0,
    content_prefix: str = "",
) -> bytes:
    """
    A whole stream requesting one tool call.

    The id and name arrive in the first fragment; the arguments are split in
    thirds over the following fragments.
    """
    args_json = json.dumps(tool_args, ensure_ascii=False)
    body = b""
    if content_prefix:
        body += sse_chunk({"content": content_prefix})

    body += sse_chunk({
        "tool_calls": [{
            "index": index,
            "id": call_id,
            "type": "function",
            "function": {"name": tool_name, "arguments": ""},
        }]
    })
    third = max(1, len(args_json) // 3)
    parts = [args_json[:third], args_json[third:2 * third], args_json[2 * third:]]
    for part in parts:
        if part:
            body += sse_chunk({
                "tool_calls": [{"index": index, "function": {"arguments": part}}]
            })
    body += sse_chunk({}, finish_reason="tool_calls")
    return body + DONE


def split_bytes(data: bytes, chunk_size: int) -> list[bytes]:
    return [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class MockProvider(Provider):
    """
    A provider that replays scripted streams and completions.

    Usage::

        provider = MockProvider(
            streams=[tool_call_stream("generate_diary", {...}), text_stream("Done")],
            completions=["# Diary ..."],
        )

    Parameters
    ----------
    streams:
        One raw SSE body per upstream round, consumed in order.  When the
        script runs out, the last entry is repeated.
    completions:
        Responses for ``chat_complete``, consumed in order (last repeated).
    chunk_size:
        Size of the byte chunks the streams are cut into.
    """

    def __init__(
        self,
        streams: list[bytes] | None = None,
        completions: list[str] | None = None,
        chunk_size: int = 7,
        model_name: str = "mock-model",
    ) -> None:
        self._streams = streams or [text_stream("")]
        self._completions = completions or [""]
        self._chunk_size = chunk_size
        self._model_name = model_name
        self.stream_calls: list[list[Message]] = []
        self.stream_tools: list[list[dict] | None] = []
        self.complete_calls: list[list[Message]] = []
        self.closed_streams = 0

    @property
    def name(self) -> str:
        return self._model_name

    @property
    def model(self) -> str:
        return self._model_name

    @property
    def call_count(self) -> int:
        return len(self.stream_calls)

    async def chat_stream(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
    ) -> AsyncIterator[bytes]:
        self.stream_calls.append(list(messages))
        self.stream_tools.append(tools)
        body = self._streams[min(len(self.stream_calls), len(self._streams)) - 1]
        try:
            for chunk in split_bytes(body, self._chunk_size):
                await asyncio.sleep(0)
                yield chunk
        finally:
            self.closed_streams += 1

    async def chat_complete(self, messages: list[Message]) -> str:
        self.complete_calls.append(list(messages))
        return self._completions[min(len(self.complete_calls), len(self._completions)) - 1]


class FailingProvider(MockProvider):
    """Raises ``ProviderError`` on the given round, after *fail_after* bytes."""

    def __init__(self, fail_on_round: int = 1, fail_after: int = 0, **kwargs) -> None:
        super().__init__(**kwargs)
        self._fail_on_round = fail_on_round
        self._fail_after = fail_after

    async def chat_stream(self, messages, tools=None):
        self.stream_calls.append(list(messages))
        self.stream_tools.append(tools)
        if len(self.stream_calls) < self._fail_on_round:
            body = self._streams[min(len(self.stream_calls), len(self._streams)) - 1]
            for chunk in split_bytes(body, self._chunk_size):
                yield chunk
            return
        body = self._streams[0][: self._fail_after]
        if body:
            yield body
        raise ProviderError("Upstream stream failed: connection reset")


class StallingProvider(MockProvider):
    """Sends the first frames of a stream and then never sends another byte."""

    def __init__(self, prefix: bytes, **kwargs) -> None:
        super().__init__(**kwargs)
        self._prefix = prefix
        self.cancelled = False

    async def chat_stream(self, messages, tools=None):
        self.stream_calls.append(list(messages))
        yield self._prefix
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        finally:
            self.closed_streams += 1
