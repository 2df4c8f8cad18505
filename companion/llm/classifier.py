"""Classify decoded chat-completion payloads into stream deltas."""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator

from companion.llm.sse import iter_payloads
from companion.llm.types import DeltaKind, RawToolDelta, StreamDelta

logger = logging.getLogger(__name__)


def classify(payload: str) -> StreamDelta | None:
    """
    Interpret one SSE payload as a single category.

    Returns ``None`` for anything that carries nothing useful -- malformed
    JSON, a chunk without choices, a delta of the wrong shape, an empty
    delta.  When a payload carries several categories, the first in
    ``classify_all`` order wins.
    """
    deltas = classify_all(payload)
    return deltas[0] if deltas else None


def classify_all(payload: str) -> list[StreamDelta]:
    """
    Interpret one SSE payload, one ``StreamDelta`` per category present.

    Order is reasoning, tool calls, text.  Values of the wrong type are
    dropped so that upstream noise never aborts the stream.
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, ValueError):
        logger.debug("Dropping malformed SSE payload: %s", payload[:200])
        return []

    if not isinstance(data, dict):
        return []
    choices = data.get("choices")
    if not choices or not isinstance(choices, list):
        return []

    choice = choices[0]
    delta = choice.get("delta") if isinstance(choice, dict) else None
    if not isinstance(delta, dict):
        logger.debug("Dropping SSE payload without a delta object: %s", payload[:200])
        return []
    finish_reason = choice.get("finish_reason")
    if not isinstance(finish_reason, str):
        finish_reason = None

    out: list[StreamDelta] = []

    reasoning = delta.get("reasoning_content")
    if reasoning and isinstance(reasoning, str):
        out.append(StreamDelta(
            kind=DeltaKind.REASONING, content=reasoning, finish_reason=finish_reason
        ))

    raw_tcs = delta.get("tool_calls")
    if raw_tcs and isinstance(raw_tcs, list):
        tool_deltas = [td for td in map(_tool_delta, raw_tcs) if td is not None]
        if tool_deltas:
            out.append(StreamDelta(
                kind=DeltaKind.TOOL_CALLS,
                tool_deltas=tool_deltas,
                finish_reason=finish_reason,
            ))

    content = delta.get("content")
    if content and isinstance(content, str):
        out.append(StreamDelta(
            kind=DeltaKind.TEXT, content=content, finish_reason=finish_reason
        ))

    if not out and finish_reason:
        logger.debug("Upstream finish_reason=%s", finish_reason)
    return out


def _tool_delta(raw_tc: object) -> RawToolDelta | None:
    if not isinstance(raw_tc, dict):
        return None
    func = raw_tc.get("function")
    if not isinstance(func, dict):
        func = {}
    idx = raw_tc.get("index")
    if not isinstance(idx, int) or isinstance(idx, bool):
        idx = 0
    call_id = raw_tc.get("id")
    name = func.get("name")
    args = func.get("arguments")
    return RawToolDelta(
        call_index=idx,
        id=call_id if isinstance(call_id, str) and call_id else None,
        name_delta=name if isinstance(name, str) else "",
        args_delta=args if isinstance(args, str) else "",
    )


async def iter_deltas(byte_stream: AsyncIterator[bytes]) -> AsyncIterator[StreamDelta]:
    """Decode and classify *byte_stream*, finishing with an END delta."""
    async for payload in iter_payloads(byte_stream):
        for delta in classify_all(payload):
            yield delta
    yield StreamDelta.end()
