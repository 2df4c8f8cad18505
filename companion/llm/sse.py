"""
Incremental Server-Sent Events framing.

Upstream chat-completion streams look like::

    data: {json}\\n
    \\n
    data: {json}\\n
    \\n
    data: [DONE]\\n
    \\n

but the bytes arrive in chunks whose boundaries bear no relation to that
structure -- a chunk can end mid-marker, mid-JSON or between the ``\\r`` and
``\\n`` of a line ending.  ``FrameDecoder`` keeps the unfinished tail between
reads and only ever hands out complete payloads.
"""

from __future__ import annotations

import codecs
import logging
from typing import AsyncIterator

logger = logging.getLogger(__name__)

DATA_FIELD = "data"
DONE_SENTINEL = "[DONE]"


class FrameDecoder:
    """Turns an arbitrarily chunked byte stream into SSE ``data`` payloads."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._line_buf = ""
        self._data_lines: list[str] = []
        self.done = False

    def feed(self, chunk: bytes) -> list[str]:
        """Consume *chunk* and return the payloads of every frame it completed."""
        if self.done:
            return []
        self._line_buf += self._decoder.decode(chunk)
        payloads: list[str] = []

        while not self.done and "\n" in self._line_buf:
            line, self._line_buf = self._line_buf.split("\n", 1)
            self._process_line(line.rstrip("\r"), payloads)

        return payloads

    def close(self) -> list[str]:
        """
        Flush state at physical end of stream.

        A last line without its newline and a frame without its blank-line
        terminator are still delivered.
        """
        if self.done:
            return []
        self._line_buf += self._decoder.decode(b"", final=True)
        payloads: list[str] = []
        if self._line_buf:
            line, self._line_buf = self._line_buf, ""
            self._process_line(line.rstrip("\r"), payloads)
        if not self.done:
            self._dispatch(payloads)
        return payloads

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _process_line(self, line: str, out: list[str]) -> None:
        if not line:
            # Blank line -- frame boundary.
            self._dispatch(out)
            return

        if line.startswith(":"):
            return  # comment / keep-alive

        field_name, sep, value = line.partition(":")
        if not sep or field_name != DATA_FIELD:
            # event:, id:, retry: and bare field names carry no payload here.
            return
        if value.startswith(" "):
            value = value[1:]
        self._data_lines.append(value)

    def _dispatch(self, out: list[str]) -> None:
        if not self._data_lines:
            return
        payload = "\n".join(self._data_lines)
        self._data_lines = []
        if payload.strip() == DONE_SENTINEL:
            logger.debug("SSE stream reached %s", DONE_SENTINEL)
            self.done = True
            return
        out.append(payload)


async def iter_payloads(byte_stream: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """
    Yield decoded payloads from *byte_stream* until ``[DONE]`` or EOF.

    Errors raised by the byte stream itself propagate to the caller.
    """
    decoder = FrameDecoder()
    async for chunk in byte_stream:
        for payload in decoder.feed(chunk):
            yield payload
        if decoder.done:
            return
    for payload in decoder.close():
        yield payload
