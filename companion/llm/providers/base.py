"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from companion.llm.types import Message


class ProviderError(Exception):
    """The upstream endpoint could not be reached or answered with an error."""


class Provider(ABC):
    """
    A provider encapsulates access to a single chat-completion endpoint.

    Implementations must support:
      - Streaming completions (``chat_stream``), returned as the raw SSE
        byte stream so the caller owns framing and tool-call assembly.
      - One-shot completions (``chat_complete``) returning the full text.
    """

    @abstractmethod
    def chat_stream(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
    ) -> AsyncIterator[bytes]:
        """
        Start a streaming completion.

        Returns an async generator of raw body chunks.  Closing the generator
        must release the underlying connection.  Failures are raised as
        ``ProviderError``.
        """
        ...

    @abstractmethod
    async def chat_complete(self, messages: list[Message]) -> str:
        """Run a non-streaming completion and return the message content."""
        ...

    async def aclose(self) -> None:
        """Release any pooled connections."""
        return None

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. ``"openai-compat"``)."""
        ...

    @property
    def model(self) -> str | None:
        return None
