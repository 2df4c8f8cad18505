"""
Orchestrator core -- the round loop that ties everything together.

For one client request the orchestrator:
1. Builds the conversation (system instruction + client turns)
2. Streams an upstream completion with the tool catalog
3. Forwards reasoning / text deltas to the client as they arrive
4. Assembles tool-call fragments and, at stream end, executes the calls
5. Feeds tool results back and loops until a round produces no tool
   calls, or max_rounds is reached
6. Always finishes the client stream with ``data: [DONE]``

A round moves through ``RoundPhase`` states::

    AWAITING_UPSTREAM -> DECODING -> TOOL_CALLS_PRESENT -> (next round)
                                  \\-> NO_TOOL_CALLS -> TERMINAL
"""

from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterable

from companion.llm.classifier import iter_deltas
from companion.llm.providers.base import Provider, ProviderError
from companion.llm.tool_call_assembler import ToolCallAssembler
from companion.llm.types import DeltaKind, Message
from companion.orchestrator.emitter import DONE_FRAME, EventEmitter, encode_event
from companion.prompts.system import build_system_prompt
from companion.tools.executor import ToolExecutor
from companion.tools.registry import ToolRegistry
from companion.types import ErrorCode

logger = logging.getLogger(__name__)

CLIENT_ROLES = ("system", "user", "assistant")


class RoundPhase(enum.Enum):
    AWAITING_UPSTREAM = "awaiting_upstream"
    DECODING = "decoding"
    TOOL_CALLS_PRESENT = "tool_calls_present"
    NO_TOOL_CALLS = "no_tool_calls"
    TERMINAL = "terminal"


@dataclass
class RoundState:
    """Everything scoped to a single upstream call."""

    number: int
    phase: RoundPhase = RoundPhase.AWAITING_UPSTREAM
    assembler: ToolCallAssembler = field(default_factory=ToolCallAssembler)
    text_parts: list[str] = field(default_factory=list)
    reasoning_parts: list[str] = field(default_factory=list)

    def advance(self, phase: RoundPhase) -> None:
        logger.debug("round %d: %s -> %s", self.number, self.phase.value, phase.value)
        self.phase = phase


class Conversation:
    """Append-only message list owned by one orchestrator run."""

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = list(messages)

    @classmethod
    def from_history(cls, system_prompt: str, history: Iterable[Any]) -> Conversation:
        """
        Start a conversation from client turns.

        *history* items are ``Message`` objects or ``{"role", "content"}``
        dicts; turns with a role a client may not send are skipped.
        """
        messages: list[Message] = []
        if system_prompt:
            messages.append(Message(role="system", content=system_prompt))
        for turn in history:
            if isinstance(turn, Message):
                role, content = turn.role, turn.content
            else:
                role, content = turn.get("role"), turn.get("content")
            if role not in CLIENT_ROLES:
                logger.debug("Skipping client turn with role %r", role)
                continue
            messages.append(Message(role=role, content=content or ""))
        return cls(messages)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)


class Orchestrator:
    """
    Streaming agent loop.

    Parameters
    ----------
    provider : Provider
        Upstream chat-completion endpoint.
    registry : ToolRegistry
        Registered tools.  Read-only after startup.
    system_prompt : str
        System instruction for every round.  Built from the registry when
        empty.
    max_rounds : int
        Max upstream calls per request.
    tool_timeout : float
        Max seconds for a single tool execution.
    stall_timeout : float | None
        Max seconds to wait for the next upstream chunk.  ``None`` disables
        the limit.
    """

    def __init__(
        self,
        provider: Provider,
        registry: ToolRegistry,
        system_prompt: str = "",
        max_rounds: int = 5,
        tool_timeout: float = 120.0,
        stall_timeout: float | None = 60.0,
    ) -> None:
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.provider = provider
        self.registry = registry
        self.system_prompt = system_prompt or build_system_prompt(registry.list())
        self.max_rounds = max_rounds
        self.stall_timeout = stall_timeout or None
        self.executor = ToolExecutor(registry, timeout=tool_timeout)

    async def stream(
        self, history: Iterable[Any] | Conversation
    ) -> AsyncIterator[str]:
        """Yield SSE frames for one request, always ending with ``[DONE]``."""
        async with aclosing(self.run(history)) as events:
            async for event in events:
                yield encode_event(event)
        yield DONE_FRAME

    async def run(
        self, history: Iterable[Any] | Conversation
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Drive the round loop and yield outward events.

        Upstream and internal failures are reported as a final ``error``
        event rather than raised.  Closing the generator early (client went
        away) closes the in-flight upstream stream and starts no new round.
        """
        if isinstance(history, Conversation):
            conversation = history
        else:
            conversation = Conversation.from_history(self.system_prompt, history)
        emitter = EventEmitter()
        tools_schema = self.registry.to_openai_schema() or None

        logger.info(
            "Agent request: %d messages, %d tools, max_rounds=%d",
            len(conversation),
            len(self.registry),
            self.max_rounds,
        )

        rounds = 0
        try:
            while rounds < self.max_rounds:
                rounds += 1
                state = RoundState(number=rounds)
                round_events = self._run_round(
                    state, conversation, emitter, tools_schema
                )
                async with aclosing(round_events):
                    async for event in round_events:
                        yield event
                if state.phase is RoundPhase.NO_TOOL_CALLS:
                    state.advance(RoundPhase.TERMINAL)
                    break
            else:
                logger.warning(
                    "Round limit of %d reached with tool calls still pending",
                    self.max_rounds,
                )
        except ProviderError as exc:
            logger.error("Upstream failure in round %d: %s", rounds, exc)
            yield emitter.error(ErrorCode.UPSTREAM_ERROR, str(exc))
        except asyncio.TimeoutError:
            logger.error(
                "Upstream stalled for %ss in round %d", self.stall_timeout, rounds
            )
            yield emitter.error(
                ErrorCode.TIMEOUT,
                f"Upstream sent nothing for {self.stall_timeout}s",
            )
        except Exception as exc:
            logger.exception("Agent loop failed in round %d", rounds)
            yield emitter.error(ErrorCode.INTERNAL_ERROR, str(exc))

        logger.info("Agent request finished after %d round(s)", rounds)

    async def _run_round(
        self,
        state: RoundState,
        conversation: Conversation,
        emitter: EventEmitter,
        tools_schema: list[dict] | None,
    ) -> AsyncIterator[dict[str, Any]]:
        upstream = self.provider.chat_stream(conversation.messages, tools_schema)
        state.advance(RoundPhase.DECODING)

        guarded = _stall_guard(upstream, self.stall_timeout)
        async with aclosing(upstream), aclosing(guarded):
            deltas = iter_deltas(guarded)
            async with aclosing(deltas):
                async for delta in deltas:
                    if delta.kind is DeltaKind.REASONING:
                        state.reasoning_parts.append(delta.content)
                        yield emitter.thinking(delta.content)
                    elif delta.kind is DeltaKind.TEXT:
                        state.text_parts.append(delta.content)
                        yield emitter.text(delta.content)
                    elif delta.kind is DeltaKind.TOOL_CALLS:
                        for fragment in delta.tool_deltas:
                            state.assembler.feed(fragment)
                    else:
                        break

        calls = state.assembler.finalize()
        logger.debug(
            "round %d stream ended: text=%d chars reasoning=%d chars tool_calls=%d",
            state.number,
            sum(map(len, state.text_parts)),
            sum(map(len, state.reasoning_parts)),
            len(calls),
        )
        if state.assembler.errors:
            logger.warning("Tool-call assembly errors: %s", state.assembler.errors)

        if not calls:
            state.advance(RoundPhase.NO_TOOL_CALLS)
            conversation.append(
                Message(role="assistant", content="".join(state.text_parts))
            )
            return

        state.advance(RoundPhase.TOOL_CALLS_PRESENT)
        conversation.append(Message(role="assistant", content=None, tool_calls=calls))

        for call in calls:
            label = self.executor.label_for(call.name)
            yield emitter.tool_start(call.name, label, call.raw_arguments)
            result = await self.executor.execute(call)
            yield emitter.tool_result(call.name, label, result.content)
            conversation.append(
                Message(role="tool", content=result.content, tool_call_id=call.id)
            )


async def _stall_guard(
    stream: AsyncIterator[bytes], timeout: float | None
) -> AsyncIterator[bytes]:
    """Re-yield *stream*, raising ``asyncio.TimeoutError`` if a read stalls."""
    it = stream.__aiter__()
    while True:
        try:
            chunk = await asyncio.wait_for(it.__anext__(), timeout)
        except StopAsyncIteration:
            return
        yield chunk
