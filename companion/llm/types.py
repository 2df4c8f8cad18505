"""Core types for the LLM subsystem."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field


@dataclass
class Message:
    """A single message in a conversation."""

    role: str  # "system", "user", "assistant", "tool"
    content: str | None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None

    def to_wire(self) -> dict:
        """Render in the OpenAI chat-completions message format."""
        m: dict = {"role": self.role, "content": self.content}
        if self.tool_calls:
            m["tool_calls"] = [tc.to_wire() for tc in self.tool_calls]
        if self.tool_call_id:
            m["tool_call_id"] = self.tool_call_id
        return m


@dataclass(frozen=True)
class ToolCall:
    """A resolved tool call with parsed arguments."""

    id: str
    name: str
    arguments: dict
    raw_arguments: str = ""

    def to_wire(self) -> dict:
        # Replay exactly what the model produced, unless it failed to parse.
        if self.raw_arguments and self.arguments:
            args = self.raw_arguments
        else:
            args = json.dumps(self.arguments, ensure_ascii=False)
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": args},
        }


@dataclass
class RawToolDelta:
    """
    An incremental fragment of a streaming tool call.

    ``call_index`` is the slot the upstream assigned to the call.  It is
    stable for every fragment of one call but not necessarily contiguous.
    """

    call_index: int
    id: str | None = None
    name_delta: str = ""
    args_delta: str = ""


class DeltaKind(enum.Enum):
    REASONING = "reasoning"
    TOOL_CALLS = "tool_calls"
    TEXT = "text"
    END = "end"


@dataclass
class StreamDelta:
    """
    One classified upstream payload.

    Exactly one of *content* (REASONING / TEXT) or *tool_deltas*
    (TOOL_CALLS) is meaningful; END carries neither.
    """

    kind: DeltaKind
    content: str = ""
    tool_deltas: list[RawToolDelta] = field(default_factory=list)
    finish_reason: str | None = None

    @classmethod
    def end(cls) -> StreamDelta:
        return cls(kind=DeltaKind.END)
