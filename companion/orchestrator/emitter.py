"""
Client-facing event model.

The assistant's output for one turn is an ordered list of ``Block`` objects.
``EventEmitter`` mutates that list and returns, for every mutation, the
outward event the client applies to its own copy::

    thinking     {"type": "thinking", "content": <delta>}
    tool_start   {"type": "tool_start", "name", "label", "args"}
    tool_result  {"type": "tool_result", "name", "label", "result"}
    text         {"type": "text", "content": <delta>}
    error        {"type": "error", "code", "message"}

Consecutive thinking / text deltas extend the previous block of the same
type.  A tool_result takes the place of the most recent tool_start for the
same tool name.  ``error`` events are not blocks.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

BLOCK_THINKING = "thinking"
BLOCK_TOOL_START = "tool_start"
BLOCK_TOOL_RESULT = "tool_result"
BLOCK_TEXT = "text"
EVENT_ERROR = "error"

DONE_FRAME = "data: [DONE]\n\n"


@dataclass
class Block:
    type: str
    content: str = ""
    name: str = ""
    label: str = ""
    args: str = ""
    result: str = ""

    def to_dict(self) -> dict[str, Any]:
        if self.type in (BLOCK_THINKING, BLOCK_TEXT):
            return {"type": self.type, "content": self.content}
        if self.type == BLOCK_TOOL_START:
            return {
                "type": self.type,
                "name": self.name,
                "label": self.label,
                "args": self.args,
            }
        return {
            "type": self.type,
            "name": self.name,
            "label": self.label,
            "result": self.result,
        }


class EventEmitter:
    """Owns the block sequence of one assistant turn."""

    def __init__(self) -> None:
        self.blocks: list[Block] = []

    def thinking(self, delta: str) -> dict[str, Any]:
        self._extend(BLOCK_THINKING, delta)
        return {"type": BLOCK_THINKING, "content": delta}

    def text(self, delta: str) -> dict[str, Any]:
        self._extend(BLOCK_TEXT, delta)
        return {"type": BLOCK_TEXT, "content": delta}

    def tool_start(self, name: str, label: str, args: str) -> dict[str, Any]:
        block = Block(type=BLOCK_TOOL_START, name=name, label=label, args=args)
        self.blocks.append(block)
        return block.to_dict()

    def tool_result(self, name: str, label: str, result: str) -> dict[str, Any]:
        block = Block(type=BLOCK_TOOL_RESULT, name=name, label=label, result=result)
        for i in range(len(self.blocks) - 1, -1, -1):
            prior = self.blocks[i]
            if prior.type == BLOCK_TOOL_START and prior.name == name:
                self.blocks[i] = block
                break
        else:
            self.blocks.append(block)
        return block.to_dict()

    def error(self, code: str, message: str) -> dict[str, Any]:
        return {"type": EVENT_ERROR, "code": code, "message": message}

    def apply(self, event: dict[str, Any]) -> None:
        """Replay an outward event onto this sequence (client-side mirror)."""
        etype = event.get("type")
        if etype == BLOCK_THINKING:
            self.thinking(event.get("content", ""))
        elif etype == BLOCK_TEXT:
            self.text(event.get("content", ""))
        elif etype == BLOCK_TOOL_START:
            self.tool_start(event.get("name", ""), event.get("label", ""), event.get("args", ""))
        elif etype == BLOCK_TOOL_RESULT:
            self.tool_result(event.get("name", ""), event.get("label", ""), event.get("result", ""))

    def text_content(self) -> str:
        return "".join(b.content for b in self.blocks if b.type == BLOCK_TEXT)

    def _extend(self, block_type: str, delta: str) -> None:
        if self.blocks and self.blocks[-1].type == block_type:
            self.blocks[-1].content += delta
        else:
            self.blocks.append(Block(type=block_type, content=delta))


def encode_event(event: dict[str, Any]) -> str:
    """Render one outward event as an SSE frame."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
