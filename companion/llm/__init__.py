"""LLM subsystem -- providers, SSE framing, classification and tool-call assembly."""

from companion.llm.classifier import classify, classify_all, iter_deltas
from companion.llm.sse import FrameDecoder, iter_payloads
from companion.llm.tool_call_assembler import ToolCallAssembler
from companion.llm.types import (
    DeltaKind,
    Message,
    RawToolDelta,
    StreamDelta,
    ToolCall,
)

__all__ = [
    "DeltaKind",
    "FrameDecoder",
    "Message",
    "RawToolDelta",
    "StreamDelta",
    "ToolCall",
    "ToolCallAssembler",
    "classify",
    "classify_all",
    "iter_deltas",
    "iter_payloads",
]
