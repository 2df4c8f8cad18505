"""
Tool executor -- runs one assembled tool call and always produces a result.

Nothing that goes wrong inside a tool aborts the round: unknown names,
invalid arguments, timeouts and exceptions all become a failed
``ToolResult`` whose ``content`` is fed back to the model.
"""

from __future__ import annotations

import asyncio
import logging
import time

from companion.llm.types import ToolCall
from companion.tools.registry import ToolRegistry
from companion.tools.validation import ToolValidator
from companion.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


class ToolExecutor:
    """
    Dispatches tool calls against a registry.

    Parameters
    ----------
    registry : ToolRegistry
        Registered tools; read-only for the executor.
    timeout : float
        Max seconds for a single tool execution.
    """

    def __init__(self, registry: ToolRegistry, timeout: float = 120.0) -> None:
        self.registry = registry
        self.timeout = timeout

    def label_for(self, name: str) -> str:
        return self.registry.label_for(name)

    async def execute(self, tool_call: ToolCall) -> ToolResult:
        tool = self.registry.get(tool_call.name)
        if tool is None:
            logger.warning("Model requested unknown tool %r", tool_call.name)
            return ToolResult(
                success=False,
                content=f"Unknown tool: {tool_call.name}",
                error=f"Unknown tool: {tool_call.name}",
                error_code=ErrorCode.UNKNOWN_TOOL,
            )

        valid, error_msg = ToolValidator.validate(tool, tool_call.arguments)
        if not valid:
            logger.info("Rejected arguments for %s: %s", tool_call.name, error_msg)
            return ToolResult(
                success=False,
                content=f"Validation error: {error_msg}",
                error=error_msg,
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        start = time.monotonic()
        try:
            result = await asyncio.wait_for(
                tool.execute(**tool_call.arguments),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Tool %s timed out after %ss", tool_call.name, self.timeout)
            result = ToolResult(
                success=False,
                content=f"Tool timed out after {self.timeout}s",
                error=f"Timeout after {self.timeout}s",
                error_code=ErrorCode.TIMEOUT,
            )
        except Exception as e:
            logger.exception("Tool %s raised", tool_call.name)
            result = ToolResult(
                success=False,
                content=f"Tool exception: {e}",
                error=str(e),
                error_code=ErrorCode.TOOL_EXCEPTION,
            )

        result.duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Tool %s (%s) finished success=%s in %dms",
            tool_call.name,
            tool_call.id,
            result.success,
            result.duration_ms,
        )
        return result
