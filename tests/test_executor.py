"""Tests for ToolExecutor."""

import pytest

from companion.llm.types import ToolCall
from companion.tools.executor import ToolExecutor
from companion.tools.registry import ToolRegistry
from companion.types import ErrorCode
from tests.mock_tools import BrokenTool, EchoTool, SlowTool


@pytest.fixture
def executor():
    reg = ToolRegistry()
    for tool in (EchoTool(), SlowTool(), BrokenTool()):
        reg.register(tool)
    return ToolExecutor(reg, timeout=0.05)


async def test_success(executor):
    result = await executor.execute(ToolCall(id="c1", name="echo", arguments={"message": "hi"}))
    assert result.success is True
    assert result.content == "hi"
    assert result.duration_ms >= 0


async def test_unknown_tool(executor):
    result = await executor.execute(ToolCall(id="c1", name="teleport", arguments={}))
    assert result.success is False
    assert result.content == "Unknown tool: teleport"
    assert result.error_code == ErrorCode.UNKNOWN_TOOL


async def test_validation_error(executor):
    result = await executor.execute(ToolCall(id="c1", name="echo", arguments={}))
    assert result.success is False
    assert result.content.startswith("Validation error:")
    assert result.error_code == ErrorCode.VALIDATION_ERROR


async def test_timeout(executor):
    result = await executor.execute(ToolCall(id="c1", name="slow", arguments={}))
    assert result.success is False
    assert result.content == "Tool timed out after 0.05s"
    assert result.error_code == ErrorCode.TIMEOUT


async def test_exception_becomes_result(executor):
    result = await executor.execute(ToolCall(id="c1", name="broken", arguments={}))
    assert result.success is False
    assert result.content == "Tool exception: disk on fire"
    assert result.error_code == ErrorCode.TOOL_EXCEPTION


def test_label_for(executor):
    assert executor.label_for("echo") == "Echo"
    assert executor.label_for("nope") == "nope"
