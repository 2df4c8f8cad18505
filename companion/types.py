from dataclasses import dataclass, field


@dataclass
class ToolResult:
    success: bool
    content: str
    error: str | None = None
    error_code: str | None = None
    duration_ms: int = 0
    metadata: dict = field(default_factory=dict)


class ErrorCode:
    VALIDATION_ERROR = "validation_error"
    TIMEOUT = "timeout"
    TOOL_EXCEPTION = "tool_exception"
    UNKNOWN_TOOL = "unknown_tool"
    UPSTREAM_ERROR = "upstream_error"
    INTERNAL_ERROR = "internal_error"
