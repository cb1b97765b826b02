from patchkit.tools.contract import (
    ApplyV4APatchParams,
    ApplyV4APatchRequest,
    EditOutput,
    SearchReplaceParams,
    SearchReplaceRequest,
    ToolError,
    ToolName,
    ToolRequest,
    ToolRequestError,
    ToolResult,
    ToolStatus,
    parse_tool_request,
)

__all__ = [
    "ToolName",
    "ToolRequest",
    "ToolRequestError",
    "ToolResult",
    "ToolStatus",
    "ToolError",
    "EditOutput",
    "ApplyV4APatchParams",
    "ApplyV4APatchRequest",
    "SearchReplaceParams",
    "SearchReplaceRequest",
    "parse_tool_request",
]
