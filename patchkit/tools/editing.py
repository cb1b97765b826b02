import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from patchkit.config import EngineSettings
from patchkit.engine.errors import PatchError, SearchNotFoundError
from patchkit.engine.search_replace import (
    parse_search_replace_blocks,
    search_replace_file,
)
from patchkit.engine.v4a import apply_v4a_patch, parse_v4a_patch
from patchkit.sandbox.filesystem import PathEscapeError, SymLinkError, resolve_safe_path
from patchkit.tools.contract import (
    ApplyV4APatchParams,
    ApplyV4APatchRequest,
    SearchReplaceParams,
    SearchReplaceRequest,
    ToolError,
    ToolName,
    ToolRequest,
    ToolResult,
    ToolStatus,
)
from patchkit.util.events import EventLogger, EventType

logger = logging.getLogger(__name__)


class MissingPathError(Exception):
    pass


def _tool_error(error: Exception, prefix: str) -> ToolError:
    if isinstance(error, PatchError):
        return ToolError(
            error_type=str(error.error_type),
            message=f"{prefix}: {error.message}",
            details=dict(error.details),
        )
    if isinstance(error, PathEscapeError):
        error_type = "path_escape"
    elif isinstance(error, SymLinkError):
        error_type = "symlink"
    elif isinstance(error, MissingPathError):
        error_type = "missing_path"
    else:
        error_type = type(error).__name__
    return ToolError(error_type=error_type, message=str(error), details={})


def _finish(
    request_id: str,
    tool: ToolName,
    started_at: datetime,
    message: str,
    data: dict[str, Any] | None,
    error: ToolError | None,
    event_logger: EventLogger | None,
    persisted: bool,
) -> ToolResult:
    ended_at = datetime.now()
    result = ToolResult(
        request_id=request_id,
        tool=tool,
        status=ToolStatus.SUCCESS if error is None else ToolStatus.ERROR,
        started_at=started_at,
        ended_at=ended_at,
        duration_sec=(ended_at - started_at).total_seconds(),
        message=message,
        data=data,
        error=error,
    )

    if error is not None:
        logger.warning("%s %s failed: %s", tool, request_id, error.message)

    if event_logger is not None:
        if error is not None:
            event_type = EventType.PATCH_FAILED
        elif persisted:
            event_type = EventType.PATCH_APPLIED
        else:
            event_type = EventType.TOOL_CALL_FINISHED
        event_logger.log(
            event_type,
            {
                "request_id": request_id,
                "tool": str(tool),
                "data": data,
                "error": error.model_dump() if error else None,
            },
        )

    return result


def apply_v4a_patch_tool(
    workspace_root: Path,
    params: ApplyV4APatchParams,
    request_id: str,
    settings: EngineSettings | None = None,
    event_logger: EventLogger | None = None,
) -> ToolResult:
    """
    Apply a V4A patch to one file inside the workspace.

    The caller's `path` wins over the patch's `*** Update File:` header;
    the header is only used when `path` is empty.
    """

    settings = settings or EngineSettings()
    started_at = datetime.now()
    message = ""
    data = None
    error = None
    prefix = "Failed to parse V4A patch"

    if event_logger is not None:
        event_logger.log(
            EventType.TOOL_CALL_STARTED,
            {"request_id": request_id, "tool": str(ToolName.APPLY_V4A_PATCH), "path": params.path},
        )

    try:
        patch = parse_v4a_patch(params.patch)

        prefix = "Failed to apply V4A patch"
        raw_path = params.path or patch.file_path
        if not raw_path:
            raise MissingPathError("No file path given and patch has no '*** Update File:' header")

        path = resolve_safe_path(
            workspace_root=workspace_root,
            relative_path=raw_path,
            allow_symlinks=settings.allow_symlinks,
        )

        message, outcome = apply_v4a_patch(
            path,
            patch,
            dry_run=params.dry_run,
            search_mode=settings.v4a_search_mode,
            display_path=raw_path,
            preview_max_chars=settings.preview_max_chars,
        )
        data = {
            "path": raw_path,
            "dry_run": params.dry_run,
            "hunks_applied": len(outcome.applied),
            "original_lines": outcome.original_lines,
            "modified_lines": outcome.modified_lines,
        }

    except (PatchError, PathEscapeError, SymLinkError, MissingPathError) as e:
        error = _tool_error(e, prefix)

    return _finish(
        request_id,
        ToolName.APPLY_V4A_PATCH,
        started_at,
        message,
        data,
        error,
        event_logger,
        persisted=error is None and not params.dry_run,
    )


def search_replace_tool(
    workspace_root: Path,
    params: SearchReplaceParams,
    request_id: str,
    settings: EngineSettings | None = None,
    event_logger: EventLogger | None = None,
) -> ToolResult:
    """Apply SEARCH/REPLACE blocks to one file inside the workspace."""

    settings = settings or EngineSettings()
    started_at = datetime.now()
    message = ""
    data = None
    error = None
    prefix = "Failed to parse SEARCH/REPLACE blocks"
    total_blocks = 0

    if event_logger is not None:
        event_logger.log(
            EventType.TOOL_CALL_STARTED,
            {"request_id": request_id, "tool": str(ToolName.SEARCH_REPLACE), "path": params.path},
        )

    try:
        blocks = parse_search_replace_blocks(params.diff)
        total_blocks = len(blocks)

        prefix = "Failed to apply blocks"
        path = resolve_safe_path(
            workspace_root=workspace_root,
            relative_path=params.path,
            allow_symlinks=settings.allow_symlinks,
        )

        message, outcome, preview_content = search_replace_file(
            path,
            blocks,
            preview=params.preview,
            display_path=params.path,
            preview_max_chars=settings.preview_max_chars,
        )
        data = {
            "path": params.path,
            "preview": params.preview,
            "total_blocks": outcome.total_blocks,
            "blocks_applied": outcome.changes,
            "changes": outcome.changes,
            "match_strategies": [edit.label for edit in outcome.applied],
        }
        if preview_content is not None:
            data["preview_content"] = preview_content

    except (PatchError, PathEscapeError, SymLinkError) as e:
        error = _tool_error(e, prefix)
        blocks_applied = 0
        if isinstance(e, SearchNotFoundError):
            blocks_applied = e.details["block_index"] - 1
        data = {
            "path": params.path,
            "total_blocks": total_blocks,
            "blocks_applied": blocks_applied,
        }

    return _finish(
        request_id,
        ToolName.SEARCH_REPLACE,
        started_at,
        message,
        data,
        error,
        event_logger,
        persisted=error is None and not params.preview,
    )


def run_tool(
    workspace_root: Path,
    request: ToolRequest,
    settings: EngineSettings | None = None,
    event_logger: EventLogger | None = None,
) -> ToolResult:
    """Dispatch a validated tool request to its driver."""

    if isinstance(request, ApplyV4APatchRequest):
        return apply_v4a_patch_tool(
            workspace_root, request.params, request.request_id, settings, event_logger
        )
    if isinstance(request, SearchReplaceRequest):
        return search_replace_tool(
            workspace_root, request.params, request.request_id, settings, event_logger
        )
    raise TypeError(f"Unsupported tool request: {type(request).__name__}")
