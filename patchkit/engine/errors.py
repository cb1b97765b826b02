from enum import StrEnum


class PatchErrorType(StrEnum):
    EMPTY_PATCH = "empty_patch"
    NO_BLOCKS_FOUND = "no_blocks_found"
    MALFORMED_HUNK = "malformed_hunk"
    MALFORMED_BLOCK = "malformed_block"
    INCOMPLETE_BLOCK = "incomplete_block"
    CONTEXT_NOT_FOUND = "context_not_found"
    REMOVAL_MISMATCH = "removal_mismatch"
    SEARCH_NOT_FOUND = "search_not_found"
    IO_ERROR = "io_error"


class PatchError(Exception):
    def __init__(
        self,
        error_type: PatchErrorType,
        message: str,
        systemic: bool = False,
        details: dict | None = None
    ):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.systemic = systemic
        self.details = details or {}


class EmptyPatchError(PatchError):
    """Patch text contained no recognizable V4A hunks."""
    def __init__(
        self,
        message: str = "no valid hunks found in patch",
    ):
        super().__init__(
            PatchErrorType.EMPTY_PATCH,
            message,
        )


class NoBlocksFoundError(PatchError):
    """Diff text contained no SEARCH/REPLACE blocks."""
    def __init__(
        self,
        message: str = "no valid SEARCH/REPLACE blocks found",
    ):
        super().__init__(
            PatchErrorType.NO_BLOCKS_FOUND,
            message,
        )


class MalformedHunkError(PatchError):
    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        markers: list[str] | None = None
    ):
        super().__init__(
            PatchErrorType.MALFORMED_HUNK,
            message,
            details = {
                "line_number": line_number,
                "markers": list(markers or []),
            }
        )


class MalformedBlockError(PatchError):
    def __init__(
        self,
        message: str,
        line_number: int | None = None
    ):
        super().__init__(
            PatchErrorType.MALFORMED_BLOCK,
            message,
            details = {
                "line_number": line_number
            }
        )


class IncompleteBlockError(PatchError):
    def __init__(
        self,
        state: str,
    ):
        super().__init__(
            PatchErrorType.INCOMPLETE_BLOCK,
            f"incomplete SEARCH/REPLACE block (state: {state})",
            details = {
                "state": state
            }
        )


class ContextNotFoundError(PatchError):
    """A context marker had no matching line in the searched range."""
    def __init__(
        self,
        marker: str,
        search_from: int,
        total_lines: int,
        hunk_index: int | None = None
    ):
        prefix = f"hunk {hunk_index}: " if hunk_index is not None else ""
        super().__init__(
            PatchErrorType.CONTEXT_NOT_FOUND,
            f"{prefix}context marker not found: {marker!r} "
            f"(searched lines {search_from + 1}-{total_lines})",
            details = {
                "hunk_index": hunk_index,
                "marker": marker,
                "search_from": search_from,
            }
        )


class RemovalMismatchError(PatchError):
    """A removal line differs from the file line at the expected position."""
    def __init__(
        self,
        hunk_index: int,
        line_index: int,
        expected: str,
        actual: str | None
    ):
        found = "end of file" if actual is None else repr(actual)
        super().__init__(
            PatchErrorType.REMOVAL_MISMATCH,
            f"hunk {hunk_index}: removal line does not match file at line "
            f"{line_index + 1}: expected {expected!r}, found {found}",
            details = {
                "hunk_index": hunk_index,
                "line": line_index + 1,
                "expected": expected,
                "actual": actual,
            }
        )


class SearchNotFoundError(PatchError):
    def __init__(
        self,
        block_index: int,
        offset: int,
        search: str
    ):
        super().__init__(
            PatchErrorType.SEARCH_NOT_FOUND,
            f"block {block_index}: SEARCH content not found after offset {offset}\n"
            f"SEARCH content:\n{search}",
            details = {
                "block_index": block_index,
                "offset": offset,
                "search": search,
            }
        )


class PatchIOError(PatchError):
    """File read or atomic write failed. The only environmental failure."""
    def __init__(
        self,
        message: str,
        path: str | None = None
    ):
        super().__init__(
            PatchErrorType.IO_ERROR,
            message,
            systemic = True,
            details = {
                "path": path
            }
        )
