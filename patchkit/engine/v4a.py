"""
V4A semantic patches.

A V4A patch anchors each change with context markers (class or function
names) instead of line numbers:

```
*** Update File: src/handler.go
@@ func ProcessRequest
-    return nil
+    return processData(req)
```

Markers are matched as substrings of trimmed file lines, in order, each one
searched after the line the previous marker matched. Removal lines must then
equal the file lines right after the deepest marker, character for character.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from patchkit.engine.errors import (
    ContextNotFoundError,
    EmptyPatchError,
    MalformedHunkError,
    RemovalMismatchError,
)
from patchkit.engine.models import (
    EditKind,
    LineEdit,
    V4AHunk,
    V4APatch,
    V4ASearchMode,
)
from patchkit.engine.sequential import (
    AppliedEdit,
    LocatedEditStrategy,
    Mutation,
    apply_sequential,
    truncate_preview,
)
from patchkit.sandbox.filesystem import atomic_write, read_text

logger = logging.getLogger(__name__)

UPDATE_FILE_HEADER = "*** Update File:"
DRY_RUN_BANNER = "=== DRY RUN ==="


def _leading_indentation(text: str) -> int:
    count = 0
    for ch in text:
        if ch == " ":
            count += 1
        elif ch == "\t":
            count += 4
        else:
            break
    return count


def parse_v4a_patch(patch_text: str) -> V4APatch:
    """
    Parse V4A patch text into hunks.

    A new `@@` line after at least one edit, or any blank line, closes the
    current hunk. Envelope lines such as `*** Begin Patch` and any other
    unrecognized lines are ignored.

    Raises:
        EmptyPatchError: no hunks in the text
        MalformedHunkError: markers without edits, edits without markers,
            empty marker or empty header path
    """

    if patch_text.strip() == "":
        raise EmptyPatchError("empty patch text")

    patch = V4APatch(hunks=[])
    current: V4AHunk | None = None

    def close_hunk() -> None:
        nonlocal current
        if current is None:
            return
        if not current.edits:
            raise MalformedHunkError(
                f"hunk with context {current.markers} has no changes",
                markers=current.markers,
            )
        patch.hunks.append(current)
        current = None

    for line_number, line in enumerate(patch_text.split("\n"), start=1):
        if line.startswith(UPDATE_FILE_HEADER):
            file_path = line[len(UPDATE_FILE_HEADER):].strip()
            if not file_path:
                raise MalformedHunkError(
                    f"line {line_number}: empty file path after '{UPDATE_FILE_HEADER}'",
                    line_number=line_number,
                )
            patch.file_path = file_path
            continue

        if line.startswith("***"):
            continue

        if line.startswith("@@"):
            if current is not None and current.edits:
                close_hunk()
            if current is None:
                current = V4AHunk()

            marker_content = line[2:]
            marker = marker_content.strip()
            if not marker:
                raise MalformedHunkError(
                    f"line {line_number}: empty context marker after '@@'",
                    line_number=line_number,
                )
            current.markers.append(marker)
            current.base_indentation = max(
                current.base_indentation, _leading_indentation(marker_content)
            )
            continue

        if line.startswith("-") or line.startswith("+"):
            kind = EditKind.REMOVE if line[0] == "-" else EditKind.ADD
            if current is None:
                raise MalformedHunkError(
                    f"line {line_number}: {kind} line before context marker",
                    line_number=line_number,
                )
            current.edits.append(LineEdit(kind=kind, text=line[1:]))
            continue

        if line.strip() == "":
            # markers followed by a blank line and no edits is a malformed hunk
            close_hunk()
            continue

        logger.debug("Ignoring V4A line %d: %r", line_number, line)

    close_hunk()

    if not patch.hunks:
        raise EmptyPatchError()

    logger.debug("Parsed %d V4A hunks", len(patch.hunks))
    return patch


def find_context_location(
    lines: list[str],
    markers: list[str],
    start: int = 0,
    hunk_index: int | None = None
) -> int:
    """
    Return the line index matched by the last (deepest) marker.

    Example: markers ["class User", "def validate"] find "class User" first,
    then search for "def validate" from the following line.
    """

    if not markers:
        raise MalformedHunkError("no context markers provided")

    search_from = start
    matched = -1

    for marker in markers:
        matched = -1
        for idx in range(search_from, len(lines)):
            if marker in lines[idx].strip():
                matched = idx
                break
        if matched == -1:
            raise ContextNotFoundError(marker, search_from, len(lines), hunk_index)
        search_from = matched + 1

    return matched


class V4AStrategy(LocatedEditStrategy[list[str], V4AHunk]):
    """Locates hunks by context markers and splices removal runs."""

    def __init__(self, search_mode: V4ASearchMode = V4ASearchMode.RESTART):
        self.search_mode = V4ASearchMode(search_mode)

    @property
    def unit_name(self) -> str:
        return "hunk"

    def locate(self, state: list[str], unit: V4AHunk, cursor: int, index: int) -> int:
        start = cursor if self.search_mode == V4ASearchMode.CONTINUE else 0
        return find_context_location(state, unit.markers, start=start, hunk_index=index)

    def mutate(
        self,
        state: list[str],
        unit: V4AHunk,
        location: int,
        index: int
    ) -> Mutation[list[str], V4AHunk]:
        removals = unit.removals
        additions = unit.additions
        start = location + 1

        for offset, expected in enumerate(removals):
            line_index = start + offset
            actual = state[line_index] if line_index < len(state) else None
            if actual != expected:
                raise RemovalMismatchError(index, line_index, expected, actual)

        new_lines = state[:start] + additions + state[start + len(removals):]

        applied = AppliedEdit(
            index=index,
            unit=unit,
            location=location,
            before="\n".join(removals),
            after="\n".join(additions),
            label=state[location].strip(),
        )
        return Mutation(state=new_lines, cursor=start + len(additions), applied=applied)


@dataclass
class V4AApplyOutcome:
    content: str
    original_lines: int
    modified_lines: int
    applied: list[AppliedEdit[V4AHunk]] = field(default_factory=list)


def apply_v4a_to_text(
    content: str,
    patch: V4APatch,
    search_mode: V4ASearchMode = V4ASearchMode.RESTART
) -> V4AApplyOutcome:
    """Apply every hunk to `content` in memory. Any failure aborts the whole patch."""

    lines = content.split("\n")
    result = apply_sequential(lines, patch.hunks, V4AStrategy(search_mode))

    return V4AApplyOutcome(
        content="\n".join(result.state),
        original_lines=len(lines),
        modified_lines=len(result.state),
        applied=result.applied,
    )


def render_v4a_preview(
    display_path: str,
    outcome: V4AApplyOutcome,
    max_chars: int = 0
) -> str:
    parts = [
        DRY_RUN_BANNER,
        f"File: {display_path}",
        f"Original lines: {outcome.original_lines}",
        f"Modified lines: {outcome.modified_lines}",
        f"Hunks applied: {len(outcome.applied)}",
        "",
    ]
    for edit in outcome.applied:
        parts.append(f"Hunk {edit.index} (context at line {edit.location + 1}: {edit.label}):")
        parts.extend(f"-{line}" for line in edit.unit.removals)
        parts.extend(f"+{line}" for line in edit.unit.additions)
        parts.append("")
    parts.append("=== NEW CONTENT ===")
    parts.append(truncate_preview(outcome.content, max_chars))
    return "\n".join(parts) + "\n"


def apply_v4a_patch(
    file_path: Path,
    patch: V4APatch,
    dry_run: bool = False,
    search_mode: V4ASearchMode = V4ASearchMode.RESTART,
    display_path: str | None = None,
    preview_max_chars: int = 0
) -> tuple[str, V4AApplyOutcome]:
    """
    Read `file_path`, apply `patch`, and write the result atomically.

    In dry-run mode nothing is written and the returned message is a
    preview starting with the dry-run banner.

    Returns:
        (message, outcome)

    Raises:
        PatchError: context, removal or I/O failure
    """

    display_path = display_path or str(file_path)
    original = read_text(file_path)
    outcome = apply_v4a_to_text(original, patch, search_mode)

    if dry_run:
        logger.debug("Dry run of %d hunks on %s", len(outcome.applied), file_path)
        return render_v4a_preview(display_path, outcome, preview_max_chars), outcome

    atomic_write(file_path, outcome.content)
    logger.info("Applied %d V4A hunks to %s", len(outcome.applied), file_path)
    return f"Successfully applied {len(outcome.applied)} hunk(s) to {display_path}", outcome
