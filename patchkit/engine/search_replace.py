"""
SEARCH/REPLACE block edits.

```
------- SEARCH
<exact lines to find>
=======
<lines to replace with>
+++++++ REPLACE
```

Legacy `<<<<<<< SEARCH` / `>>>>>>> REPLACE` markers are accepted too. Blocks
apply in document order: each block only searches text after the end of the
previous block's replacement.
"""

import dataclasses
import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from patchkit.engine.errors import (
    IncompleteBlockError,
    MalformedBlockError,
    NoBlocksFoundError,
    SearchNotFoundError,
)
from patchkit.engine.models import MatchResult, MatchStrategy, SearchReplaceBlock
from patchkit.engine.sequential import (
    AppliedEdit,
    LocatedEditStrategy,
    Mutation,
    apply_sequential,
    truncate_preview,
)
from patchkit.sandbox.filesystem import atomic_write, read_text

logger = logging.getLogger(__name__)

SEARCH_START_RE = re.compile(r"^[-]{3,} SEARCH>?\s*$")
SEARCH_END_RE = re.compile(r"^[=]{3,}\s*$")
REPLACE_END_RE = re.compile(r"^[+]{3,} REPLACE>?\s*$")
LEGACY_SEARCH_START_RE = re.compile(r"^[<]{3,} SEARCH>?\s*$")
LEGACY_REPLACE_END_RE = re.compile(r"^[>]{3,} REPLACE>?\s*$")


class BlockState(StrEnum):
    IDLE = "idle"
    IN_SEARCH = "in_search"
    IN_REPLACE = "in_replace"


def _is_search_start(line: str) -> bool:
    return bool(SEARCH_START_RE.match(line) or LEGACY_SEARCH_START_RE.match(line))


def _is_search_end(line: str) -> bool:
    return bool(SEARCH_END_RE.match(line))


def _is_replace_end(line: str) -> bool:
    return bool(REPLACE_END_RE.match(line) or LEGACY_REPLACE_END_RE.match(line))


def parse_search_replace_blocks(diff: str) -> list[SearchReplaceBlock]:
    """
    Parse SEARCH/REPLACE blocks out of `diff`.

    Marker lines are recognized after trimming; content lines are kept
    verbatim. Text outside blocks is ignored.

    Raises:
        MalformedBlockError: a block with empty SEARCH content
        IncompleteBlockError: input ended inside a block
        NoBlocksFoundError: no blocks at all
    """

    blocks: list[SearchReplaceBlock] = []
    search_lines: list[str] = []
    replace_lines: list[str] = []
    state = BlockState.IDLE

    for line_number, line in enumerate(diff.split("\n"), start=1):
        marker = line.strip()

        if state == BlockState.IDLE:
            if _is_search_start(marker):
                search_lines = []
                replace_lines = []
                state = BlockState.IN_SEARCH

        elif state == BlockState.IN_SEARCH:
            if _is_search_end(marker):
                state = BlockState.IN_REPLACE
            else:
                search_lines.append(line)

        elif state == BlockState.IN_REPLACE:
            if _is_replace_end(marker):
                search = "\n".join(search_lines)
                if search == "":
                    raise MalformedBlockError(
                        f"empty SEARCH block at line {line_number}",
                        line_number=line_number,
                    )
                blocks.append(
                    SearchReplaceBlock(search=search, replace="\n".join(replace_lines))
                )
                state = BlockState.IDLE
            else:
                replace_lines.append(line)

    if state != BlockState.IDLE:
        raise IncompleteBlockError(state)

    if not blocks:
        raise NoBlocksFoundError()

    logger.debug("Parsed %d SEARCH/REPLACE blocks", len(blocks))
    return blocks


def _line_trimmed_match(text: str, search: str) -> tuple[int, int] | None:
    """
    Find `search` in `text` comparing whitespace-trimmed lines.

    Returns (offset, length) of the matched span in `text`, or None.
    """

    content_lines = text.split("\n")
    search_lines = search.split("\n")

    trailing_newline = False
    if len(search_lines) > 1 and search_lines[-1] == "":
        search_lines = search_lines[:-1]
        trailing_newline = True

    targets = [s.strip() for s in search_lines]
    count = len(targets)

    line_offsets: list[int] = []
    offset = 0
    for line in content_lines:
        line_offsets.append(offset)
        offset += len(line) + 1

    for i in range(len(content_lines) - count + 1):
        if all(content_lines[i + j].strip() == targets[j] for j in range(count)):
            end = line_offsets[i + count - 1] + len(content_lines[i + count - 1])
            if trailing_newline and i + count < len(content_lines):
                end += 1
            return line_offsets[i], end - line_offsets[i]

    return None


def find_match(content: str, search: str, start_offset: int = 0) -> MatchResult | None:
    """
    Locate `search` at or after `start_offset`.

    Exact substring search first, then the line-trimmed fallback. The
    returned length is the real span in `content`, which differs from
    `len(search)` when the fallback matched different whitespace.
    """

    remaining = content[start_offset:]

    idx = remaining.find(search)
    if idx != -1:
        return MatchResult(
            offset=start_offset + idx,
            length=len(search),
            strategy=MatchStrategy.EXACT,
        )

    trimmed = _line_trimmed_match(remaining, search)
    if trimmed is not None:
        rel_offset, length = trimmed
        return MatchResult(
            offset=start_offset + rel_offset,
            length=length,
            strategy=MatchStrategy.LINE_TRIMMED,
        )

    return None


class SearchReplaceStrategy(LocatedEditStrategy[str, SearchReplaceBlock]):
    @property
    def unit_name(self) -> str:
        return "block"

    def locate(
        self,
        state: str,
        unit: SearchReplaceBlock,
        cursor: int,
        index: int
    ) -> MatchResult:
        match = find_match(state, unit.search, cursor)
        if match is None:
            raise SearchNotFoundError(index, cursor, unit.search)
        return match

    def mutate(
        self,
        state: str,
        unit: SearchReplaceBlock,
        location: MatchResult,
        index: int
    ) -> Mutation[str, SearchReplaceBlock]:
        end = location.offset + location.length
        new_content = state[:location.offset] + unit.replace + state[end:]

        applied = AppliedEdit(
            index=index,
            unit=dataclasses.replace(unit, match_index=location.offset),
            location=location.offset,
            before=state[location.offset:end],
            after=unit.replace,
            label=str(location.strategy),
        )
        return Mutation(
            state=new_content,
            cursor=location.offset + len(unit.replace),
            applied=applied,
        )


@dataclass
class SearchReplaceOutcome:
    content: str
    total_blocks: int
    applied: list[AppliedEdit[SearchReplaceBlock]] = field(default_factory=list)

    @property
    def changes(self) -> int:
        return len(self.applied)


def apply_search_replace_blocks(
    content: str,
    blocks: list[SearchReplaceBlock]
) -> SearchReplaceOutcome:
    """
    Apply `blocks` to `content` in order.

    Raises:
        SearchNotFoundError: with the 1-based block index and cursor offset
    """

    result = apply_sequential(content, blocks, SearchReplaceStrategy())
    return SearchReplaceOutcome(
        content=result.state,
        total_blocks=len(blocks),
        applied=result.applied,
    )


def render_search_replace_preview(
    display_path: str,
    outcome: SearchReplaceOutcome,
    max_chars: int = 0
) -> str:
    lines = [
        f"Would apply {outcome.total_blocks} SEARCH/REPLACE blocks to {display_path}:",
        "",
    ]
    for edit in outcome.applied:
        lines.extend([
            f"Block {edit.index} (match at offset {edit.location}, {edit.label}):",
            "------- SEARCH",
            truncate_preview(edit.before, max_chars),
            "=======",
            truncate_preview(edit.after, max_chars),
            "+++++++ REPLACE",
            "",
        ])
    return "\n".join(lines)


def search_replace_file(
    file_path: Path,
    blocks: list[SearchReplaceBlock],
    preview: bool = False,
    display_path: str | None = None,
    preview_max_chars: int = 0
) -> tuple[str, SearchReplaceOutcome, str | None]:
    """
    Apply `blocks` to `file_path`, writing atomically unless `preview`.

    Returns:
        (message, outcome, preview_content); preview_content is None
        unless `preview` is set
    """

    display_path = display_path or str(file_path)
    original = read_text(file_path)
    outcome = apply_search_replace_blocks(original, blocks)

    if preview:
        preview_content = render_search_replace_preview(
            display_path, outcome, preview_max_chars
        )
        summary = f"Preview: {outcome.changes} blocks would be applied"
        message = f"{summary}\n\n{preview_content}"
        return message, outcome, preview_content

    atomic_write(file_path, outcome.content)
    logger.info("Applied %d SEARCH/REPLACE blocks to %s", outcome.changes, file_path)
    message = (
        f"Successfully applied {outcome.changes} SEARCH/REPLACE block(s) to {display_path}"
    )
    return message, outcome, None
