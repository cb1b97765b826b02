from dataclasses import dataclass, field
from enum import StrEnum


class EditKind(StrEnum):
    REMOVE = "remove"
    ADD = "add"


class MatchStrategy(StrEnum):
    EXACT = "exact"
    LINE_TRIMMED = "line_trimmed"


class V4ASearchMode(StrEnum):
    RESTART = "restart"
    CONTINUE = "continue"


@dataclass
class LineEdit:
    kind: EditKind
    text: str


@dataclass
class V4AHunk:
    markers: list[str] = field(default_factory=list)
    edits: list[LineEdit] = field(default_factory=list)
    base_indentation: int = 0

    @property
    def removals(self) -> list[str]:
        return [e.text for e in self.edits if e.kind == EditKind.REMOVE]

    @property
    def additions(self) -> list[str]:
        return [e.text for e in self.edits if e.kind == EditKind.ADD]


@dataclass
class V4APatch:
    hunks: list[V4AHunk]
    file_path: str | None = None


@dataclass
class SearchReplaceBlock:
    search: str
    replace: str
    match_index: int = -1


@dataclass
class MatchResult:
    offset: int
    length: int
    strategy: MatchStrategy
