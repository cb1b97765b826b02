from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

StateT = TypeVar("StateT")
UnitT = TypeVar("UnitT")


@dataclass
class AppliedEdit(Generic[UnitT]):
    """One edit unit after it was located and applied.

    `index` is 1-based. `location` is a line index for V4A hunks and a
    character offset for SEARCH/REPLACE blocks.
    """

    index: int
    unit: UnitT
    location: int
    before: str
    after: str
    label: str = ""


@dataclass
class Mutation(Generic[StateT, UnitT]):
    state: StateT
    cursor: int
    applied: AppliedEdit[UnitT]


@dataclass
class SequentialResult(Generic[StateT, UnitT]):
    state: StateT
    applied: list[AppliedEdit[UnitT]] = field(default_factory=list)


class LocatedEditStrategy(ABC, Generic[StateT, UnitT]):
    """Per-format locate/mutate pair driven by `apply_sequential`."""

    @property
    @abstractmethod
    def unit_name(self) -> str:
        """Human name for one edit unit ('hunk', 'block')."""
        pass

    @abstractmethod
    def locate(self, state: StateT, unit: UnitT, cursor: int, index: int) -> object:
        """
        Find where `unit` applies in `state`, searching at or after `cursor`.

        Raises:
            PatchError: if the unit cannot be located
        """
        pass

    @abstractmethod
    def mutate(
        self,
        state: StateT,
        unit: UnitT,
        location: object,
        index: int
    ) -> Mutation[StateT, UnitT]:
        """
        Apply `unit` at `location` and return the new state and cursor.

        Raises:
            PatchError: if the unit does not fit at the location
        """
        pass


def apply_sequential(
    state: StateT,
    units: list[UnitT],
    strategy: LocatedEditStrategy[StateT, UnitT],
) -> SequentialResult[StateT, UnitT]:
    """
    Apply edit units in document order against an evolving state.

    Each unit is located from the cursor left by the previous one (0 for
    the first). The first failure propagates; no partial result is returned.
    """

    result: SequentialResult[StateT, UnitT] = SequentialResult(state=state)
    cursor = 0

    for index, unit in enumerate(units, start=1):
        location = strategy.locate(result.state, unit, cursor, index)
        mutation = strategy.mutate(result.state, unit, location, index)
        result.state = mutation.state
        cursor = mutation.cursor
        result.applied.append(mutation.applied)
        logger.debug(
            "Applied %s %d at %d, cursor now %d",
            strategy.unit_name, index, mutation.applied.location, cursor
        )

    return result


def truncate_preview(text: str, max_chars: int) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    head = max_chars // 2
    tail = max_chars - head
    omitted = len(text) - max_chars
    return f"{text[:head]}\n\n... [{omitted} chars truncated] ...\n\n{text[-tail:]}"
