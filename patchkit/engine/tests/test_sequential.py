import pytest

from patchkit.engine.errors import SearchNotFoundError
from patchkit.engine.sequential import (
    AppliedEdit,
    LocatedEditStrategy,
    Mutation,
    apply_sequential,
    truncate_preview,
)


class AppendAfterStrategy(LocatedEditStrategy[str, str]):
    """Inserts a unit right after the next '|' at or after the cursor."""

    def __init__(self):
        self.cursors: list[int] = []

    @property
    def unit_name(self) -> str:
        return "insert"

    def locate(self, state: str, unit: str, cursor: int, index: int) -> int:
        self.cursors.append(cursor)
        position = state.find("|", cursor)
        if position == -1:
            raise SearchNotFoundError(index, cursor, "|")
        return position + 1

    def mutate(self, state: str, unit: str, location: int, index: int) -> Mutation[str, str]:
        return Mutation(
            state=state[:location] + unit + state[location:],
            cursor=location + len(unit),
            applied=AppliedEdit(index=index, unit=unit, location=location, before="", after=unit),
        )


class TestApplySequential:
    """Tests for the generic sequential located-edit loop."""

    def test_cursor_threads_through_units(self):
        """Each unit is located from the previous unit's cursor."""
        strategy = AppendAfterStrategy()

        result = apply_sequential("|a|b", ["X", "Y"], strategy)

        assert result.state == "|Xa|Yb"
        assert strategy.cursors == [0, 2]
        assert [e.index for e in result.applied] == [1, 2]

    def test_failure_propagates(self):
        """A locate failure aborts with the failing unit's index."""
        with pytest.raises(SearchNotFoundError) as exc_info:
            apply_sequential("|a", ["X", "Y"], AppendAfterStrategy())

        assert exc_info.value.details["block_index"] == 2

    def test_no_units(self):
        result = apply_sequential("unchanged", [], AppendAfterStrategy())

        assert result.state == "unchanged"
        assert result.applied == []


class TestTruncatePreview:
    """Tests for truncate_preview."""

    def test_short_text_untouched(self):
        assert truncate_preview("short", 100) == "short"

    def test_zero_disables(self):
        assert truncate_preview("x" * 50, 0) == "x" * 50

    def test_long_text_truncated(self):
        text = "a" * 10 + "b" * 10

        result = truncate_preview(text, 10)

        assert result.startswith("aaaaa")
        assert result.endswith("bbbbb")
        assert "[10 chars truncated]" in result
