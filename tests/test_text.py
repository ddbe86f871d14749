import pytest

from licmatch.core.errors import NoTextError, OutOfRangeError
from licmatch.core.ngram import BigramIndex
from licmatch.core.normalize import normalize
from licmatch.core.text import TextUnit

SAMPLE = "alpha beta gamma\n\ndelta epsilon zeta\neta theta iota\nkappa lambda mu"


def test_unit_defaults_to_full_view() -> None:
    unit = TextUnit(SAMPLE)

    assert unit.lines == normalize(SAMPLE)
    assert unit.line_count == 5
    assert unit.view == (0, 5)
    assert unit.has_lines
    assert unit.text == SAMPLE


def test_empty_unit_has_nothing_to_score() -> None:
    unit = TextUnit("")

    assert unit.line_count == 0
    assert unit.view == (0, 0)
    assert unit.score_against(TextUnit(SAMPLE)) == 0.0


def test_with_view_returns_new_unit() -> None:
    unit = TextUnit(SAMPLE)

    narrowed = unit.with_view(2, 4)

    assert narrowed.view == (2, 4)
    assert unit.view == (0, 5)
    assert ("alpha", "beta") not in narrowed.index
    assert ("delta", "epsilon") in narrowed.index
    assert narrowed.lines is unit.lines


def test_view_revert_reproduces_full_index() -> None:
    unit = TextUnit(SAMPLE)

    restored = unit.with_view(1, 3).with_view(0, unit.line_count)

    assert restored.index == unit.index
    assert unit.with_view(2, 3).full_view().index == unit.index


def test_set_view_mutates_in_place() -> None:
    unit = TextUnit(SAMPLE)

    unit.set_view(3, 5)

    assert unit.view == (3, 5)
    assert unit.index.total == 4
    assert unit.view_text() == "eta theta iota\nkappa lambda mu"


@pytest.mark.parametrize("start,end", [(3, 2), (-1, 2), (0, 6)])
def test_bad_view_raises_out_of_range(start: int, end: int) -> None:
    unit = TextUnit(SAMPLE)

    with pytest.raises(OutOfRangeError, match="outside"):
        unit.with_view(start, end)
    with pytest.raises(IndexError):
        unit.set_view(start, end)
    assert unit.view == (0, 5)


def test_white_out_masks_lines_but_keeps_view() -> None:
    unit = TextUnit(SAMPLE)

    masked = unit.white_out(2, 3)

    assert masked.view == unit.view
    assert ("delta", "epsilon") not in masked.index
    assert ("delta", "epsilon") in unit.index
    assert masked.active_lines() == ["alpha beta gamma", "", "", "eta theta iota", "kappa lambda mu"]


def test_white_out_persists_across_views() -> None:
    masked = TextUnit(SAMPLE).white_out(0, 1)

    assert ("alpha", "beta") not in masked.with_view(0, 3).index
    with pytest.raises(OutOfRangeError):
        masked.white_out(4, 9)


def test_score_against_uses_views() -> None:
    unit = TextUnit(SAMPLE)
    other = TextUnit("eta theta iota")

    assert unit.with_view(3, 4).score_against(other) == pytest.approx(1.0)
    assert unit.score_against(other) < 1.0


def test_from_bytes_decodes_utf16() -> None:
    data = "\ufeffPermission is hereby granted".encode("utf-16")

    unit = TextUnit.from_bytes(data)

    assert unit.lines == ("permission is hereby granted",)


def test_index_only_unit_scores_but_cannot_move() -> None:
    full = TextUnit(SAMPLE)
    unit = TextUnit.from_index(BigramIndex(dict(full.index.items())), view=(0, 5))

    assert not unit.has_lines
    assert unit.lines is None
    assert unit.text is None
    assert unit.view_text() is None
    assert unit.score_against(full) == pytest.approx(1.0)
    with pytest.raises(NoTextError):
        unit.with_view(0, 1)
    with pytest.raises(NoTextError):
        unit.white_out(0, 1)
    with pytest.raises(NoTextError):
        unit.active_lines()


def test_from_index_validates_view_against_lines() -> None:
    lines = normalize(SAMPLE)

    with pytest.raises(OutOfRangeError):
        TextUnit.from_index(BigramIndex(), lines=lines, view=(0, 9))
