# text.py
# SPDX-License-Identifier: MIT
"""Text units: raw text, its normalized lines, and a scored view over them.

A :class:`TextUnit` is normalized exactly once. Narrowing the view or
whiting out lines only rebuilds the bigram index from the already
normalized lines; the lines themselves are never touched.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .decode import decode_bytes
from .errors import NoTextError, OutOfRangeError, check_range
from .ngram import BigramIndex
from .normalize import normalize, split_lines

__all__ = ["TextUnit"]


class TextUnit:
    """A normalized text with an active line view and its bigram index.

    Units built from a cache without line data are "index-only": they can
    be scored but their view cannot be changed.

    Attributes:
        text (str | None): Original raw text, when retained.
    """

    __slots__ = ("text", "_lines", "_view", "_masked", "_index", "_raw_lines")

    def __init__(self, text: str = "") -> None:
        lines = normalize(text)
        self.text: str | None = text
        self._lines: tuple[str, ...] | None = lines
        self._view: tuple[int, int] = (0, len(lines))
        self._masked: frozenset[int] = frozenset()
        self._index: BigramIndex = BigramIndex.from_lines(lines)
        self._raw_lines: list[str] | None = None

    # ------------------------------------------------------------------
    # Alternate constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_text(cls, text: str) -> TextUnit:
        return cls(text)

    @classmethod
    def from_bytes(cls, data: bytes, *, fix_mojibake: bool = True) -> TextUnit:
        """Decode file bytes (BOM/UTF-8/UTF-16/cp1252 heuristics) and normalize them."""
        return cls(decode_bytes(data, fix_mojibake=fix_mojibake).text)

    @classmethod
    def from_index(
        cls,
        index: BigramIndex,
        *,
        text: str | None = None,
        lines: Sequence[str] | None = None,
        view: tuple[int, int] | None = None,
        masked: Iterable[int] = (),
    ) -> TextUnit:
        """Rebuild a unit from previously computed parts without normalizing.

        Args:
            index (BigramIndex): Index of the active view.
            text (str | None): Original text, if retained.
            lines (Sequence[str] | None): Normalized lines; omit for an
                index-only unit.
            view (tuple[int, int] | None): Active view; defaults to the
                full range of ``lines``.
            masked (Iterable[int]): Whited-out line numbers.

        Raises:
            OutOfRangeError: If ``view`` does not fit ``lines``.
        """
        unit = cls.__new__(cls)
        unit.text = text
        unit._lines = tuple(lines) if lines is not None else None
        unit._masked = frozenset(masked)
        unit._index = index
        unit._raw_lines = None
        if unit._lines is None:
            unit._view = view if view is not None else (0, 0)
        else:
            n = len(unit._lines)
            start, end = view if view is not None else (0, n)
            check_range(start, end, n)
            if any(i < 0 or i >= n for i in unit._masked):
                raise OutOfRangeError(min(unit._masked), max(unit._masked) + 1, n)
            unit._view = (start, end)
        return unit

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def lines(self) -> tuple[str, ...] | None:
        """Normalized lines, or None for index-only units."""
        return self._lines

    @property
    def has_lines(self) -> bool:
        return self._lines is not None

    @property
    def line_count(self) -> int:
        if self._lines is None:
            return self._view[1]
        return len(self._lines)

    @property
    def view(self) -> tuple[int, int]:
        return self._view

    @property
    def masked(self) -> frozenset[int]:
        return self._masked

    @property
    def index(self) -> BigramIndex:
        return self._index

    def active_lines(self) -> list[str]:
        """Normalized lines inside the view, with whited-out lines blanked."""
        lines = self._require_lines()
        start, end = self._view
        return ["" if i in self._masked else lines[i] for i in range(start, end)]

    def view_text(self) -> str | None:
        """Raw text of the lines inside the current view, if text is retained."""
        if self.text is None:
            return None
        if self._raw_lines is None:
            self._raw_lines = split_lines(self.text)
        start, end = self._view
        return "\n".join(self._raw_lines[start:end])

    # ------------------------------------------------------------------
    # View manipulation
    # ------------------------------------------------------------------
    def _require_lines(self) -> tuple[str, ...]:
        if self._lines is None:
            raise NoTextError("text unit was built without line data (index-only)")
        return self._lines

    def _reindex(self) -> None:
        lines = self._require_lines()
        start, end = self._view
        self._index = BigramIndex.from_lines(lines, start, end, skip=self._masked)

    def _copy(self) -> TextUnit:
        unit = TextUnit.__new__(TextUnit)
        unit.text = self.text
        unit._lines = self._lines
        unit._view = self._view
        unit._masked = self._masked
        unit._index = self._index
        unit._raw_lines = self._raw_lines
        return unit

    def set_view(self, start: int, end: int) -> None:
        """Move this unit's view to ``[start, end)`` in place and reindex.

        Raises:
            NoTextError: For index-only units.
            OutOfRangeError: If the range violates ``0 <= start <= end <= line_count``.
        """
        lines = self._require_lines()
        check_range(start, end, len(lines))
        if (start, end) == self._view:
            return
        self._view = (start, end)
        self._reindex()

    def with_view(self, start: int, end: int) -> TextUnit:
        """Return a new unit sharing these lines with the view ``[start, end)``."""
        unit = self._copy()
        unit.set_view(start, end)
        return unit

    def full_view(self) -> TextUnit:
        return self.with_view(0, self.line_count)

    def white_out(self, start: int, end: int) -> TextUnit:
        """Return a new unit with lines ``[start, end)`` masked out of the index.

        The view is unchanged; masked lines simply stop contributing bigrams.
        Used to hide a license already found before searching the rest of a
        document.

        Raises:
            NoTextError: For index-only units.
            OutOfRangeError: If the range violates ``0 <= start <= end <= line_count``.
        """
        lines = self._require_lines()
        check_range(start, end, len(lines))
        unit = self._copy()
        unit._masked = self._masked | frozenset(range(start, end))
        unit._reindex()
        return unit

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------
    def score_against(self, other: TextUnit) -> float:
        """Dice score between this unit's view and ``other``'s view."""
        return self._index.dice(other._index)

    def __repr__(self) -> str:
        kind = "lines" if self._lines is not None else "index-only"
        return f"TextUnit({kind}, lines={self.line_count}, view={self._view}, bigrams={self._index.total})"
