# ngram.py
# SPDX-License-Identifier: MIT
"""Bigram frequency tables and the Sørensen-Dice scorer.

A bigram is an ordered pair of adjacent whitespace-separated tokens on the
same normalized line; pairs never span a line break. Tables keep counts,
not just membership, so repeated phrasing weighs proportionally.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator, Mapping, Sequence

from .errors import check_range

__all__ = [
    "Bigram",
    "BigramIndex",
    "line_bigrams",
    "build_index",
    "score",
]

Bigram = tuple[str, str]


def line_bigrams(line: str) -> Iterator[Bigram]:
    """Yield the bigrams of a single normalized line in order."""
    words = line.split()
    return zip(words, words[1:])


class BigramIndex:
    """Immutable bigram -> count table with a cached total.

    Attributes:
        total (int): Sum of all counts, i.e. the number of bigram
            occurrences the table was built from.
    """

    __slots__ = ("_counts", "total")

    def __init__(self, counts: Mapping[Bigram, int] | None = None) -> None:
        clean = {key: int(n) for key, n in (counts or {}).items() if n > 0}
        self._counts: dict[Bigram, int] = clean
        self.total: int = sum(clean.values())

    @classmethod
    def from_lines(
        cls,
        lines: Sequence[str],
        start: int = 0,
        end: int | None = None,
        *,
        skip: Iterable[int] = (),
    ) -> BigramIndex:
        """Count bigrams over ``lines[start:end]``, ignoring line numbers in ``skip``."""
        stop = len(lines) if end is None else end
        skipped = frozenset(skip)
        counts: Counter[Bigram] = Counter()
        for idx in range(start, stop):
            if idx in skipped:
                continue
            counts.update(line_bigrams(lines[idx]))
        return cls(counts)

    def get(self, bigram: Bigram) -> int:
        return self._counts.get(bigram, 0)

    def items(self):
        return self._counts.items()

    def __iter__(self) -> Iterator[Bigram]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __bool__(self) -> bool:
        return self.total > 0

    def __contains__(self, bigram: object) -> bool:
        return bigram in self._counts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BigramIndex):
            return NotImplemented
        return self._counts == other._counts

    def __hash__(self) -> int:
        return hash(frozenset(self._counts.items()))

    def __repr__(self) -> str:
        return f"BigramIndex(distinct={len(self._counts)}, total={self.total})"

    def __getstate__(self):
        return (self._counts,)

    def __setstate__(self, state) -> None:
        (self._counts,) = state
        self.total = sum(self._counts.values())

    def dice(self, other: BigramIndex) -> float:
        """Sørensen-Dice coefficient between two tables, in ``[0, 1]``.

        Two empty tables (or one empty table) score 0.0 rather than
        dividing by zero.
        """
        denom = self.total + other.total
        if denom == 0 or self.total == 0 or other.total == 0:
            return 0.0
        small, large = (self, other) if len(self) <= len(other) else (other, self)
        matches = 0
        lookup = large._counts
        for gram, count in small._counts.items():
            other_count = lookup.get(gram)
            if other_count:
                matches += count if count < other_count else other_count
        return min(1.0, max(0.0, (2.0 * matches) / denom))


def build_index(lines: Sequence[str], view: tuple[int, int] | None = None) -> BigramIndex:
    """Build a :class:`BigramIndex` over the ``[start, end)`` view of ``lines``.

    Raises:
        OutOfRangeError: If ``view`` violates ``0 <= start <= end <= len(lines)``.
    """
    start, end = view if view is not None else (0, len(lines))
    check_range(start, end, len(lines))
    return BigramIndex.from_lines(lines, start, end)


def score(a: BigramIndex, b: BigramIndex) -> float:
    """Score two bigram tables with the Sørensen-Dice coefficient."""
    return a.dice(b)
