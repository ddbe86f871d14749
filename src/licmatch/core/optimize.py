# optimize.py
# SPDX-License-Identifier: MIT
"""Locate the line range of a document that best matches a known license.

Coordinate descent over the two view boundaries: each round probes moving
either boundary inward or outward by 1, 2, 4, ... lines, keeps the single
best move, and stops once no move beats the current score by more than
``epsilon``.
"""

from __future__ import annotations

import dataclasses
from typing import Union

from .config import OptimizeConfig
from .errors import NoTextError
from .log import get_logger
from .ngram import BigramIndex
from .store import MatchResult
from .text import TextUnit

log = get_logger(__name__)

__all__ = ["optimize_bounds"]


def _probe_steps(limit: int) -> list[int]:
    steps: list[int] = []
    step = 1
    while step <= max(1, limit):
        steps.append(step)
        step *= 2
    return steps


class _WindowScorer:
    """Memoized Dice score of ``lines[start:end]`` against a fixed target."""

    def __init__(self, lines: tuple[str, ...], masked: frozenset[int], target: BigramIndex) -> None:
        self.lines = lines
        self.masked = masked
        self.target = target
        self.memo: dict[tuple[int, int], float] = {}

    def __call__(self, start: int, end: int) -> float:
        key = (start, end)
        cached = self.memo.get(key)
        if cached is None:
            index = BigramIndex.from_lines(self.lines, start, end, skip=self.masked)
            cached = index.dice(self.target)
            self.memo[key] = cached
        return cached


def _has_bigrams(lines: tuple[str, ...], masked: frozenset[int], i: int) -> bool:
    return i not in masked and len(lines[i].split()) > 1


def optimize_bounds(
    query: TextUnit,
    target: Union[TextUnit, MatchResult],
    config: OptimizeConfig | None = None,
) -> MatchResult:
    """Narrow ``query``'s view to the range that best matches ``target``.

    The search stays inside the query's current view. On return the query
    has been moved to the winning range (in place) and the result carries
    that range as ``line_range``.

    Args:
        query (TextUnit): Document to search; must retain its lines.
        target (TextUnit | MatchResult): Reference text, or a match whose
            unit is used as the reference. Name, kind and aliases of a
            match are carried over to the result.
        config (OptimizeConfig | None): Search limits.

    Returns:
        MatchResult: Score of the best range, with ``line_range`` set.

    Raises:
        NoTextError: If ``query`` is index-only.
        ValueError: If ``target`` is a match without a reference unit.
    """
    cfg = config or OptimizeConfig()
    if isinstance(target, MatchResult):
        if target.unit is None:
            raise ValueError("match result has no reference text unit to optimize against")
        base = target
        reference = target.unit
    else:
        base = MatchResult(name=None, score=0.0, unit=target)
        reference = target

    lines = query.lines
    if lines is None:
        raise NoTextError("cannot optimize bounds of an index-only text unit")

    lo, hi = query.view
    masked = query.masked
    scorer = _WindowScorer(lines, masked, reference.index)
    start, end = lo, hi
    best = scorer(start, end)

    iterations = 0
    while iterations < cfg.max_iterations:
        span = end - start
        move: tuple[int, int] | None = None
        move_score = best + cfg.epsilon
        for step in _probe_steps(max(span, hi - lo - span)):
            for s, e in (
                (start + step, end),
                (start, end - step),
                (start - step, end),
                (start, end + step),
            ):
                if s < lo or e > hi or s > e:
                    continue
                value = scorer(s, e)
                if value > move_score or (
                    move is not None and value == move_score and e - s < move[1] - move[0]
                ):
                    move, move_score = (s, e), value
        if move is None:
            break
        start, end = move
        best = move_score
        iterations += 1
        log.debug("optimize iteration %d: [%d, %d) score=%.4f", iterations, start, end, best)

    if cfg.trim_blank_edges and best > 0.0:
        while start < end and not _has_bigrams(lines, masked, start):
            start += 1
        while end > start and not _has_bigrams(lines, masked, end - 1):
            end -= 1

    query.set_view(start, end)
    final = query.index.dice(reference.index)
    log.debug(
        "optimized bounds to [%d, %d) after %d iterations (%d windows scored), score=%.4f",
        start, end, iterations, len(scorer.memo), final,
    )
    return dataclasses.replace(base, score=final, line_range=(start, end))
