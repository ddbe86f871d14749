# strategy.py
# SPDX-License-Identifier: MIT
"""Threshold-driven scan of a document against a license store.

A scan ends in one of three states:

* ``identified``: the whole text matches a license at or above the
  confidence threshold.
* ``possible_embedded``: the whole text scores lower, but the bounds
  optimizer found one or more line ranges that each match a license at
  or above the confidence threshold.
* ``unknown``: neither of the above.

With ``max_passes > 1`` every found range is whited out before the next
pass, so several licenses embedded in one file are reported top-down.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .config import AnalyzeConfig, LicMatchConfig, OptimizeConfig, ScanConfig
from .log import get_logger
from .optimize import optimize_bounds
from .store import LicenseStore, MatchResult
from .text import TextUnit

log = get_logger(__name__)

__all__ = [
    "ScanState",
    "ContainedMatch",
    "ScanResult",
    "ScanStrategy",
]


class ScanState:
    IDENTIFIED = "identified"
    POSSIBLE_EMBEDDED = "possible_embedded"
    UNKNOWN = "unknown"


@dataclass(slots=True, frozen=True)
class ContainedMatch:
    """A license located inside a larger document."""

    result: MatchResult
    line_range: tuple[int, int]

    @property
    def name(self) -> Optional[str]:
        return self.result.name

    @property
    def score(self) -> float:
        return self.result.score


@dataclass(slots=True)
class ScanResult:
    """Outcome of :meth:`ScanStrategy.scan`.

    Attributes:
        state (str): One of :class:`ScanState` values.
        score (float): Whole-document score of the best license.
        license (MatchResult | None): Whole-document best match, or None
            when the store is empty.
        containing (list[ContainedMatch]): Embedded licenses found by the
            optimizer, in discovery order.
    """

    state: str
    score: float
    license: Optional[MatchResult] = None
    containing: list[ContainedMatch] = field(default_factory=list)

    @property
    def identified(self) -> bool:
        return self.state == ScanState.IDENTIFIED


class ScanStrategy:
    """Decide whether a text is, contains, or is not a known license.

    Args:
        store (LicenseStore): Corpus to match against.
        config (ScanConfig | None): Thresholds and pass count.
        optimize_config (OptimizeConfig | None): Bounds optimizer limits.
        analyze_config (AnalyzeConfig | None): Worker settings forwarded to
            :meth:`LicenseStore.analyze`; the store's own settings apply
            when omitted.
    """

    def __init__(
        self,
        store: LicenseStore,
        config: ScanConfig | None = None,
        *,
        optimize_config: OptimizeConfig | None = None,
        analyze_config: AnalyzeConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or ScanConfig()
        self.optimize_config = optimize_config or OptimizeConfig()
        self.analyze_config = analyze_config

    @classmethod
    def from_config(cls, store: LicenseStore, cfg: LicMatchConfig) -> ScanStrategy:
        return cls(store, cfg.scan, optimize_config=cfg.optimize, analyze_config=cfg.analyze)

    def scan(self, query: Union[str, TextUnit]) -> ScanResult:
        """Classify ``query`` against the store.

        The caller's unit is never modified; optimization runs on copies.
        """
        cfg = self.config
        unit = query if isinstance(query, TextUnit) else TextUnit(query)
        top = self.store.analyze(unit, config=self.analyze_config)
        if not top.matched:
            return ScanResult(ScanState.UNKNOWN, 0.0)
        if top.score >= cfg.confidence_threshold:
            return ScanResult(ScanState.IDENTIFIED, top.score, top)
        if not cfg.optimize or top.score < cfg.optimize_threshold or not unit.has_lines:
            return ScanResult(ScanState.UNKNOWN, top.score, top)

        containing: list[ContainedMatch] = []
        remaining = unit.with_view(*unit.view)
        match = top
        for n in range(cfg.max_passes):
            if n:
                match = self.store.analyze(remaining, config=self.analyze_config)
                if not match.matched or match.score < cfg.optimize_threshold:
                    break
            found = optimize_bounds(remaining.with_view(*remaining.view), match, self.optimize_config)
            log.debug("scan pass %d: %s scored %.4f in %s", n + 1, found.name, found.score, found.line_range)
            if found.score < cfg.confidence_threshold or found.line_range is None:
                break
            containing.append(ContainedMatch(found, found.line_range))
            remaining = remaining.white_out(*found.line_range)

        state = ScanState.POSSIBLE_EMBEDDED if containing else ScanState.UNKNOWN
        return ScanResult(state, top.score, top, containing)
