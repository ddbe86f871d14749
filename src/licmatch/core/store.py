# store.py
# SPDX-License-Identifier: MIT
"""In-memory license corpus with parallel best-match search.

A :class:`LicenseStore` maps canonical license names to entries holding
the reference text, any alternate texts or standard headers, and a set of
aliases. :meth:`LicenseStore.analyze` scores a query against every text
in the store and returns the best :class:`MatchResult`.

Ties are broken by position: entries in insertion order, each entry's
original text before its variants, variants in registration order. The
outcome is therefore identical for any worker count.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional, Union

from .concurrency import Executor, batched, resolve_analyze_executor_config
from .config import AnalyzeConfig
from .errors import DuplicateNameError, NoTextError, NotFoundError
from .log import get_logger
from .ngram import BigramIndex
from .text import TextUnit

log = get_logger(__name__)

__all__ = [
    "LicenseKind",
    "LicenseVariant",
    "LicenseEntry",
    "LicenseSource",
    "MatchResult",
    "LicenseStore",
]

TextLike = Union[str, TextUnit]


class LicenseKind:
    """Which text of an entry produced a match."""

    ORIGINAL = "original"
    ALTERNATE = "alternate"
    HEADER = "header"
    VARIANTS = frozenset({ALTERNATE, HEADER})
    ALL = (ORIGINAL, ALTERNATE, HEADER)


@dataclass(slots=True)
class LicenseVariant:
    """An alternate text or standard header attached to a license entry."""

    kind: str
    label: str
    unit: TextUnit


@dataclass(slots=True)
class LicenseEntry:
    """A canonical license: reference text, aliases, and variants."""

    name: str
    unit: TextUnit
    aliases: set[str] = field(default_factory=set)
    variants: list[LicenseVariant] = field(default_factory=list)

    @property
    def original_text(self) -> str | None:
        return self.unit.text


@dataclass(slots=True)
class LicenseSource:
    """One already-parsed license record used to bulk-build a store.

    ``headers`` and ``alternates`` hold raw texts; each is registered
    under the license's own name.
    """

    name: str
    text: str
    aliases: Sequence[str] = ()
    headers: Sequence[str] = ()
    alternates: Sequence[str] = ()


@dataclass(slots=True, frozen=True)
class MatchResult:
    """Outcome of scoring a query against a store.

    Attributes:
        name (str | None): Canonical name of the best entry, or None when
            the store was empty.
        score (float): Dice score in ``[0, 1]``.
        kind (str): One of :class:`LicenseKind` values.
        label (str | None): Alias the matched variant was registered under
            (the canonical name for originals).
        aliases (frozenset[str]): Aliases of the matched entry.
        unit (TextUnit | None): The matched reference unit.
        line_range (tuple[int, int] | None): Half-open line range of the
            query that produced the score, set by the bounds optimizer.
    """

    name: Optional[str]
    score: float
    kind: str = LicenseKind.ORIGINAL
    label: Optional[str] = None
    aliases: frozenset[str] = frozenset()
    unit: Optional[TextUnit] = None
    line_range: Optional[tuple[int, int]] = None

    @property
    def text(self) -> str | None:
        """Original text of the matched unit, when it was retained."""
        return self.unit.text if self.unit is not None else None

    @property
    def matched(self) -> bool:
        return self.name is not None

    @classmethod
    def empty(cls) -> MatchResult:
        """Sentinel returned when there was nothing to compare against."""
        return cls(name=None, score=0.0)


@dataclass(slots=True, frozen=True)
class _Candidate:
    order: int
    name: str
    kind: str
    label: str
    unit: TextUnit


def _score_batch(job: tuple[BigramIndex, list[tuple[int, BigramIndex]]]) -> list[tuple[int, float]]:
    """Score one query index against a batch of candidate indexes.

    Module-level so process pools can pickle it.
    """
    query, batch = job
    return [(order, query.dice(index)) for order, index in batch]


class _ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _as_unit(text: TextLike) -> TextUnit:
    return text if isinstance(text, TextUnit) else TextUnit(text)


class LicenseStore:
    """Insertion-ordered collection of license entries.

    Entry names are unique and never collide with an alias; every alias
    resolves to exactly one entry. Reads (including :meth:`analyze`) may
    run concurrently; mutations take exclusive access.

    Args:
        config (AnalyzeConfig | None): Worker pool settings used by
            :meth:`analyze` when no per-call override is given.
    """

    def __init__(self, config: AnalyzeConfig | None = None) -> None:
        self.config = config or AnalyzeConfig()
        self._entries: dict[str, LicenseEntry] = {}
        self._aliases: dict[str, str] = {}
        self._lock = _ReadWriteLock()

    @classmethod
    def from_entries(cls, sources: Iterable[LicenseSource], *, config: AnalyzeConfig | None = None) -> LicenseStore:
        """Build a store from parsed license records.

        Raises:
            DuplicateNameError: If two records claim the same name or alias.
        """
        store = cls(config)
        for src in sources:
            store.add_license(src.name, src.text, aliases=src.aliases)
            for text in src.alternates:
                store.add_variant(src.name, src.name, text, kind=LicenseKind.ALTERNATE)
            for text in src.headers:
                store.add_variant(src.name, src.name, text, kind=LicenseKind.HEADER)
        log.debug("built store with %d licenses", len(store))
        return store

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries or name in self._aliases

    def __iter__(self) -> Iterator[str]:
        with self._lock.read():
            return iter(list(self._entries))

    def _resolve(self, name: str) -> str:
        if name in self._entries:
            return name
        canonical = self._aliases.get(name)
        if canonical is None:
            raise NotFoundError(name)
        return canonical

    def resolve(self, name: str) -> str:
        """Return the canonical name for a name or alias."""
        with self._lock.read():
            return self._resolve(name)

    def licenses(self) -> set[str]:
        """Canonical names only; aliases are not included."""
        with self._lock.read():
            return set(self._entries)

    def entries(self) -> list[LicenseEntry]:
        """Snapshot of all entries in insertion order."""
        with self._lock.read():
            return list(self._entries.values())

    def get_license(self, name: str) -> LicenseEntry:
        with self._lock.read():
            return self._entries[self._resolve(name)]

    def get_original(self, name: str) -> str:
        """Return the reference text of a license.

        Raises:
            NotFoundError: If ``name`` is neither an entry nor an alias.
            NoTextError: If the entry was loaded without its text.
        """
        entry = self.get_license(name)
        if entry.unit.text is None:
            raise NoTextError(f"license {entry.name!r} has no stored text")
        return entry.unit.text

    def aliases(self, name: str) -> set[str]:
        with self._lock.read():
            return set(self._entries[self._resolve(name)].aliases)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def _check_alias(self, alias: str, canonical: str) -> None:
        if alias in self._entries and alias != canonical:
            raise DuplicateNameError(alias, alias)
        owner = self._aliases.get(alias)
        if owner is not None and owner != canonical:
            raise DuplicateNameError(alias, owner)

    def add_license(self, name: str, text: TextLike, aliases: Iterable[str] = ()) -> LicenseEntry:
        """Insert a new canonical license.

        Args:
            name (str): Canonical name; must not already be a name or alias.
            text (str | TextUnit): Reference text.
            aliases (Iterable[str]): Additional names resolving to ``name``.

        Returns:
            LicenseEntry: The inserted entry.

        Raises:
            DuplicateNameError: If ``name`` or an alias is already taken.
        """
        unit = _as_unit(text)
        wanted = {a for a in aliases if a != name}
        with self._lock.write():
            if name in self._entries:
                raise DuplicateNameError(name)
            if name in self._aliases:
                raise DuplicateNameError(name, self._aliases[name])
            for alias in wanted:
                self._check_alias(alias, name)
            entry = LicenseEntry(name=name, unit=unit, aliases=wanted)
            self._entries[name] = entry
            for alias in wanted:
                self._aliases[alias] = name
        log.debug("added license %s (%d lines, %d aliases)", name, unit.line_count, len(wanted))
        return entry

    def add_variant(
        self,
        canonical_name: str,
        alias: str,
        text: TextLike,
        kind: str = LicenseKind.ALTERNATE,
    ) -> LicenseVariant:
        """Attach an alternate text or standard header to an entry.

        ``alias`` labels the variant and is registered as an alias of the
        entry unless it equals the canonical name.

        Raises:
            ValueError: If ``kind`` is not ``"alternate"`` or ``"header"``.
            NotFoundError: If ``canonical_name`` is unknown.
            DuplicateNameError: If ``alias`` belongs to a different license.
        """
        if kind not in LicenseKind.VARIANTS:
            raise ValueError(f"variant kind must be 'alternate' or 'header'; got {kind!r}")
        unit = _as_unit(text)
        with self._lock.write():
            canonical = self._resolve(canonical_name)
            self._check_alias(alias, canonical)
            entry = self._entries[canonical]
            variant = LicenseVariant(kind=kind, label=alias, unit=unit)
            entry.variants.append(variant)
            if alias != canonical:
                entry.aliases.add(alias)
                self._aliases[alias] = canonical
        return variant

    def set_aliases(self, name: str, aliases: Iterable[str]) -> None:
        """Replace the alias set of an entry.

        Raises:
            NotFoundError: If ``name`` is unknown.
            DuplicateNameError: If an alias belongs to another license.
        """
        with self._lock.write():
            canonical = self._resolve(name)
            wanted = {a for a in aliases if a != canonical}
            for alias in wanted:
                self._check_alias(alias, canonical)
            entry = self._entries[canonical]
            for alias in entry.aliases:
                self._aliases.pop(alias, None)
            entry.aliases = wanted
            for alias in wanted:
                self._aliases[alias] = canonical

    def remove_license(self, name: str) -> LicenseEntry:
        """Drop an entry and all of its aliases."""
        with self._lock.write():
            canonical = self._resolve(name)
            entry = self._entries.pop(canonical)
            for alias in entry.aliases:
                self._aliases.pop(alias, None)
        return entry

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------
    def _candidates(self) -> list[_Candidate]:
        out: list[_Candidate] = []
        with self._lock.read():
            for entry in self._entries.values():
                out.append(_Candidate(len(out), entry.name, LicenseKind.ORIGINAL, entry.name, entry.unit))
                for variant in entry.variants:
                    out.append(_Candidate(len(out), entry.name, variant.kind, variant.label, variant.unit))
        return out

    def _score_all(self, query: BigramIndex, candidates: list[_Candidate], cfg: AnalyzeConfig) -> list[float]:
        scores = [0.0] * len(candidates)
        exec_cfg, batch_size = resolve_analyze_executor_config(cfg, len(candidates))
        if exec_cfg.max_workers == 1 or len(candidates) <= batch_size:
            for cand in candidates:
                scores[cand.order] = query.dice(cand.unit.index)
            return scores

        jobs = (
            (query, [(cand.order, cand.unit.index) for cand in chunk])
            for chunk in batched(candidates, batch_size)
        )

        def _on_result(batch_scores: list[tuple[int, float]]) -> None:
            for order, value in batch_scores:
                scores[order] = value

        Executor(exec_cfg).map_unordered(jobs, _score_batch, _on_result, fail_fast=True)
        return scores

    def _result(self, cand: _Candidate, value: float) -> MatchResult:
        entry = self._entries.get(cand.name)
        aliases = frozenset(entry.aliases) if entry is not None else frozenset()
        return MatchResult(
            name=cand.name,
            score=value,
            kind=cand.kind,
            label=cand.label,
            aliases=aliases,
            unit=cand.unit,
        )

    def analyze_top(self, query: TextLike, limit: int = 5, *, config: AnalyzeConfig | None = None) -> list[MatchResult]:
        """Return the ``limit`` best candidates, best first.

        Equal scores keep store order, so the first element is always what
        :meth:`analyze` would return.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        unit = _as_unit(query)
        candidates = self._candidates()
        if not candidates:
            return []
        cfg = config or self.config
        t0 = time.perf_counter()
        scores = self._score_all(unit.index, candidates, cfg)
        ranked = sorted(range(len(candidates)), key=lambda i: (-scores[i], i))[:limit]
        log.debug(
            "analyzed query against %d texts in %.2f ms",
            len(candidates),
            (time.perf_counter() - t0) * 1000.0,
        )
        return [self._result(candidates[i], scores[i]) for i in ranked]

    def analyze(self, query: TextLike, *, config: AnalyzeConfig | None = None) -> MatchResult:
        """Score ``query`` against every text and return the best match.

        Args:
            query (str | TextUnit): Raw text or a prepared unit; only the
                unit's current view is scored.
            config (AnalyzeConfig | None): Per-call worker settings.

        Returns:
            MatchResult: The best match, or :meth:`MatchResult.empty` when
                the store holds no licenses.
        """
        top = self.analyze_top(query, 1, config=config)
        return top[0] if top else MatchResult.empty()
