# config.py
# SPDX-License-Identifier: MIT
"""Configuration models and helpers for licmatch.

This module defines declarative dataclasses for store analysis, bounds
optimization, cache building, scan thresholds, and logging, along with
helpers for serializing and loading configurations from JSON and TOML.
"""
from __future__ import annotations

import json
import os
try:  # pragma: no cover - optional dependency
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    try:
        import tomli as tomllib  # type: ignore[assignment]
    except Exception:  # pragma: no cover
        tomllib = None  # type: ignore[assignment]
from collections.abc import Sequence as ABCSequence
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .log import PACKAGE_LOGGER_NAME, configure_logging

__all__ = [
    "AnalyzeConfig",
    "OptimizeConfig",
    "CacheConfig",
    "ScanConfig",
    "LoggingConfig",
    "LicMatchConfig",
    "load_config_from_path",
    "MAX_WORKERS_ENV",
    "COMPRESSION_SCHEMES",
]

MAX_WORKERS_ENV = "LICMATCH_MAX_WORKERS"
COMPRESSION_SCHEMES = ("gzip", "lzma")
EXECUTOR_KINDS = ("thread", "process")

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Section configs
# ---------------------------------------------------------------------------

@dataclass(slots=True, frozen=True)
class AnalyzeConfig:
    """
    Controls the worker pool that scores a query against every store entry.

    max_workers = 0 → auto (``LICMATCH_MAX_WORKERS`` or os.cpu_count or 1)
    max_workers = 1 → score inline on the calling thread
    batch_size = 0 → split candidates into roughly four batches per worker
    executor_kind ∈ {"thread", "process"}
      - "thread": no pickling; the default for in-process callers.
      - "process": sidesteps the GIL for very large stores at the cost of
        shipping bigram tables to workers on every call.
    """

    max_workers: int = 0
    batch_size: int = 0
    executor_kind: str = "thread"

    def __post_init__(self) -> None:
        if self.max_workers < 0:
            raise ValueError("analyze.max_workers must be >= 0.")
        if self.batch_size < 0:
            raise ValueError("analyze.batch_size must be >= 0.")
        kind = (self.executor_kind or "thread").strip().lower()
        if kind not in EXECUTOR_KINDS:
            raise ValueError(
                f"analyze.executor_kind must be one of {list(EXECUTOR_KINDS)}; got {self.executor_kind!r}."
            )
        object.__setattr__(self, "executor_kind", kind)

    def resolved_workers(self) -> int:
        """Return the effective worker count, honoring the env override."""
        if self.max_workers:
            return self.max_workers
        raw = os.getenv(MAX_WORKERS_ENV, "").strip()
        if raw:
            try:
                return max(1, int(raw))
            except ValueError:
                pass
        return max(1, os.cpu_count() or 1)


@dataclass(slots=True, frozen=True)
class OptimizeConfig:
    """Knobs for the bounds optimizer's local search.

    Attributes:
        max_iterations (int): Upper bound on accepted boundary moves.
        epsilon (float): Minimum score gain for a move to be accepted.
        trim_blank_edges (bool): Drop leading/trailing lines that carry no
            bigrams once the search converges.
    """

    max_iterations: int = 64
    epsilon: float = 1e-6
    trim_blank_edges: bool = True

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("optimize.max_iterations must be >= 1.")
        if self.epsilon < 0.0:
            raise ValueError("optimize.epsilon must be >= 0.")


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Build-time cache options.

    ``compression`` is fixed when a cache is written; the reader picks the
    matching decoder from the blob header.
    """

    compression: str = "gzip"
    level: Optional[int] = None
    store_texts: bool = True

    def __post_init__(self) -> None:
        scheme = (self.compression or "gzip").strip().lower()
        if scheme not in COMPRESSION_SCHEMES:
            raise ValueError(
                f"cache.compression must be one of {list(COMPRESSION_SCHEMES)}; got {self.compression!r}."
            )
        object.__setattr__(self, "compression", scheme)
        if self.level is not None and not 0 <= self.level <= 9:
            raise ValueError("cache.level must be between 0 and 9 when set.")


@dataclass(slots=True, frozen=True)
class ScanConfig:
    """Thresholds driving the scan decision procedure.

    Attributes:
        confidence_threshold (float): Score at or above which a match is
            reported as identified.
        optimize_threshold (float): Lowest score still worth running the
            bounds optimizer for.
        optimize (bool): Whether to try locating embedded licenses at all.
        max_passes (int): Number of optimize/white-out rounds used to find
            several licenses in one document.
    """

    confidence_threshold: float = 0.8
    optimize_threshold: float = 0.1
    optimize: bool = True
    max_passes: int = 1

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("scan.confidence_threshold must be between 0.0 and 1.0.")
        if not 0.0 <= self.optimize_threshold <= self.confidence_threshold:
            raise ValueError("scan.optimize_threshold must be between 0.0 and confidence_threshold.")
        if self.max_passes < 1:
            raise ValueError("scan.max_passes must be >= 1.")


@dataclass(slots=True)
class LoggingConfig:
    """Controls the package logger; set propagate/logger_name to integrate
    with host apps.
    """
    level: Union[int, str] = "INFO"
    propagate: bool = False
    fmt: Optional[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> None:
        """Apply this logging configuration to the package logger."""
        configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


# ---------------------------------------------------------------------------
# Master config
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class LicMatchConfig:
    """Declarative settings for a licmatch session.

    Holds only configuration knobs; stores, text units and executors are
    runtime objects and never live here.
    """
    analyze: AnalyzeConfig = field(default_factory=AnalyzeConfig)
    optimize: OptimizeConfig = field(default_factory=OptimizeConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation of this configuration."""
        return _dataclass_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Serialize the configuration to JSON and write it to disk.

        Args:
            path (Path | str): Target file path.
            indent (int): Indentation level passed to ``json.dumps``.

        Returns:
            str: String path to the written file.
        """
        target = Path(path)
        target.write_text(json.dumps(self.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        """Instantiate a config from a mapping produced by :meth:`to_dict`
        or loaded from JSON/TOML.

        Raises:
            ValueError: If the mapping holds unknown sections or keys.
        """
        return _dataclass_from_dict(cls, data)

    @classmethod
    def from_json(cls: Type[T], path: Path | str) -> T:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, Mapping):
            raise TypeError(f"Top-level JSON document must be an object; got {type(payload).__name__}.")
        return cls.from_dict(payload)

    @classmethod
    def from_toml(cls: Type[T], path: Path | str) -> T:
        """
        Load a config from a TOML file whose top-level tables mirror this
        dataclass: [analyze], [optimize], [cache], [scan], [logging].
        """
        if tomllib is None:
            raise RuntimeError(
                "TOML support requires Python 3.11+ (tomllib) or installing the 'tomli' package."
            )
        data = tomllib.loads(Path(path).read_bytes().decode("utf-8"))
        if not isinstance(data, Mapping):
            raise TypeError(f"Top-level TOML document must be a mapping; got {type(data).__name__}.")
        return cls.from_dict(data)


def load_config_from_path(path: str | Path) -> LicMatchConfig:
    """Load a LicMatchConfig from a JSON or TOML file.

    Args:
        path (Path | str): Path to a ``.toml`` or ``.json`` config file.

    Returns:
        LicMatchConfig: Parsed configuration instance.

    Raises:
        ValueError: If the file extension is not ``.toml`` or ``.json``.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        return LicMatchConfig.from_toml(p)
    if suffix == ".json":
        return LicMatchConfig.from_json(p)
    raise ValueError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")


# ---------------------------------------------------------------------------
# (De)serialization helpers
# ---------------------------------------------------------------------------

def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize dataclasses to JSON-friendly dicts, skipping None fields."""
    result: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        if is_dataclass(value):
            result[f.name] = _dataclass_to_dict(value)
        elif isinstance(value, Path):
            result[f.name] = str(value)
        else:
            result[f.name] = value
    return result


def _dataclass_from_dict(cls: Type[T], data: Mapping[str, Any] | None) -> T:
    """Instantiate a dataclass of type `cls` from a mapping.

    Unknown keys are rejected so typos in config files surface early.
    """
    if data is None:
        return cls()  # type: ignore[call-arg]
    type_hints = get_type_hints(cls)
    known = {f.name for f in fields(cls)}
    unknown = sorted(str(k) for k in data if k not in known)
    if unknown:
        raise ValueError(
            f"Unsupported options for {cls.__name__}: {', '.join(unknown)}. "
            f"Allowed keys: {', '.join(sorted(known))}"
        )

    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        kwargs[f.name] = _coerce_value(type_hints.get(f.name, f.type), data[f.name])
    return cls(**kwargs)  # type: ignore[arg-type]


def _coerce_value(expected_type: Any, value: Any) -> Any:
    """Coerce `value` into the shape implied by `expected_type`."""
    base_type, _ = _strip_optional(expected_type)
    if value is None:
        return None
    if isinstance(base_type, type) and is_dataclass(base_type):
        return _dataclass_from_dict(base_type, value)
    origin = get_origin(base_type)
    if origin in (list, tuple, ABCSequence):
        args = get_args(base_type)
        inner = args[0] if args else Any
        items = [_coerce_value(inner, v) for v in value]
        return tuple(items) if origin is tuple else list(items)
    if base_type is Path:
        return Path(value)
    if base_type in {str, int, float, bool}:
        return base_type(value)
    return value


def _strip_optional(typ: Any) -> Tuple[Any, bool]:
    """Strip Optional from a type annotation.

    Returns:
        tuple[Any, bool]: ``(base_type, is_optional)``.
    """
    if get_origin(typ) is Union:
        args = [arg for arg in get_args(typ) if arg is not type(None)]
        if len(args) == 1:
            base, _ = _strip_optional(args[0])
            return base, True
    return typ, False
