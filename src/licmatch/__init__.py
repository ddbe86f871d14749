# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`licmatch`.

licmatch identifies which known license text a block of input most
resembles. Text is normalized line by line, reduced to word bigrams, and
compared with the Sørensen-Dice coefficient against every text in a
:class:`LicenseStore`.

Typical use
-----------
- Build a store from license texts (:meth:`LicenseStore.add_license`,
  :meth:`LicenseStore.from_entries`) or load a prebuilt cache with
  :func:`load`.
- Call :meth:`LicenseStore.analyze` for the single best match, or run a
  :class:`ScanStrategy` to also locate licenses embedded in larger files.
- Persist a store with :func:`save` / :func:`serialize`.

Examples:
    Identify a license file::

        >>> from licmatch import LicenseStore, TextUnit
        >>> store = LicenseStore()
        >>> store.add_license("MIT", mit_text, aliases=["Expat"])
        >>> store.analyze(TextUnit(candidate_text)).name
        'MIT'

    Find a license inside a source file::

        >>> from licmatch import ScanStrategy, load
        >>> result = ScanStrategy(load("licenses.bin")).scan(source_text)
        >>> [(m.name, m.line_range) for m in result.containing]
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Package version
# ---------------------------------------------------------------------------
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("licmatch")
except Exception:  # PackageNotFoundError or runtime env oddities
    __version__ = "0.0.0+unknown"


from .core.cache import CACHE_TAG, deserialize, load, save, serialize
from .core.config import (
    AnalyzeConfig,
    CacheConfig,
    LicMatchConfig,
    LoggingConfig,
    OptimizeConfig,
    ScanConfig,
    load_config_from_path,
)
from .core.decode import decode_bytes, read_text
from .core.errors import (
    CacheError,
    CorruptDataError,
    DuplicateNameError,
    LicMatchError,
    NoTextError,
    NotFoundError,
    OutOfRangeError,
    VersionMismatchError,
)
from .core.log import configure_logging, get_logger
from .core.ngram import BigramIndex, build_index, score
from .core.normalize import normalize, normalize_as_text
from .core.optimize import optimize_bounds
from .core.store import (
    LicenseEntry,
    LicenseKind,
    LicenseSource,
    LicenseStore,
    LicenseVariant,
    MatchResult,
)
from .core.strategy import ContainedMatch, ScanResult, ScanState, ScanStrategy
from .core.text import TextUnit

__all__ = [
    "__version__",
    # text processing
    "normalize",
    "normalize_as_text",
    "decode_bytes",
    "read_text",
    "BigramIndex",
    "build_index",
    "score",
    "TextUnit",
    # store and matching
    "LicenseStore",
    "LicenseEntry",
    "LicenseVariant",
    "LicenseKind",
    "LicenseSource",
    "MatchResult",
    "optimize_bounds",
    "ScanStrategy",
    "ScanState",
    "ScanResult",
    "ContainedMatch",
    # cache
    "CACHE_TAG",
    "serialize",
    "deserialize",
    "save",
    "load",
    # configuration and logging
    "LicMatchConfig",
    "AnalyzeConfig",
    "OptimizeConfig",
    "CacheConfig",
    "ScanConfig",
    "LoggingConfig",
    "load_config_from_path",
    "configure_logging",
    "get_logger",
    # errors
    "LicMatchError",
    "NotFoundError",
    "DuplicateNameError",
    "OutOfRangeError",
    "NoTextError",
    "CacheError",
    "VersionMismatchError",
    "CorruptDataError",
]
