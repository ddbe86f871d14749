# errors.py
# SPDX-License-Identifier: MIT
"""Typed failures raised by the licmatch core.

Each error also derives from the closest builtin so callers that only know
about ``KeyError``/``ValueError``/``IndexError`` keep working.
"""

from __future__ import annotations

__all__ = [
    "LicMatchError",
    "NotFoundError",
    "DuplicateNameError",
    "OutOfRangeError",
    "NoTextError",
    "CacheError",
    "VersionMismatchError",
    "CorruptDataError",
    "check_range",
]


class LicMatchError(Exception):
    """Base class for every error raised by licmatch."""


class NotFoundError(LicMatchError, KeyError):
    """A license name or alias is not present in the store."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"license {self.name!r} not present in store"


class DuplicateNameError(LicMatchError, ValueError):
    """An insertion would reuse a name already bound to another license."""

    def __init__(self, name: str, existing: str | None = None) -> None:
        self.name = name
        self.existing = existing
        if existing is None or existing == name:
            msg = f"license name {name!r} already present in store"
        else:
            msg = f"name {name!r} already refers to license {existing!r}"
        super().__init__(msg)


class OutOfRangeError(LicMatchError, IndexError):
    """A requested line range violates ``0 <= start <= end <= line_count``."""

    def __init__(self, start: int, end: int, line_count: int) -> None:
        self.start = start
        self.end = end
        self.line_count = line_count
        super().__init__(f"line range [{start}, {end}) outside [0, {line_count}]")


class NoTextError(LicMatchError):
    """An operation needs line data that the text unit does not retain."""


class CacheError(LicMatchError):
    """Base class for cache decoding failures."""


class VersionMismatchError(CacheError):
    """The cache blob was written by an unsupported format version."""


class CorruptDataError(CacheError, ValueError):
    """The cache blob failed decompression or structural decoding."""


def check_range(start: int, end: int, line_count: int) -> None:
    """Raise :class:`OutOfRangeError` unless ``0 <= start <= end <= line_count``."""
    if not (0 <= start <= end <= line_count):
        raise OutOfRangeError(start, end, line_count)
