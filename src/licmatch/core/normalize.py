# normalize.py
# SPDX-License-Identifier: MIT
"""Canonical line-based form of license text.

Every raw line maps to exactly one normalized line, so a line range over
the normalized form addresses the same lines in the raw input. Lines that
carry nothing comparable (blank lines, copyright statements, title lines)
normalize to the empty string.

Per-line pipeline:
  1) NFC, copyright sign to ``(c)``, drop symbols and control characters.
  2) Case folding, whitespace runs collapsed, trimmed.
  3) Quote/dash/bracket/connector glyphs mapped to one representative each.
  4) Copyright statements and bare license titles blanked.
  5) URLs replaced by :data:`URL_PLACEHOLDER`.
  6) Remaining punctuation removed, slashes split words, NFC again.

Step 4 inspects the line in its final token form (after 5 and 6) so the
decision is the same when already-normalized text is normalized again.
"""

from __future__ import annotations

import re
import unicodedata as _ud
from collections.abc import Iterable

from .log import get_logger

__all__ = [
    "URL_PLACEHOLDER",
    "normalize",
    "normalize_line",
    "normalize_as_text",
    "split_lines",
    "is_copyright_line",
    "is_title_line",
]

log = get_logger(__name__)

URL_PLACEHOLDER = "urlredacted"

_COPYRIGHT_SIGNS = str.maketrans({"©": "(c)", "Ⓒ": "(c)", "ⓒ": "(c)"})

_WS_RE = re.compile(r"\s+")
_URL_RE = re.compile(r"(?:(?:https?|ftp)://|www\.)\S+")
_SEPARATOR_RE = re.compile(r"[/\\|⁄]+")

# Runs of one representative collapse, matching how runs of the original
# glyphs were treated as a single mark.
_PUNCT_RUNS = (
    (re.compile(r"'{2,}"), "'"),
    (re.compile(r"-{2,}"), "-"),
    (re.compile(r"\({2,}"), "("),
    (re.compile(r"\){2,}"), ")"),
    (re.compile(r"_{2,}"), "_"),
)

_COPYRIGHT_RE = re.compile(
    r"^(?:"
    r"copyright\s+c\b"  # copyright (c) <holder>
    r"|(?:c\s+)?copyright\s+(?:\d{4}|year\b|yyyy\b)"
    r"|c\s+(?:\d{4}|year\b|yyyy\b)"
    r")"
)
_TITLE_RE = re.compile(
    r"^(?!.*\b(?:this|of|terms|under|by|with|to|any|such|and|or|for|in|is|a|an|you|your|its|that|not)\b)"
    r"(?:the\s+)?(?:\S+\s+){0,5}licen[cs]e(?:\s+(?:version\s+|v)?\d\w*)?(?:\s+\S+)?$"
)


def _keep_char(ch: str) -> bool:
    if ch.isspace() or ch.isalnum() or ch == "_":
        return True
    cat = _ud.category(ch)
    # punctuation and combining marks survive; symbols and controls do not
    return cat[0] in ("P", "M")


def _map_punct(ch: str) -> str:
    if ch in "\"'":
        return "'"
    cat = _ud.category(ch)
    if cat in ("Pi", "Pf"):
        return "'"
    if cat == "Pd":
        return "-"
    if cat == "Ps":
        return "("
    if cat == "Pe":
        return ")"
    if cat == "Pc":
        return "_"
    return ch


def _canonical_chars(line: str) -> str:
    line = _ud.normalize("NFC", line).translate(_COPYRIGHT_SIGNS)
    return "".join(ch for ch in line if _keep_char(ch))


def _fold_space(line: str) -> str:
    line = _ud.normalize("NFC", line.casefold())
    return _WS_RE.sub(" ", line).strip()


def _normalize_punctuation(line: str) -> str:
    line = "".join(_map_punct(ch) for ch in line)
    for rx, rep in _PUNCT_RUNS:
        line = rx.sub(rep, line)
    return line


def _redact_urls(line: str) -> str:
    return _URL_RE.sub(URL_PLACEHOLDER, line)


def _token_form(line: str) -> str:
    line = _SEPARATOR_RE.sub(" ", line)
    line = "".join(ch for ch in line if _ud.category(ch)[0] != "P")
    # dropping punctuation can leave a combining mark next to its base letter
    line = _ud.normalize("NFC", line)
    return _WS_RE.sub(" ", line).strip()


def is_copyright_line(line: str) -> bool:
    """Return True if a token-form line reads like a copyright statement."""
    return bool(_COPYRIGHT_RE.match(line))


def is_title_line(line: str) -> bool:
    """Return True if a token-form line is only a license's common name."""
    return bool(_TITLE_RE.match(line))


def normalize_line(line: str) -> str:
    """Normalize a single raw line (no newlines) into its token form."""
    line = _canonical_chars(line)
    line = _fold_space(line)
    line = _normalize_punctuation(line)
    line = _token_form(_redact_urls(line))
    if line and (is_copyright_line(line) or is_title_line(line)):
        return ""
    return line


def split_lines(text: str) -> list[str]:
    """Split raw text into lines, treating CRLF and CR as LF."""
    if not text:
        return []
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def normalize(text: str) -> tuple[str, ...]:
    """Normalize raw text into a tuple of comparable lines.

    The result has one entry per raw line. Text with no comparable content
    at all normalizes to an empty tuple, so whitespace-only input behaves
    exactly like empty input. Never raises.

    Args:
        text (str): Raw input text.

    Returns:
        tuple[str, ...]: Normalized lines; empty strings mark lines with no
        comparison content.
    """
    lines = tuple(normalize_line(line) for line in split_lines(text))
    if not any(lines):
        return ()
    log.debug("normalized %d lines (%d with content)", len(lines), sum(1 for ln in lines if ln))
    return lines


def normalize_as_text(lines: Iterable[str]) -> str:
    """Join normalized lines back into a single string."""
    return "\n".join(lines)
