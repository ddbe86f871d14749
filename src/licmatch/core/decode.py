# decode.py
# SPDX-License-Identifier: MIT
"""Turn raw file bytes into text suitable for license matching.

License files arrive in whatever encoding their project used. Decoding is
total: every byte string yields some text, and the encoding that produced
it is reported alongside for diagnostics.
"""

from __future__ import annotations

import re
import unicodedata as _ud
from dataclasses import dataclass
from pathlib import Path

from .log import get_logger

__all__ = [
    "DecodedText",
    "decode_bytes",
    "read_text",
]

log = get_logger(__name__)

_BOMS: tuple[tuple[bytes, str], ...] = (
    (b"\x00\x00\xFE\xFF", "utf-32-be"),
    (b"\xFF\xFE\x00\x00", "utf-32-le"),
    (b"\xEF\xBB\xBF", "utf-8-sig"),
    (b"\xFE\xFF", "utf-16-be"),
    (b"\xFF\xFE", "utf-16-le"),
)

_ZERO_WIDTH = {0x200B, 0x200C, 0x200D, 0x2060, 0xFEFF}

# UTF-8 read as cp1252 leaves pairs such as 'Ã©' or 'â€™' behind.
_MOJIBAKE_RE = re.compile(r"[À-ÿ][\u0080-ÿ]|Ã.|â.|Â|�")


@dataclass(slots=True, frozen=True)
class DecodedText:
    """Decoded text content with encoding metadata."""

    text: str
    encoding: str
    had_replacement: bool


def _detect_bom(data: bytes) -> str | None:
    # UTF-32 LE shares its first two bytes with the UTF-16 LE BOM, so the
    # longer signatures are checked first.
    for sig, enc in _BOMS:
        if data.startswith(sig):
            return enc
    return None


def _guess_utf16(sample: bytes) -> str | None:
    """Guess UTF-16 endianness from where NUL bytes fall in ASCII-heavy text."""
    if not sample:
        return None
    even = sum(1 for i in range(0, len(sample), 2) if sample[i] == 0)
    odd = sum(1 for i in range(1, len(sample), 2) if sample[i] == 0)
    if even + odd < max(4, len(sample) // 64):
        return None
    if even > odd * 2:
        return "utf-16-be"
    if odd > even * 2:
        return "utf-16-le"
    return None


def _repair_mojibake(text: str) -> str:
    """Undo UTF-8-decoded-as-cp1252 damage when the repair is clearly cleaner."""
    try:
        fixed = text.encode("cp1252", errors="ignore").decode("utf-8", errors="strict")
    except UnicodeDecodeError:
        return text
    before = max(1, len(_MOJIBAKE_RE.findall(text)))
    return fixed if len(_MOJIBAKE_RE.findall(fixed)) * 3 < before else text


def _clean(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = "".join(
        ch for ch in text
        if (ch in "\n\t" or _ud.category(ch)[0] != "C") and ord(ch) not in _ZERO_WIDTH
    )
    return _ud.normalize("NFC", text)


def decode_bytes(data: bytes, *, fix_mojibake: bool = True) -> DecodedText:
    """Decode bytes into text using BOMs and simple heuristics.

    Strategy:
      1) Honor BOMs for UTF-8/16/32.
      2) Strict UTF-8, then a NUL-distribution guess at BOM-less UTF-16.
      3) cp1252, else latin-1 which never fails (optionally repairing
         UTF-8 that was read as single-byte text).

    Newlines are folded to LF, control and zero-width characters other than
    TAB/LF are dropped, and the result is NFC-normalized.

    Args:
        data (bytes): Raw bytes to decode.
        fix_mojibake (bool): Whether to attempt cp1252/UTF-8 mojibake repair.

    Returns:
        DecodedText: Text plus the encoding used and a replacement flag.
    """
    if not data:
        return DecodedText("", "utf-8", False)

    candidates: list[str] = []
    bom = _detect_bom(data)
    if bom:
        candidates.append(bom)
    candidates.append("utf-8")
    guess = _guess_utf16(data[:4096])
    if guess:
        candidates.append(guess)

    for enc in candidates:
        try:
            raw = data.decode(enc, errors="strict")
        except UnicodeDecodeError:
            continue
        text = _clean(raw)
        return DecodedText(text, enc, "�" in text)

    try:
        raw = data.decode("cp1252", errors="strict")
        enc = "cp1252"
    except UnicodeDecodeError:
        raw = data.decode("latin-1", errors="replace")
        enc = "latin-1"
        # UTF-8 text carrying stray bytes cp1252 leaves undefined lands here
        if fix_mojibake:
            raw = _repair_mojibake(raw)
    text = _clean(raw)
    log.debug("decode_bytes: fell back to %s for %d bytes", enc, len(data))
    return DecodedText(text, enc, "�" in text)


def read_text(path: str | Path, *, max_bytes: int | None = None, fix_mojibake: bool = True) -> str:
    """Read a file and decode it with :func:`decode_bytes`.

    Args:
        path (str | Path): File to read.
        max_bytes (int | None): Optional cap on bytes read.
        fix_mojibake (bool): Attempt to repair UTF-8-as-cp1252 mojibake.

    Returns:
        str: Decoded text content.

    Raises:
        OSError: If the file cannot be read.
    """
    with Path(path).open("rb") as f:
        data = f.read(max_bytes) if max_bytes else f.read()
    return decode_bytes(data, fix_mojibake=fix_mojibake).text
