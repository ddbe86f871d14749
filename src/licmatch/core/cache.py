# cache.py
# SPDX-License-Identifier: MIT
"""Versioned, compressed binary persistence for a prebuilt license store.

Layout (all integers little-endian u32 unless noted)::

    tag       b"licmatch-cache-01"
    codec     u8   1 = gzip, 2 = lzma
    payload   compressed body

    body      vocab size, vocab strings
              entry count, per entry:
                name, alias count + aliases, unit,
                variant count + (u8 kind, label, unit)
    unit      u8 flags (1 = text, 2 = lines), [text], [line count + lines],
              view start, view end, masked count + line numbers,
              bigram count + (word id, word id, count)
    str       byte length + UTF-8

Bigram words are interned in the vocabulary; vocabulary, aliases and
bigrams are written in sorted order so equal stores serialize to equal
bytes.
"""

from __future__ import annotations

import gzip
import lzma
import struct
import zlib
from pathlib import Path

from .config import AnalyzeConfig, CacheConfig
from .errors import CorruptDataError, DuplicateNameError, OutOfRangeError, VersionMismatchError
from .log import get_logger
from .ngram import BigramIndex
from .store import LicenseKind, LicenseStore
from .text import TextUnit

log = get_logger(__name__)

__all__ = [
    "CACHE_TAG",
    "serialize",
    "deserialize",
    "save",
    "load",
]

CACHE_TAG = b"licmatch-cache-01"

_U8 = struct.Struct("<B")
_U32 = struct.Struct("<I")
_BIGRAM = struct.Struct("<III")

_CODEC_IDS = {"gzip": 1, "lzma": 2}
_CODEC_NAMES = {v: k for k, v in _CODEC_IDS.items()}

_KIND_IDS = {LicenseKind.ALTERNATE: 1, LicenseKind.HEADER: 2}
_KIND_NAMES = {v: k for k, v in _KIND_IDS.items()}

_FLAG_TEXT = 1
_FLAG_LINES = 2


class _Writer:
    def __init__(self, vocab: dict[str, int], store_texts: bool) -> None:
        self.vocab = vocab
        self.store_texts = store_texts
        self.parts: list[bytes] = []

    def u8(self, value: int) -> None:
        self.parts.append(_U8.pack(value))

    def u32(self, value: int) -> None:
        self.parts.append(_U32.pack(value))

    def string(self, value: str) -> None:
        raw = value.encode("utf-8")
        self.u32(len(raw))
        self.parts.append(raw)

    def strings(self, values) -> None:
        values = list(values)
        self.u32(len(values))
        for v in values:
            self.string(v)

    def unit(self, unit: TextUnit) -> None:
        text = unit.text if self.store_texts else None
        lines = unit.lines if self.store_texts else None
        flags = (_FLAG_TEXT if text is not None else 0) | (_FLAG_LINES if lines is not None else 0)
        self.u8(flags)
        if text is not None:
            self.string(text)
        if lines is not None:
            self.strings(lines)
        start, end = unit.view
        self.u32(start)
        self.u32(end)
        masked = sorted(unit.masked) if lines is not None else []
        self.u32(len(masked))
        for i in masked:
            self.u32(i)
        grams = sorted((self.vocab[a], self.vocab[b], n) for (a, b), n in unit.index.items())
        self.u32(len(grams))
        for g in grams:
            self.parts.append(_BIGRAM.pack(*g))

    def getvalue(self) -> bytes:
        return b"".join(self.parts)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0
        self.vocab: list[str] = []

    def _take(self, fmt: struct.Struct):
        try:
            values = fmt.unpack_from(self.data, self.pos)
        except struct.error as exc:
            raise CorruptDataError(f"cache body truncated at offset {self.pos}") from exc
        self.pos += fmt.size
        return values

    def u8(self) -> int:
        return self._take(_U8)[0]

    def u32(self) -> int:
        return self._take(_U32)[0]

    def string(self) -> str:
        size = self.u32()
        end = self.pos + size
        if end > len(self.data):
            raise CorruptDataError(f"string of {size} bytes overruns cache body at offset {self.pos}")
        raw = self.data[self.pos:end]
        self.pos = end
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptDataError(f"invalid UTF-8 in cache body at offset {end - size}") from exc

    def strings(self) -> list[str]:
        return [self.string() for _ in range(self.u32())]

    def word(self, idx: int) -> str:
        if idx >= len(self.vocab):
            raise CorruptDataError(f"vocabulary id {idx} out of range (size {len(self.vocab)})")
        return self.vocab[idx]

    def unit(self) -> TextUnit:
        flags = self.u8()
        if flags & ~(_FLAG_TEXT | _FLAG_LINES):
            raise CorruptDataError(f"unknown unit flags {flags:#x}")
        text = self.string() if flags & _FLAG_TEXT else None
        lines = self.strings() if flags & _FLAG_LINES else None
        start, end = self.u32(), self.u32()
        masked = [self.u32() for _ in range(self.u32())]
        counts: dict[tuple[str, str], int] = {}
        for _ in range(self.u32()):
            a, b, n = self._take(_BIGRAM)
            key = (self.word(a), self.word(b))
            if key in counts or n == 0:
                raise CorruptDataError(f"bad bigram record {key!r} (count {n})")
            counts[key] = n
        if start > end:
            raise CorruptDataError(f"view [{start}, {end}) is inverted")
        try:
            return TextUnit.from_index(
                BigramIndex(counts), text=text, lines=lines, view=(start, end), masked=masked
            )
        except OutOfRangeError as exc:
            raise CorruptDataError(f"unit view or mask outside its lines: {exc}") from exc


def _collect_vocab(store: LicenseStore) -> dict[str, int]:
    words: set[str] = set()
    for entry in store.entries():
        for unit in [entry.unit, *(v.unit for v in entry.variants)]:
            for a, b in unit.index:
                words.add(a)
                words.add(b)
    return {w: i for i, w in enumerate(sorted(words))}


def _compress(body: bytes, scheme: str, level: int | None) -> bytes:
    if scheme == "gzip":
        return gzip.compress(body, compresslevel=9 if level is None else level, mtime=0)
    return lzma.compress(body, preset=level)


def _decompress(payload: bytes, codec: int) -> bytes:
    scheme = _CODEC_NAMES.get(codec)
    if scheme is None:
        raise CorruptDataError(f"unknown compression codec id {codec}")
    try:
        if scheme == "gzip":
            return gzip.decompress(payload)
        dec = lzma.LZMADecompressor()
        body = dec.decompress(payload)
    except (OSError, EOFError, zlib.error, lzma.LZMAError) as exc:
        raise CorruptDataError(f"{scheme} payload failed to decompress: {exc}") from exc
    # a single xz stream must end exactly at the end of the blob
    if not dec.eof:
        raise CorruptDataError(f"{scheme} payload truncated")
    if dec.unused_data:
        raise CorruptDataError(f"{len(dec.unused_data)} trailing bytes after {scheme} stream")
    return body


def serialize(
    store: LicenseStore,
    compression: str | None = None,
    store_texts: bool | None = None,
    *,
    config: CacheConfig | None = None,
) -> bytes:
    """Encode a store as a versioned, compressed cache blob.

    Args:
        store (LicenseStore): Store to persist.
        compression (str | None): ``"gzip"`` or ``"lzma"``; defaults to
            ``config.compression``.
        store_texts (bool | None): Keep raw texts and normalized lines.
            Without them loaded units are index-only: they score normally
            but cannot be optimized or return their original text.
        config (CacheConfig | None): Defaults for the options above.

    Returns:
        bytes: Tag, codec id and compressed body.
    """
    cfg = config or CacheConfig()
    scheme = (compression or cfg.compression).strip().lower()
    if scheme not in _CODEC_IDS:
        raise ValueError(f"unsupported compression {compression!r}; expected one of {sorted(_CODEC_IDS)}")
    keep_texts = cfg.store_texts if store_texts is None else store_texts

    vocab = _collect_vocab(store)
    w = _Writer(vocab, keep_texts)
    w.strings(vocab)
    entries = store.entries()
    w.u32(len(entries))
    for entry in entries:
        w.string(entry.name)
        w.strings(sorted(entry.aliases))
        w.unit(entry.unit)
        w.u32(len(entry.variants))
        for variant in entry.variants:
            w.u8(_KIND_IDS[variant.kind])
            w.string(variant.label)
            w.unit(variant.unit)
    body = w.getvalue()
    payload = _compress(body, scheme, cfg.level)
    log.info(
        "serialized %d licenses: %d bytes raw, %d bytes %s",
        len(entries), len(body), len(payload), scheme,
    )
    return CACHE_TAG + _U8.pack(_CODEC_IDS[scheme]) + payload


def deserialize(data: bytes, *, config: AnalyzeConfig | None = None) -> LicenseStore:
    """Rebuild a store from a blob produced by :func:`serialize`.

    Raises:
        VersionMismatchError: If the blob does not start with the current tag.
        CorruptDataError: If the blob is truncated, fails to decompress, or
            decodes to an inconsistent store.
    """
    head = len(CACHE_TAG)
    if bytes(data[:head]) != CACHE_TAG:
        if len(data) < head:
            raise CorruptDataError(f"cache blob too short ({len(data)} bytes)")
        raise VersionMismatchError(
            f"unsupported cache version tag {bytes(data[:head])!r}; expected {CACHE_TAG!r}"
        )
    if len(data) < head + 1:
        raise CorruptDataError("cache blob has no codec byte")
    body = _decompress(bytes(data[head + 1:]), data[head])

    r = _Reader(body)
    r.vocab = r.strings()
    store = LicenseStore(config)
    try:
        for _ in range(r.u32()):
            name = r.string()
            aliases = r.strings()
            unit = r.unit()
            store.add_license(name, unit, aliases=aliases)
            for _ in range(r.u32()):
                kind = _KIND_NAMES.get(r.u8())
                if kind is None:
                    raise CorruptDataError(f"unknown variant kind for license {name!r}")
                label = r.string()
                store.add_variant(name, label, r.unit(), kind=kind)
    except DuplicateNameError as exc:
        raise CorruptDataError(f"cache holds conflicting names: {exc}") from exc
    if r.pos != len(body):
        raise CorruptDataError(f"{len(body) - r.pos} trailing bytes after cache body")
    log.debug("deserialized %d licenses from %d compressed bytes", len(store), len(data))
    return store


def save(store: LicenseStore, path: str | Path, *, config: CacheConfig | None = None) -> Path:
    """Serialize ``store`` to ``path`` and return the path."""
    target = Path(path)
    target.write_bytes(serialize(store, config=config))
    return target


def load(path: str | Path, *, config: AnalyzeConfig | None = None) -> LicenseStore:
    """Read and deserialize a cache file.

    Raises:
        OSError: If the file cannot be read.
        CacheError: If its contents are not a valid cache.
    """
    return deserialize(Path(path).read_bytes(), config=config)
