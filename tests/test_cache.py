import gzip
import logging
import struct

import pytest

from licmatch.core.cache import CACHE_TAG, deserialize, load, save, serialize
from licmatch.core.config import CacheConfig
from licmatch.core.errors import CacheError, CorruptDataError, NoTextError, VersionMismatchError
from licmatch.core.optimize import optimize_bounds
from licmatch.core.store import LicenseKind, LicenseStore
from licmatch.core.text import TextUnit


def _u32(n: int) -> bytes:
    return struct.pack("<I", n)


def _str(s: str) -> bytes:
    raw = s.encode("utf-8")
    return _u32(len(raw)) + raw


def _blob(body: bytes) -> bytes:
    return CACHE_TAG + b"\x01" + gzip.compress(body)


def _index_only_entry(name: str, bigrams: list[tuple[int, int, int]]) -> bytes:
    out = _str(name) + _u32(0)  # name, no aliases
    out += b"\x00" + _u32(0) + _u32(1) + _u32(0)  # flags, view [0, 1), no mask
    out += _u32(len(bigrams)) + b"".join(struct.pack("<III", *b) for b in bigrams)
    return out + _u32(0)  # no variants


def test_round_trip_preserves_names_aliases_and_scores(store: LicenseStore, mit_text: str, embedded_mit) -> None:
    blob = serialize(store)

    loaded = deserialize(blob)

    assert blob.startswith(CACHE_TAG)
    assert loaded.licenses() == store.licenses()
    assert loaded.aliases("MIT") == store.aliases("MIT")
    assert loaded.get_original("MIT") == mit_text
    variants = loaded.get_license("MIT").variants
    assert [(v.kind, v.label) for v in variants] == [(LicenseKind.HEADER, "MIT-header")]
    for query in (mit_text, embedded_mit[0], "unrelated words only"):
        before = store.analyze(query)
        after = loaded.analyze(query)
        assert (after.name, after.kind, after.label) == (before.name, before.kind, before.label)
        assert after.score == before.score


def test_reserializing_is_byte_identical(store: LicenseStore) -> None:
    blob = serialize(store)

    assert serialize(deserialize(blob)) == blob
    assert serialize(store) == blob


def test_lzma_codec_round_trips(store: LicenseStore, mit_text: str) -> None:
    blob = serialize(store, compression="lzma")

    assert blob[len(CACHE_TAG)] == 2
    assert deserialize(blob).analyze(mit_text).score == pytest.approx(1.0)


def test_config_picks_compression(store: LicenseStore) -> None:
    blob = serialize(store, config=CacheConfig(compression="lzma", level=1))

    assert blob[len(CACHE_TAG)] == 2
    with pytest.raises(ValueError):
        serialize(store, compression="zstd")


def test_index_only_cache_scores_but_has_no_text(store: LicenseStore, mit_text: str, embedded_mit) -> None:
    blob = serialize(store, store_texts=False)

    loaded = deserialize(blob)

    assert len(blob) < len(serialize(store))
    with pytest.raises(NoTextError):
        loaded.get_original("MIT")
    result = loaded.analyze(mit_text)
    assert result.name == "MIT"
    assert result.score == pytest.approx(1.0)
    assert result.text is None
    query = TextUnit(embedded_mit[0])
    optimized = optimize_bounds(query, loaded.analyze(query))
    assert optimized.line_range == embedded_mit[1]


def test_save_and_load(tmp_path, store: LicenseStore, mit_text: str) -> None:
    path = save(store, tmp_path / "licenses.bin")

    loaded = load(path)

    assert loaded.analyze(mit_text).name == "MIT"


def test_empty_store_round_trips() -> None:
    loaded = deserialize(serialize(LicenseStore()))

    assert len(loaded) == 0
    assert loaded.analyze("x y").name is None


def test_version_mismatch(store: LicenseStore) -> None:
    blob = serialize(store)
    stale = b"licmatch-cache-00" + blob[len(CACHE_TAG):]

    with pytest.raises(VersionMismatchError):
        deserialize(stale)
    with pytest.raises(CacheError):
        deserialize(b"x" * 64)


@pytest.mark.parametrize("data", [b"", b"lic", CACHE_TAG])
def test_too_short_is_corrupt(data: bytes) -> None:
    with pytest.raises(CorruptDataError):
        deserialize(data)


def test_unknown_codec_is_corrupt(store: LicenseStore) -> None:
    blob = serialize(store)
    bad = CACHE_TAG + b"\x07" + blob[len(CACHE_TAG) + 1:]

    with pytest.raises(CorruptDataError, match="codec"):
        deserialize(bad)


def test_truncated_payload_is_corrupt(store: LicenseStore) -> None:
    blob = serialize(store)

    with pytest.raises(CorruptDataError):
        deserialize(blob[:-10])


def test_trailing_bytes_are_corrupt(store: LicenseStore) -> None:
    body = gzip.decompress(serialize(store)[len(CACHE_TAG) + 1:])

    with pytest.raises(CorruptDataError, match="trailing"):
        deserialize(_blob(body + b"\x00"))


@pytest.mark.parametrize("compression", ["gzip", "lzma"])
def test_junk_after_compressed_stream_is_corrupt(store: LicenseStore, compression: str) -> None:
    blob = serialize(store, compression=compression)

    with pytest.raises(CorruptDataError):
        deserialize(blob + b"zz")


def test_truncated_lzma_stream_is_corrupt(store: LicenseStore) -> None:
    blob = serialize(store, compression="lzma")

    with pytest.raises(CorruptDataError):
        deserialize(blob[:-4])


def test_truncated_body_is_corrupt(store: LicenseStore) -> None:
    body = gzip.decompress(serialize(store)[len(CACHE_TAG) + 1:])

    with pytest.raises(CorruptDataError):
        deserialize(_blob(body[: len(body) // 2]))


def test_hand_built_body_decodes() -> None:
    body = _u32(2) + _str("alpha") + _str("beta") + _u32(1) + _index_only_entry("X", [(0, 1, 3)])

    loaded = deserialize(_blob(body))

    unit = loaded.get_license("X").unit
    assert not unit.has_lines
    assert unit.index.get(("alpha", "beta")) == 3


def test_out_of_range_vocabulary_id_is_corrupt() -> None:
    body = _u32(1) + _str("alpha") + _u32(1) + _index_only_entry("X", [(0, 5, 1)])

    with pytest.raises(CorruptDataError, match="vocabulary"):
        deserialize(_blob(body))


def test_duplicate_names_are_corrupt() -> None:
    body = _u32(0) + _u32(2) + _index_only_entry("X", []) + _index_only_entry("X", [])

    with pytest.raises(CorruptDataError, match="conflicting"):
        deserialize(_blob(body))


def test_view_outside_lines_is_corrupt() -> None:
    entry = _str("X") + _u32(0) + b"\x02" + _u32(1) + _str("a b") + _u32(0) + _u32(4) + _u32(0) + _u32(0) + _u32(0)
    body = _u32(0) + _u32(1) + entry

    with pytest.raises(CorruptDataError):
        deserialize(_blob(body))


def test_bad_utf8_is_corrupt() -> None:
    body = _u32(1) + _u32(2) + b"\xff\xfe" + _u32(0)

    with pytest.raises(CorruptDataError, match="UTF-8"):
        deserialize(_blob(body))


def test_serialize_logs_sizes(caplog, store: LicenseStore) -> None:
    caplog.set_level(logging.INFO, logger="licmatch")

    serialize(store)

    assert any("serialized 2 licenses" in r.getMessage() for r in caplog.records)
