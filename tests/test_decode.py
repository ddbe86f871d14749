from pathlib import Path

from licmatch.core.decode import decode_bytes, read_text


def test_decode_utf8_happy_path() -> None:
    original = "Permission is hereby granted – café"
    data = original.encode("utf-8")

    dec = decode_bytes(data)

    assert dec.text == original
    assert dec.encoding.lower().startswith("utf-8")
    assert dec.had_replacement is False


def test_decode_empty_bytes() -> None:
    dec = decode_bytes(b"")

    assert dec.text == ""
    assert dec.had_replacement is False


def test_decode_handles_utf8_bom() -> None:
    dec = decode_bytes(b"\xef\xbb\xbf" + b"MIT License")

    assert dec.text == "MIT License"
    assert dec.encoding.startswith("utf-8")


def test_decode_utf16_bom_is_stripped() -> None:
    data = "\ufeffCopyright notice".encode("utf-16")

    dec = decode_bytes(data)

    assert dec.text == "Copyright notice"
    assert dec.encoding.startswith("utf-16")


def test_decode_utf32_bom_wins_over_utf16() -> None:
    data = "\ufeffhi".encode("utf-32-le")

    dec = decode_bytes(data)

    assert dec.encoding == "utf-32-le"
    assert dec.text == "hi"


def test_decode_utf16_without_bom_has_no_nuls() -> None:
    raw = "Hello world".encode("utf-16-le")

    dec = decode_bytes(raw)

    assert dec.text == "Hello world"
    assert dec.encoding in {"utf-16-le", "utf-8"}
    assert "\x00" not in dec.text


def test_decode_cp1252_fallback() -> None:
    data = "François “quoted”".encode("cp1252")

    dec = decode_bytes(data, fix_mojibake=True)

    assert dec.encoding == "cp1252"
    assert dec.text == "François “quoted”"
    assert dec.had_replacement is False


def test_decode_latin1_fallback_marks_encoding() -> None:
    data = b"\x81\x8d\xfa"

    dec = decode_bytes(data, fix_mojibake=False)

    assert dec.encoding == "latin-1"
    assert dec.text == "ú"


def test_decode_repairs_utf8_read_as_latin1() -> None:
    # 0x81 is undefined in cp1252, forcing the latin-1 path
    data = "Licencié café".encode("utf-8") + b"\x81"

    dec = decode_bytes(data)

    assert dec.encoding == "latin-1"
    assert dec.text == "Licencié café"
    assert decode_bytes(data, fix_mojibake=False).text == "LicenciÃ© cafÃ©"


def test_decode_leaves_genuine_latin1_alone() -> None:
    data = "Déjà vu".encode("latin-1") + b"\x81"

    dec = decode_bytes(data)

    assert dec.encoding == "latin-1"
    assert dec.text == "Déjà vu"


def test_decode_normalizes_newlines_and_strips_controls() -> None:
    text = "line1\r\nline2\rline3\u200b\t\x01end"

    dec = decode_bytes(text.encode("utf-8"))

    assert dec.text == "line1\nline2\nline3\tend"


def test_decode_composes_to_nfc() -> None:
    dec = decode_bytes("cafe\u0301".encode("utf-8"))

    assert dec.text == "café"


def test_read_text_full_and_truncated(tmp_path: Path) -> None:
    full_path = tmp_path / "LICENSE"
    full_path.write_bytes(b"Hello\r\nworld")

    assert read_text(full_path) == "Hello\nworld"

    capped = tmp_path / "big.txt"
    capped.write_bytes(("A" * 10_000).encode("utf-8"))

    out = read_text(capped, max_bytes=100)

    assert out == "A" * 100
