import pytest

from licmatch.core.normalize import normalize
from licmatch.core.store import LicenseKind, LicenseStore

MIT_TEXT = """MIT License

Copyright (c) <year> <copyright holders>

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE."""

ISC_TEXT = """ISC License

Copyright (c) 2004-2010 by Internet Systems Consortium, Inc. ("ISC")

Permission to use, copy, modify, and/or distribute this software for any
purpose with or without fee is hereby granted, provided that the above
copyright notice and this permission notice appear in all copies.

THE SOFTWARE IS PROVIDED "AS IS" AND ISC DISCLAIMS ALL WARRANTIES
WITH REGARD TO THIS SOFTWARE INCLUDING ALL IMPLIED WARRANTIES OF
MERCHANTABILITY AND FITNESS. IN NO EVENT SHALL ISC BE LIABLE FOR
ANY SPECIAL, DIRECT, INDIRECT, OR CONSEQUENTIAL DAMAGES OR ANY DAMAGES
WHATSOEVER RESULTING FROM LOSS OF USE, DATA OR PROFITS, WHETHER IN AN
ACTION OF CONTRACT, NEGLIGENCE OR OTHER TORTIOUS ACTION, ARISING OUT OF
OR IN CONNECTION WITH THE USE OR PERFORMANCE OF THIS SOFTWARE."""

MIT_HEADER = """Licensed under the MIT license. See the LICENSE file in the project
root for the full terms and conditions of use."""


def code_lines(count: int, offset: int = 0) -> list[str]:
    return [f"    result_{i} = compute(value_{i}, offset={i})" for i in range(offset, offset + count)]


def content_range(text: str, first_line: int) -> tuple[int, int]:
    """Half-open range of the lines of ``text`` that carry bigrams, shifted by ``first_line``."""
    lines = normalize(text)
    used = [i for i, line in enumerate(lines) if len(line.split()) > 1]
    return first_line + used[0], first_line + used[-1] + 1


@pytest.fixture
def mit_text() -> str:
    return MIT_TEXT


@pytest.fixture
def isc_text() -> str:
    return ISC_TEXT


@pytest.fixture
def store() -> LicenseStore:
    s = LicenseStore()
    s.add_license("MIT", MIT_TEXT, aliases=["Expat"])
    s.add_variant("MIT", "MIT-header", MIT_HEADER, kind=LicenseKind.HEADER)
    s.add_license("ISC", ISC_TEXT)
    return s


@pytest.fixture
def embedded_mit() -> tuple[str, tuple[int, int]]:
    """MIT text between 50 lines of code on each side, plus its expected line range."""
    lines = code_lines(50) + MIT_TEXT.split("\n") + code_lines(50, offset=50)
    return "\n".join(lines), content_range(MIT_TEXT, 50)
