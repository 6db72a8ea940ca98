"""Literal token decoding tests."""

import pytest

from pytableexpr._errors import ParseError
from pytableexpr._utils import (
    decode_bytes_token,
    decode_string_token,
    is_raw_string,
    process_escapes,
    strip_quotes,
)


class TestStripQuotes:
    @pytest.mark.parametrize("token,expected", [
        ('"abc"', "abc"),
        ("'abc'", "abc"),
        ('"""a"b"""', 'a"b'),
        ("r'a\\b'", "a\\b"),
    ])
    def test_strip(self, token, expected):
        assert strip_quotes(token) == expected

    def test_is_raw(self):
        assert is_raw_string('R"x"')
        assert not is_raw_string('"x"')


class TestProcessEscapes:
    @pytest.mark.parametrize("text,expected", [
        (r"a\nb", "a\nb"),
        (r"\"q\"", '"q"'),
        (r"\x41", "A"),
        (r"\u00e9", "é"),
        (r"\U0001F600", "\U0001F600"),
        (r"\101", "A"),
        (r"\\n", "\\n"),
    ])
    def test_escapes(self, text, expected):
        assert process_escapes(text) == expected

    def test_unknown_escape(self):
        with pytest.raises(ParseError):
            process_escapes(r"\q")


class TestDecodeTokens:
    def test_string(self):
        assert decode_string_token(r'"a\tb"') == "a\tb"
        assert decode_string_token(r'r"a\tb"') == r"a\tb"

    def test_bytes_hex_and_octal_are_single_bytes(self):
        assert decode_bytes_token(r'b"\xff\377"') == b"\xff\xff"

    def test_bytes_text_is_utf8(self):
        assert decode_bytes_token('b"é\\n"') == "é\n".encode("utf-8")

    def test_raw_bytes(self):
        assert decode_bytes_token(r'br"\x00"') == b"\\x00"
