"""Helpers for decoding CEL literal tokens."""

from __future__ import annotations

import re

from pytableexpr._errors import ERR_MSG_FILTER_PARSE_FAILED, ParseError

_RAW_PREFIXES = ('r"', "r'", 'R"', "R'")

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
    "`": "`",
    "?": "?",
}

_ESCAPE_RE = re.compile(
    r"\\(?:x([0-9a-fA-F]{2})|u([0-9a-fA-F]{4})|U([0-9a-fA-F]{8})|([0-3][0-7]{2})|(.))",
    re.DOTALL,
)


def strip_quotes(text: str) -> str:
    """Strip the raw prefix and surrounding quotes from a CEL string token."""
    if text.startswith(_RAW_PREFIXES):
        text = text[1:]
    if text.startswith(('"""', "'''")):
        return text[3:-3]
    if text.startswith(('"', "'")):
        return text[1:-1]
    return text


def is_raw_string(text: str) -> bool:
    return text.startswith(_RAW_PREFIXES)


def process_escapes(text: str) -> str:
    """Process CEL string escape sequences.

    Raises:
        ParseError: On an unknown escape sequence.
    """

    def replace(match: re.Match[str]) -> str:
        hex2, hex4, hex8, octal, simple = match.groups()
        if hex2 or hex4 or hex8:
            return chr(int(hex2 or hex4 or hex8, 16))
        if octal:
            return chr(int(octal, 8))
        if simple in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[simple]
        raise ParseError(
            ERR_MSG_FILTER_PARSE_FAILED,
            f"unknown escape sequence '\\{simple}' in {text!r}",
        )

    return _ESCAPE_RE.sub(replace, text)


def decode_string_token(token: str) -> str:
    raw = strip_quotes(token)
    return raw if is_raw_string(token) else process_escapes(raw)


def decode_bytes_token(token: str) -> bytes:
    """Decode a ``b"..."`` token; hex and octal escapes denote single bytes."""
    inner = token[1:]
    raw = strip_quotes(inner)
    if is_raw_string(inner):
        return raw.encode("utf-8")
    parts: list[bytes] = []
    pos = 0
    for match in _ESCAPE_RE.finditer(raw):
        parts.append(raw[pos:match.start()].encode("utf-8"))
        hex2, _, _, octal, _ = match.groups()
        if hex2:
            parts.append(bytes([int(hex2, 16)]))
        elif octal:
            parts.append(bytes([int(octal, 8)]))
        else:
            parts.append(process_escapes(match.group(0)).encode("utf-8"))
        pos = match.end()
    parts.append(raw[pos:].encode("utf-8"))
    return b"".join(parts)
