"""Best-effort normalization of Create payloads.

Callers submit raw bytes, a quoted string literal or base64 text and the
binding cannot tell which. The payload goes through two unwrap attempts,
always in this order:

1. unquote: the payload is read as a quoted literal with the escape grammar
   producers commonly emit (double-quoted interpreted strings, single-quoted
   one-character literals, backtick-delimited raw strings);
2. base64: strict standard alphabet with padding.

A step that does not parse leaves its input untouched, so a payload that is
neither quoted nor base64 is written byte-for-byte.

Escapes accepted inside ``"..."`` and ``'...'``::

    \\a \\b \\f \\n \\r \\t \\v \\\\     control characters and backslash
    \\" (only in "...")  \\' (only in '...')
    \\xHH  \\OOO                   a single raw byte (octal at most \\377)
    \\uHHHH  \\UHHHHHHHH           a code point, UTF-8 encoded
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Optional

log = logging.getLogger("bindkit.core.codec")

_B64_RE = re.compile(rb"^[A-Za-z0-9+/]*={0,2}$")

_ESCAPE_RE = re.compile(
    rb"""\\(?:
        (?P<simple>[abfnrtv\\'"])
      | x(?P<hex>[0-9A-Fa-f]{2})
      | u(?P<u4>[0-9A-Fa-f]{4})
      | U(?P<u8>[0-9A-Fa-f]{8})
      | (?P<oct>[0-7]{3})
    )""",
    re.VERBOSE,
)

_SIMPLE_ESCAPES = {
    b"a": b"\x07",
    b"b": b"\x08",
    b"f": b"\x0c",
    b"n": b"\n",
    b"r": b"\r",
    b"t": b"\t",
    b"v": b"\x0b",
    b"\\": b"\\",
    b"'": b"'",
    b'"': b'"',
}

_REPLACEMENT = "\ufffd".encode("utf-8")


def _utf8_width(lead: int) -> int:
    if 0xC2 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF4:
        return 4
    return 0


def _next_char(body: bytes, i: int) -> tuple:
    """(encoded bytes, next index) of the unescaped character at ``i``.

    Bytes that do not start a valid UTF-8 sequence become U+FFFD, one byte
    at a time.
    """
    lead = body[i]
    if lead < 0x80:
        return body[i:i + 1], i + 1
    width = _utf8_width(lead)
    chunk = body[i:i + width]
    if width and len(chunk) == width:
        try:
            chunk.decode("utf-8")
        except UnicodeDecodeError:
            return _REPLACEMENT, i + 1
        return chunk, i + width
    return _REPLACEMENT, i + 1


def _escape(m: "re.Match[bytes]", quote: bytes) -> Optional[bytes]:
    if m.group("simple") is not None:
        c = m.group("simple")
        if c in (b"'", b'"') and c != quote:
            return None
        return _SIMPLE_ESCAPES[c]
    if m.group("hex") is not None:
        return bytes([int(m.group("hex"), 16)])
    if m.group("oct") is not None:
        value = int(m.group("oct"), 8)
        return bytes([value]) if value <= 0xFF else None
    cp = int(m.group("u4") or m.group("u8"), 16)
    if cp > 0x10FFFF or 0xD800 <= cp <= 0xDFFF:
        return None
    return chr(cp).encode("utf-8")


def _unescape(body: bytes, quote: bytes) -> Optional[list]:
    """Characters of an interpreted literal body, or None on a syntax error."""
    chars = []
    i = 0
    while i < len(body):
        c = body[i:i + 1]
        if c == quote or c == b"\n":
            return None
        if c == b"\\":
            m = _ESCAPE_RE.match(body, i)
            if m is None:
                return None
            decoded = _escape(m, quote)
            if decoded is None:
                return None
            chars.append(decoded)
            i = m.end()
            continue
        encoded, i = _next_char(body, i)
        chars.append(encoded)
    return chars


def unquote(raw: bytes) -> Optional[bytes]:
    """Return the unquoted bytes, or None when ``raw`` is not a quoted literal."""
    if len(raw) < 2 or raw[:1] != raw[-1:]:
        return None
    quote = raw[:1]
    inner = raw[1:-1]
    if quote == b"`":
        if b"`" in inner:
            return None
        # carriage returns are dropped from raw literals
        return inner.replace(b"\r", b"")
    if quote not in (b'"', b"'"):
        return None
    chars = _unescape(inner, quote)
    if chars is None:
        return None
    if quote == b"'" and len(chars) != 1:
        return None
    return b"".join(chars)


def b64decode(raw: bytes) -> Optional[bytes]:
    """Strict standard base64; newlines are ignored. None when invalid."""
    data = raw.replace(b"\r", b"").replace(b"\n", b"")
    if len(data) % 4 or not _B64_RE.match(data):
        return None
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None


def normalize_payload(raw: bytes) -> bytes:
    data = bytes(raw or b"")
    unquoted = unquote(data)
    if unquoted is not None:
        log.debug("payload unquoted: %d -> %d bytes", len(data), len(unquoted))
        data = unquoted
    decoded = b64decode(data)
    if decoded is not None:
        log.debug("payload base64-decoded: %d -> %d bytes", len(data), len(decoded))
        data = decoded
    return data


__all__ = ["unquote", "b64decode", "normalize_payload"]
