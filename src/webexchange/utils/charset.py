r"""Text encoding resolution for response bodies.

The encoding is taken from the ``charset`` parameter of the
Content-Type header when Python knows it, then from a byte-order mark at
the start of the body, and finally defaults to UTF-8. A byte-order mark
matching the chosen encoding is stripped before decoding.
"""

from __future__ import annotations

__all__ = [
    "EncodingChoice",
    "declared_encoding",
    "decode_text",
    "parse_charset",
    "resolve_encoding",
]

import codecs
import logging
import re
from typing import NamedTuple

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

# UTF-32 must be probed before UTF-16 LE since its mark starts with the
# same two bytes
_BOM_PROBES: tuple[tuple[str, bytes], ...] = (
    ("utf-8", codecs.BOM_UTF8),
    ("utf-32-le", codecs.BOM_UTF32_LE),
    ("utf-16-le", codecs.BOM_UTF16_LE),
    ("utf-16-be", codecs.BOM_UTF16_BE),
)

_BOMS: dict[str, bytes] = {
    "utf-8": codecs.BOM_UTF8,
    "utf-16-le": codecs.BOM_UTF16_LE,
    "utf-16-be": codecs.BOM_UTF16_BE,
    "utf-32-le": codecs.BOM_UTF32_LE,
    "utf-32-be": codecs.BOM_UTF32_BE,
}

# Names without an explicit byte order mean little-endian
_DEFAULT_BYTE_ORDER: dict[str, str] = {
    "unicode": "utf-16-le",
    "utf-16": "utf-16-le",
    "utf-32": "utf-32-le",
}

_CHARSET_PATTERN = re.compile(r"""charset\s*=\s*["']?\s*([^"';,\s]*)""", re.IGNORECASE)


class EncodingChoice(NamedTuple):
    """The result of encoding resolution.

    Attributes:
        encoding: A Python codec name.
        bom_length: Number of leading bytes to skip before decoding.
    """

    encoding: str
    bom_length: int


def parse_charset(content_type: str | None) -> str | None:
    """Extract the ``charset`` parameter from a Content-Type value.

    Args:
        content_type: The Content-Type header value, possibly empty.

    Returns:
        The lower-cased charset name without quotes, or ``None``.

    Example:
        ```pycon
        >>> from webexchange.utils.charset import parse_charset
        >>> parse_charset('text/plain; charset="UTF-8"')
        'utf-8'
        >>> parse_charset("application/json") is None
        True

        ```
    """
    if not content_type:
        return None
    match = _CHARSET_PATTERN.search(content_type)
    if match is None or not match.group(1):
        return None
    return match.group(1).lower()


def _lookup(charset: str) -> str | None:
    if charset in _DEFAULT_BYTE_ORDER:
        return _DEFAULT_BYTE_ORDER[charset]
    try:
        name = codecs.lookup(charset).name
        # binary and str-to-str codecs such as base64 or rot13 cannot decode bytes
        b"".decode(name)
    except LookupError:
        logger.debug(f"Ignoring unusable charset {charset!r}")
        return None
    return _DEFAULT_BYTE_ORDER.get(name, name)


def declared_encoding(content_type: str | None) -> str | None:
    """Return the codec name of the declared charset when Python can use
    it to decode bytes, else ``None``.

    Example:
        ```pycon
        >>> from webexchange.utils.charset import declared_encoding
        >>> declared_encoding("text/xml; charset=ISO-8859-1")
        'iso8859-1'
        >>> declared_encoding("text/xml; charset=base64") is None
        True

        ```
    """
    charset = parse_charset(content_type)
    return None if charset is None else _lookup(charset)


def _has_prefix(data: bytes, prefix: bytes) -> bool:
    return bool(prefix) and data.startswith(prefix)


def resolve_encoding(content_type: str | None, data: bytes) -> EncodingChoice:
    r"""Determine the encoding of ``data``.

    Args:
        content_type: The Content-Type header value, possibly empty.
        data: The body bytes.

    Returns:
        The codec name and the length of the byte-order mark to skip.

    Example:
        ```pycon
        >>> from webexchange.utils.charset import resolve_encoding
        >>> resolve_encoding("text/plain", b"\xef\xbb\xbfhi")
        EncodingChoice(encoding='utf-8', bom_length=3)
        >>> resolve_encoding("text/plain; charset=latin-1", b"hi")
        EncodingChoice(encoding='iso8859-1', bom_length=0)
        >>> resolve_encoding("text/plain; charset=nope", b"hi")
        EncodingChoice(encoding='utf-8', bom_length=0)

        ```
    """
    encoding = declared_encoding(content_type)
    if encoding is None:
        for candidate, bom in _BOM_PROBES:
            if _has_prefix(data, bom):
                return EncodingChoice(candidate, len(bom))
        encoding = DEFAULT_ENCODING

    bom = _BOMS.get(encoding, b"")
    return EncodingChoice(encoding, len(bom) if _has_prefix(data, bom) else 0)


def decode_text(content_type: str | None, data: bytes) -> str:
    r"""Decode ``data`` to text using the resolved encoding.

    Undecodable bytes are replaced with U+FFFD.

    Args:
        content_type: The Content-Type header value, possibly empty.
        data: The body bytes.

    Returns:
        The decoded text, without any byte-order mark.

    Example:
        ```pycon
        >>> from webexchange.utils.charset import decode_text
        >>> decode_text("", b"\xef\xbb\xbfhello")
        'hello'
        >>> decode_text('text/plain; charset="utf-16"', "hi".encode("utf-16-le"))
        'hi'

        ```
    """
    choice = resolve_encoding(content_type, data)
    return data[choice.bom_length :].decode(choice.encoding, errors="replace")
