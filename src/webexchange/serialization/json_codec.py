r"""JSON encoding and decoding for request and response bodies."""

from __future__ import annotations

__all__ = ["decode", "encode"]

import json
from typing import Any

from webexchange.serialization.shapes import convert, dump


def encode(value: Any, *, include_defaults: bool = True) -> str:
    """Serialize ``value`` to compact JSON text.

    Args:
        value: The value to serialize.
        include_defaults: If ``False``, dataclass fields equal to their
            declared default are omitted.

    Returns:
        The JSON text. ``None`` is serialized as ``"null"``.

    Example:
        ```pycon
        >>> from dataclasses import dataclass
        >>> from webexchange.serialization import json_codec
        >>> @dataclass
        ... class Query:
        ...     term: str
        ...     page: int = 1
        ...
        >>> json_codec.encode(Query("x"))
        '{"term":"x","page":1}'
        >>> json_codec.encode(Query("x"), include_defaults=False)
        '{"term":"x"}'

        ```
    """
    return json.dumps(dump(value, include_defaults=include_defaults), separators=(",", ":"))


def decode(text: str, shape: Any = Any) -> Any:
    """Parse JSON ``text`` and convert it into ``shape``.

    Args:
        text: The JSON text. Blank text decodes to ``None``.
        shape: The requested shape, see ``shapes.convert``.

    Returns:
        The decoded value.

    Raises:
        json.JSONDecodeError: If the text is not valid JSON.
        pydantic.ValidationError: If the value does not fit ``shape``.
    """
    if not text.strip():
        return None
    return convert(json.loads(text), shape)
