r"""Conversion between decoded JSON-like values and target shapes.

A shape is the type a caller asks a body to be decoded into. Plain
shapes (``Any``, ``object``) receive the decoded tree unchanged. Every
other shape (dataclasses, ``list[...]``, ``dict[...]``, enums, unions
and scalars) is validated by a cached ``pydantic.TypeAdapter`` in lax
mode, so ``"3"`` fills an ``int`` field and ``"true"`` a ``bool`` one.
"""

from __future__ import annotations

__all__ = [
    "FieldSpec",
    "adapter_for",
    "convert",
    "dataclass_fields",
    "dump",
    "is_plain",
    "list_item_shape",
    "unwrap_optional",
]

import dataclasses
import logging
import types
import typing
from typing import Any, NamedTuple

from pydantic import TypeAdapter

logger: logging.Logger = logging.getLogger(__name__)

# Populated lazily, first writer wins
_ADAPTER_CACHE: dict[Any, TypeAdapter] = {}
_FIELDS_CACHE: dict[type, dict[str, FieldSpec]] = {}

_PLAIN_SHAPES = (None, Any, object)


class FieldSpec(NamedTuple):
    """Description of one dataclass field.

    Attributes:
        name: The attribute name.
        shape: The resolved annotation.
    """

    name: str
    shape: Any


def is_plain(shape: Any) -> bool:
    """Indicate whether ``shape`` takes the decoded tree as is."""
    return shape in _PLAIN_SHAPES or shape is dict or shape is list


def adapter_for(shape: Any) -> TypeAdapter:
    """Return the cached ``TypeAdapter`` for ``shape``.

    Concurrent callers may both build an adapter on a miss; the first
    one published is kept.
    """
    cached = _ADAPTER_CACHE.get(shape)
    if cached is not None:
        return cached
    logger.debug(f"Building type adapter for {shape!r}")
    return _ADAPTER_CACHE.setdefault(shape, TypeAdapter(shape))


def dataclass_fields(shape: type) -> dict[str, FieldSpec]:
    """Return the init fields of a dataclass, keyed by lower-cased name.

    The result is cached per shape.

    Args:
        shape: A dataclass type.

    Returns:
        A mapping from lower-cased field name to ``FieldSpec``.
    """
    cached = _FIELDS_CACHE.get(shape)
    if cached is not None:
        return cached
    hints = typing.get_type_hints(shape)
    built = {
        field.name.lower(): FieldSpec(field.name, hints.get(field.name, Any))
        for field in dataclasses.fields(shape)
        if field.init
    }
    return _FIELDS_CACHE.setdefault(shape, built)


def unwrap_optional(shape: Any) -> Any:
    """Return ``X`` for ``Optional[X]``, else ``shape`` unchanged."""
    origin = typing.get_origin(shape)
    if origin is typing.Union or origin is types.UnionType:
        rest = [arg for arg in typing.get_args(shape) if arg is not type(None)]
        if len(rest) == 1:
            return rest[0]
    return shape


def list_item_shape(shape: Any) -> Any | None:
    """Return the item shape of a ``list[...]`` annotation, else ``None``.

    ``Optional[list[...]]`` is unwrapped as well.
    """
    shape = unwrap_optional(shape)
    origin = typing.get_origin(shape)
    if origin in (list, tuple, set, frozenset):
        item_args = typing.get_args(shape)
        return item_args[0] if item_args else Any
    if shape in (list, tuple, set, frozenset):
        return Any
    return None


def convert(value: Any, shape: Any) -> Any:
    """Convert a decoded JSON-like ``value`` into ``shape``.

    Args:
        value: The decoded value (dicts, lists, scalars).
        shape: The requested shape.

    Returns:
        The converted value. ``None`` stays ``None`` for every shape.

    Raises:
        pydantic.ValidationError: If ``value`` does not fit ``shape``.

    Example:
        ```pycon
        >>> from dataclasses import dataclass
        >>> from webexchange.serialization.shapes import convert
        >>> @dataclass
        ... class Item:
        ...     name: str
        ...     count: int = 0
        ...
        >>> convert({"name": "a", "count": "3"}, Item)
        Item(name='a', count=3)
        >>> convert([{"name": "b"}], list[Item])
        [Item(name='b', count=0)]

        ```
    """
    if shape in _PLAIN_SHAPES or value is None:
        return value
    return adapter_for(shape).validate_python(value)


def dump(value: Any, *, include_defaults: bool = True) -> Any:
    """Convert ``value`` into JSON-serializable builtins.

    Args:
        value: The value to convert. Dataclasses become dicts, enums
            their value, dates and times ISO 8601 strings.
        include_defaults: If ``False``, dataclass fields whose value
            equals their declared default are left out, recursively.

    Returns:
        A tree of dicts, lists and scalars.

    Raises:
        pydantic_core.PydanticSerializationError: If ``value`` holds a
            type with no JSON representation.
    """
    if value is None:
        return None
    return adapter_for(type(value)).dump_python(
        value, mode="json", exclude_defaults=not include_defaults
    )
