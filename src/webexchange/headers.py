r"""Case-insensitive, multi-valued HTTP header collection.

This module provides the header representation shared by requests and
responses. Field names are compared case-insensitively, repeated fields
are kept as independent entries, and the casing supplied at insertion is
preserved when iterating.
"""

from __future__ import annotations

__all__ = ["HeaderField", "HeaderMultimap"]

from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


class HeaderField(NamedTuple):
    """A single header line.

    Attributes:
        name: The field name, in the casing supplied at insertion.
        value: The field value.
    """

    name: str
    value: str


def _key(field: str | None) -> str:
    if field is None:
        msg = "header field name must not be None"
        raise ValueError(msg)
    return field.lower()


class HeaderMultimap:
    r"""Ordered, case-insensitive multimap of HTTP header fields.

    Each field name maps to an ordered list of ``HeaderField`` entries.
    Fields are iterated in first-insertion order, and entries of a
    repeated field in the order they were added.

    Args:
        fields: Optional initial fields, either a mapping of name to value
            or an iterable of ``(name, value)`` pairs. Entries are added,
            so repeated names in an iterable are all kept.

    Example:
        ```pycon
        >>> from webexchange import HeaderMultimap
        >>> headers = HeaderMultimap()
        >>> headers.set("X-Foo", "a")
        >>> headers.get("x-foo")
        'a'
        >>> headers.add("Accept", "text/html")
        >>> headers.add("accept", "application/json")
        >>> headers.get("ACCEPT")
        'text/html'
        >>> list(headers)
        [HeaderField(name='X-Foo', value='a'), HeaderField(name='Accept', value='text/html'), HeaderField(name='accept', value='application/json')]
        >>> headers.get("missing")
        ''

        ```
    """

    def __init__(
        self, fields: Mapping[str, str] | Iterable[tuple[str, str]] | None = None
    ) -> None:
        self._fields: dict[str, list[HeaderField]] = {}
        if fields is None:
            return
        items = fields.items() if hasattr(fields, "items") else fields
        for name, value in items:
            self.add(name, value)

    def get(self, field: str) -> str:
        """Return the first value of ``field``, or an empty string.

        Args:
            field: The field name (case-insensitive).

        Returns:
            The first value set for the field. Never ``None``.

        Raises:
            ValueError: If ``field`` is ``None``.
        """
        entries = self._fields.get(_key(field))
        if not entries:
            return ""
        return entries[0].value

    def get_all(self, field: str) -> list[str]:
        """Return every value of ``field`` in insertion order."""
        return [entry.value for entry in self._fields.get(_key(field), ())]

    def set(self, field: str, value: str | None) -> None:
        """Replace all entries of ``field`` with a single value.

        Args:
            field: The field name (case-insensitive).
            value: The new value. ``None`` deletes the field.

        Raises:
            ValueError: If ``field`` is ``None``.
        """
        key = _key(field)
        if value is None:
            self._fields.pop(key, None)
            return
        if key in self._fields:
            # keep the field at its original position
            self._fields[key][:] = [HeaderField(field, value)]
        else:
            self._fields[key] = [HeaderField(field, value)]

    def add(self, field: str, value: str | None) -> None:
        """Append an entry for ``field``, keeping existing ones.

        Args:
            field: The field name.
            value: The value. ``None`` is silently ignored.

        Raises:
            ValueError: If ``field`` is ``None``.
        """
        key = _key(field)
        if value is None:
            return
        self._fields.setdefault(key, []).append(HeaderField(field, value))

    def delete(self, field: str) -> None:
        """Remove every entry of ``field``; missing fields are ignored.

        Raises:
            ValueError: If ``field`` is ``None``.
        """
        self._fields.pop(_key(field), None)

    def copy(self) -> HeaderMultimap:
        """Return an independent copy of this collection."""
        return HeaderMultimap(list(self))

    def __iter__(self) -> Iterator[HeaderField]:
        for entries in self._fields.values():
            yield from entries

    def __contains__(self, field: object) -> bool:
        return isinstance(field, str) and field.lower() in self._fields

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._fields.values())

    def __getitem__(self, field: str) -> str:
        return self.get(field)

    def __setitem__(self, field: str, value: str | None) -> None:
        self.set(field, value)

    def __delitem__(self, field: str) -> None:
        self.delete(field)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderMultimap):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}({list(map(tuple, self))!r})"
