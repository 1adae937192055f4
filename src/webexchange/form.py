r"""``application/x-www-form-urlencoded`` request bodies."""

from __future__ import annotations

__all__ = ["FormData"]

import dataclasses
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from webexchange.headers import HeaderField

if TYPE_CHECKING:
    from collections.abc import Iterator


class FormData:
    r"""Ordered collection of form fields.

    Field names do not need to be unique.

    Example:
        ```pycon
        >>> from webexchange import FormData
        >>> form = FormData()
        >>> form.add("q", "hello world")
        >>> form.add("tag", "a&b")
        >>> form.encode()
        'q=hello+world&tag=a%26b'

        ```
    """

    def __init__(self) -> None:
        self._values: list[HeaderField] = []

    @classmethod
    def from_object(cls, obj: Any) -> FormData:
        """Build form fields from a mapping, a dataclass or an object.

        Each entry, field or public instance attribute becomes a form
        field whose value is ``str(value)``. ``None`` values are skipped.

        Args:
            obj: The source object.

        Raises:
            ValueError: If ``obj`` is ``None``.

        Example:
            ```pycon
            >>> from dataclasses import dataclass
            >>> from webexchange import FormData
            >>> @dataclass
            ... class Login:
            ...     user: str
            ...     remember: bool = True
            ...     token: str | None = None
            ...
            >>> FormData.from_object(Login("ann")).encode()
            'user=ann&remember=True'

            ```
        """
        if obj is None:
            msg = "obj must not be None"
            raise ValueError(msg)
        if isinstance(obj, Mapping):
            items = obj.items()
        elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            items = ((field.name, getattr(obj, field.name)) for field in dataclasses.fields(obj))
        else:
            items = ((name, value) for name, value in vars(obj).items() if not name.startswith("_"))

        form = cls()
        for name, value in items:
            if value is not None:
                form.add(str(name), str(value))
        return form

    def add(self, field: str, value: str) -> None:
        """Append a field-value pair.

        Raises:
            ValueError: If ``field`` is ``None`` or empty, or ``value`` is
                ``None``.
        """
        if field is None:
            msg = "field must not be None"
            raise ValueError(msg)
        if field == "":
            msg = "field cannot be empty string"
            raise ValueError(msg)
        if value is None:
            msg = "value must not be None"
            raise ValueError(msg)
        self._values.append(HeaderField(field, value))

    def encode(self) -> str:
        """Return the fields in ``application/x-www-form-urlencoded``
        format."""
        return urlencode(self._values)

    def to_bytes(self) -> bytes:
        """Return the UTF-8 encoded form body."""
        return self.encode().encode("utf-8")

    def __iter__(self) -> Iterator[HeaderField]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}({self.encode()!r})"
