r"""Immutable outcome of executing a ``RequestSpec``."""

from __future__ import annotations

__all__ = ["ResponseEnvelope"]

from typing import TYPE_CHECKING

from webexchange.headers import HeaderMultimap

if TYPE_CHECKING:
    from webexchange.request import RequestSpec


class ResponseEnvelope:
    r"""The complete outcome of one request execution.

    Args:
        status: The response status code. ``0`` means no response was
            received at all.
        headers: The response headers. ``None`` becomes an empty collection.
        body: The response body. ``None`` becomes ``b""``. When
            ``decompressed`` is true these are the decompressed bytes,
            otherwise the bytes as received.
        decompressed: Whether the engine decompressed the body.
        request: The executed request.

    The headers and the request are copied on the way in and on the way
    out, so no caller can change an envelope after it was built.
        exception: The transport failure captured during execution, if any.

    Example:
        ```pycon
        >>> from webexchange import RequestSpec, ResponseEnvelope
        >>> envelope = ResponseEnvelope(
        ...     status=200, request=RequestSpec("GET", "https://api.example.com")
        ... )
        >>> envelope.success
        True
        >>> envelope.body
        b''

        ```
    """

    __slots__ = ("_body", "_decompressed", "_exception", "_headers", "_request", "_status")

    def __init__(
        self,
        status: int,
        request: RequestSpec,
        headers: HeaderMultimap | None = None,
        body: bytes | None = None,
        decompressed: bool = False,
        exception: Exception | None = None,
    ) -> None:
        if request is None:
            msg = "request must not be None"
            raise ValueError(msg)
        self._status = int(status)
        self._headers = headers.copy() if headers is not None else HeaderMultimap()
        self._body = bytes(body) if body is not None else b""
        self._decompressed = decompressed
        self._request = request.copy()
        self._exception = exception

    @property
    def status(self) -> int:
        return self._status

    @property
    def headers(self) -> HeaderMultimap:
        """A copy of the response headers."""
        return self._headers.copy()

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def decompressed(self) -> bool:
        return self._decompressed

    @property
    def request(self) -> RequestSpec:
        """A copy of the executed request."""
        return self._request.copy()

    @property
    def exception(self) -> Exception | None:
        return self._exception

    @property
    def success(self) -> bool:
        """Whether the status is 2xx and no transport failure was
        captured."""
        return 200 <= self._status <= 299 and self._exception is None

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(status={self._status}, "
            f"url={self._request.url!r}, success={self.success})"
        )
