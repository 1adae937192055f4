r"""Exceptions raised when decoding the outcome of a request."""

from __future__ import annotations

__all__ = ["HttpRequestError", "NoErrorPresentError"]

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from webexchange.response import ResponseEnvelope


class HttpRequestError(Exception):
    """Raised when a successful outcome was required but the request
    failed.

    Args:
        method: The HTTP method of the request.
        url: The requested URL.
        message: The error message.
        status_code: The response status code, ``0`` when no response
            was received.
        envelope: The envelope describing the failed request.
        cause: The transport exception captured in the envelope, if any.

    Example:
        ```pycon
        >>> from webexchange.exceptions import HttpRequestError
        >>> error = HttpRequestError(
        ...     method="GET",
        ...     url="https://api.example.com/data",
        ...     message="not found",
        ...     status_code=404,
        ... )
        >>> error.status_code
        404

        ```
    """

    def __init__(
        self,
        method: str,
        url: str,
        message: str,
        status_code: int = 0,
        envelope: ResponseEnvelope | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code
        self.envelope = envelope
        self.cause = cause


class NoErrorPresentError(RuntimeError):
    """Raised when the error body of a successful envelope is requested."""

    def __init__(self, message: str = "decode_error called when no error exists") -> None:
        super().__init__(message)
