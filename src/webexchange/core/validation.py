r"""Parameter validation utilities for request execution.

This module provides validation functions that run before any network
I/O. Every violation raises ``ValueError`` synchronously.
"""

from __future__ import annotations

__all__ = ["validate_request_spec", "validate_timeout"]

from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from webexchange.request import RequestSpec


def validate_timeout(timeout: float | None) -> None:
    """Validate timeout parameter.

    Args:
        timeout: Seconds to wait for the server. ``None`` means the
            default applies. Must be >= 0 if provided.

    Raises:
        ValueError: If timeout is negative.

    Example:
        ```pycon
        >>> from webexchange.core.validation import validate_timeout
        >>> validate_timeout(10.0)
        >>> validate_timeout(0)
        >>> validate_timeout(None)
        >>> validate_timeout(-1)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: timeout must be >= 0, got -1

        ```
    """
    if timeout is not None and timeout < 0:
        msg = f"timeout must be >= 0, got {timeout}"
        raise ValueError(msg)


def validate_request_spec(spec: RequestSpec) -> None:
    """Validate a request before it is executed.

    Args:
        spec: The request to validate.

    Raises:
        ValueError: If the method is empty, the URL is missing or
            malformed, or the timeout is negative.
    """
    if spec is None:
        msg = "request must not be None"
        raise ValueError(msg)
    if not spec.method:
        msg = "request.method must contain a value"
        raise ValueError(msg)
    if spec.url is None:
        msg = "request.url must not be None"
        raise ValueError(msg)
    try:
        url = httpx.URL(spec.url)
    except (httpx.InvalidURL, TypeError) as exc:
        msg = f"request.url is not a valid URL: {spec.url!r}"
        raise ValueError(msg) from exc
    if not url.scheme or not url.host:
        msg = f"request.url must be an absolute URL, got {spec.url!r}"
        raise ValueError(msg)
    try:
        validate_timeout(spec.timeout)
    except ValueError as exc:
        msg = f"request.timeout must be >= 0 or None, got {spec.timeout}"
        raise ValueError(msg) from exc
