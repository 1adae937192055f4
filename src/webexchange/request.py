r"""Mutable description of an outgoing HTTP request."""

from __future__ import annotations

__all__ = ["RequestSpec"]

from typing import TYPE_CHECKING, Any

from webexchange.headers import HeaderMultimap

if TYPE_CHECKING:
    from collections.abc import Mapping


class RequestSpec:
    r"""Describe an HTTP request to execute.

    A ``RequestSpec`` is owned by its caller. ``ExchangeEngine`` works on
    its own copy, so a spec can be reused after it was executed.

    Args:
        method: The HTTP method, e.g. ``"GET"``. Required at execution time.
        url: The absolute target URL. Required at execution time.
        headers: Optional initial headers, copied into the spec.
        body: Optional raw body. ``None`` means no body.
        timeout: Optional timeout in seconds. ``None`` means the
            configured default.
        proxy: Optional proxy URL (or ``httpx.Proxy``). ``None`` means the
            default proxy settings.
        credentials: Optional credentials, anything httpx accepts as
            ``auth`` such as a ``(username, password)`` tuple.
        disable_auto_redirect: Do not follow redirects.
        disable_keep_alive: Close the connection after the exchange.
        disable_compression: Do not negotiate gzip compression.

    Example:
        ```pycon
        >>> from webexchange import RequestSpec
        >>> spec = RequestSpec("GET", "https://api.example.com/data")
        >>> spec.headers.set("Accept", "application/json")
        >>> copy = spec.copy(extra_headers={"X-Tenant": "acme"})
        >>> copy.headers.get("x-tenant")
        'acme'
        >>> spec.headers.get("x-tenant")
        ''

        ```
    """

    def __init__(
        self,
        method: str | None = None,
        url: str | None = None,
        *,
        headers: HeaderMultimap | Mapping[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
        proxy: Any = None,
        credentials: Any = None,
        disable_auto_redirect: bool = False,
        disable_keep_alive: bool = False,
        disable_compression: bool = False,
    ) -> None:
        self.method = method
        self.url = url
        self.headers = HeaderMultimap(headers)
        self.body = body
        self.timeout = timeout
        self.proxy = proxy
        self.credentials = credentials
        self.disable_auto_redirect = disable_auto_redirect
        self.disable_keep_alive = disable_keep_alive
        self.disable_compression = disable_compression

    @classmethod
    def from_headers(cls, headers: HeaderMultimap) -> RequestSpec:
        """Create an empty spec seeded with a copy of ``headers``."""
        if headers is None:
            msg = "headers must not be None"
            raise ValueError(msg)
        return cls(headers=headers)

    def copy(self, extra_headers: Mapping[str, str] | None = None) -> RequestSpec:
        """Return a defensive copy of this spec.

        Args:
            extra_headers: Optional headers ``set`` on the copy, replacing
                any entries with the same field name.

        Returns:
            An independent ``RequestSpec``; mutating it leaves this spec
            unchanged.
        """
        spec = RequestSpec(
            self.method,
            self.url,
            headers=self.headers,
            body=self.body,
            timeout=self.timeout,
            proxy=self.proxy,
            credentials=self.credentials,
            disable_auto_redirect=self.disable_auto_redirect,
            disable_keep_alive=self.disable_keep_alive,
            disable_compression=self.disable_compression,
        )
        for field, value in (extra_headers or {}).items():
            spec.headers.set(field, value)
        return spec

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(method={self.method!r}, url={self.url!r})"
