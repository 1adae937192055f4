r"""Convenience client with one method per HTTP verb.

Every method builds a ``RequestSpec`` and hands it to
``ExchangeEngine.execute``; the outcome is returned as a
``ResponseEnvelope``, whatever the status.
"""

from __future__ import annotations

__all__ = ["APPLICATION_FORM", "APPLICATION_JSON", "WebApiClient"]

from typing import TYPE_CHECKING, Any

from webexchange.exchange import ExchangeEngine
from webexchange.form import FormData
from webexchange.request import RequestSpec
from webexchange.serialization import json_codec

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType
    from typing import Self

    from webexchange.core.config import ClientConfig
    from webexchange.response import ResponseEnvelope

APPLICATION_JSON = "application/json"
APPLICATION_FORM = "application/x-www-form-urlencoded"


def _encode_text(body: str | None) -> bytes | None:
    return None if body is None else body.encode("utf-8")


def _encode_json(body: Any, include_defaults: bool) -> bytes | None:
    if body is None or isinstance(body, str):
        return _encode_text(body)
    text = json_codec.encode(body, include_defaults=include_defaults)
    return None if text == "null" else _encode_text(text)


class WebApiClient:
    r"""Send requests with per-verb helper methods.

    Args:
        engine: Optional ``ExchangeEngine``. If ``None``, an engine is
            created from ``config`` and closed with this client.
        config: Optional ``ClientConfig`` for the engine created when
            ``engine`` is ``None``.

    Example:
        ```pycon
        >>> from webexchange import WebApiClient, decode
        >>> with WebApiClient() as client:  # doctest: +SKIP
        ...     envelope = client.get("https://api.example.com/data")
        ...     data = decode(envelope, dict)
        ...     envelope = client.post_json("https://api.example.com/data", {"key": "value"})
        ...

        ```
    """

    def __init__(
        self,
        *,
        engine: ExchangeEngine | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        self._close_engine = engine is None
        self._engine = engine if engine is not None else ExchangeEngine(config=config)

    @property
    def engine(self) -> ExchangeEngine:
        return self._engine

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the engine if this client created it."""
        if self._close_engine:
            self._engine.close()

    def do(self, request: RequestSpec) -> ResponseEnvelope:
        """Execute a fully described request.

        Use this method when the verb helpers do not expose what you need,
        e.g. credentials, repeated headers or disabling redirects.
        """
        if request is None:
            msg = "request must not be None"
            raise ValueError(msg)
        return self._engine.execute(request)

    def _send(
        self,
        method: str,
        url: str,
        body: bytes | None = None,
        *,
        content_type: str | None = None,
        extra_headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        proxy: Any = None,
    ) -> ResponseEnvelope:
        if url is None:
            msg = "url must not be None"
            raise ValueError(msg)
        spec = RequestSpec(method, url, body=body, timeout=timeout, proxy=proxy)
        if content_type is not None:
            spec.headers.set("Content-Type", content_type)
        for field, value in (extra_headers or {}).items():
            spec.headers.set(field, value)
        return self.do(spec)

    def get(
        self,
        url: str,
        *,
        extra_headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ResponseEnvelope:
        """Send a GET request.

        Args:
            url: The URL.
            extra_headers: Optional headers set on the request.
            timeout: Optional timeout in seconds.
        """
        return self._send("GET", url, extra_headers=extra_headers, timeout=timeout)

    def post(
        self,
        url: str,
        body: str | None = None,
        *,
        extra_headers: Mapping[str, str] | None = None,
    ) -> ResponseEnvelope:
        """Send a POST request with a UTF-8 text body, which can be
        ``None``."""
        return self._send("POST", url, _encode_text(body), extra_headers=extra_headers)

    def post_json(
        self,
        url: str,
        body: Any = None,
        *,
        extra_headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        include_defaults: bool = True,
        proxy: Any = None,
    ) -> ResponseEnvelope:
        """Send a POST request with a JSON body.

        Args:
            url: The URL.
            body: A pre-serialized JSON string, or any value accepted by
                ``json_codec.encode``. ``None`` sends no body.
            extra_headers: Optional headers set on the request.
            timeout: Optional timeout in seconds.
            include_defaults: If ``False``, dataclass fields equal to their
                default are left out of the JSON body.
            proxy: Optional proxy URL.
        """
        return self._send(
            "POST",
            url,
            _encode_json(body, include_defaults),
            content_type=APPLICATION_JSON,
            extra_headers=extra_headers,
            timeout=timeout,
            proxy=proxy,
        )

    def post_form(
        self,
        url: str,
        body: Any,
        *,
        extra_headers: Mapping[str, str] | None = None,
        proxy: Any = None,
    ) -> ResponseEnvelope:
        """Send a POST request with a form-encoded body.

        Args:
            url: The URL.
            body: A ``FormData``, or a mapping, dataclass or object turned
                into one with ``FormData.from_object``.
            extra_headers: Optional headers set on the request.
            proxy: Optional proxy URL.

        Raises:
            ValueError: If ``body`` is ``None``.
        """
        if body is None:
            msg = "body must not be None"
            raise ValueError(msg)
        form = body if isinstance(body, FormData) else FormData.from_object(body)
        return self._send(
            "POST",
            url,
            form.to_bytes(),
            content_type=APPLICATION_FORM,
            extra_headers=extra_headers,
            proxy=proxy,
        )

    def patch(
        self,
        url: str,
        body: str | None = None,
        *,
        extra_headers: Mapping[str, str] | None = None,
    ) -> ResponseEnvelope:
        """Send a PATCH request with a UTF-8 text body."""
        return self._send("PATCH", url, _encode_text(body), extra_headers=extra_headers)

    def patch_json(
        self,
        url: str,
        body: Any = None,
        *,
        extra_headers: Mapping[str, str] | None = None,
        include_defaults: bool = True,
    ) -> ResponseEnvelope:
        """Send a PATCH request with a JSON body, see ``post_json``."""
        return self._send(
            "PATCH",
            url,
            _encode_json(body, include_defaults),
            content_type=APPLICATION_JSON,
            extra_headers=extra_headers,
        )

    def put(
        self,
        url: str,
        body: str | None = None,
        *,
        extra_headers: Mapping[str, str] | None = None,
    ) -> ResponseEnvelope:
        """Send a PUT request with a UTF-8 text body."""
        return self._send("PUT", url, _encode_text(body), extra_headers=extra_headers)

    def put_json(
        self,
        url: str,
        body: Any = None,
        *,
        extra_headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        include_defaults: bool = True,
    ) -> ResponseEnvelope:
        """Send a PUT request with a JSON body, see ``post_json``."""
        return self._send(
            "PUT",
            url,
            _encode_json(body, include_defaults),
            content_type=APPLICATION_JSON,
            extra_headers=extra_headers,
            timeout=timeout,
        )

    def delete(
        self,
        url: str,
        *,
        extra_headers: Mapping[str, str] | None = None,
    ) -> ResponseEnvelope:
        """Send a DELETE request."""
        return self._send("DELETE", url, extra_headers=extra_headers)
