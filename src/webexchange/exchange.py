r"""Execution of a ``RequestSpec`` into a ``ResponseEnvelope``.

The engine validates the request, propagates the correlation ID,
negotiates gzip compression, sends the request through httpx and folds
the outcome into a ``ResponseEnvelope``. Non-2xx statuses are ordinary
results, and transport failures are captured in the envelope. Only
invalid requests and process-fatal conditions raise.
"""

from __future__ import annotations

__all__ = ["ExchangeEngine", "execute", "should_compress"]

import logging
import zlib
from typing import TYPE_CHECKING

import httpx

from webexchange.core.config import ClientConfig
from webexchange.core.validation import validate_request_spec
from webexchange.headers import HeaderMultimap
from webexchange.response import ResponseEnvelope
from webexchange.utils.exceptions import is_fatal
from webexchange.utils.structured_logging import get_correlation_id

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType
    from typing import Self

    from webexchange.request import RequestSpec

logger: logging.Logger = logging.getLogger(__name__)


def should_compress(spec: RequestSpec) -> bool:
    """Indicate whether the engine should ask for a gzip response.

    Compression is negotiated unless the request disables it, already
    sets ``Accept-Encoding`` or ``Range``, or is a ``HEAD`` request.

    Example:
        ```pycon
        >>> from webexchange import RequestSpec
        >>> from webexchange.exchange import should_compress
        >>> should_compress(RequestSpec("GET", "https://api.example.com"))
        True
        >>> should_compress(RequestSpec("HEAD", "https://api.example.com"))
        False

        ```
    """
    # gzip on HEAD confuses some servers, see https://trac.nginx.org/nginx/ticket/261
    return (
        not spec.disable_compression
        and not spec.headers.get("Accept-Encoding")
        and not spec.headers.get("Range")
        and (spec.method or "").upper() != "HEAD"
    )


def _to_multimap(headers: httpx.Headers) -> HeaderMultimap:
    result = HeaderMultimap()
    for name, value in headers.raw:
        result.add(name.decode(headers.encoding), value.decode(headers.encoding))
    return result


def _raw_chunks(response: httpx.Response, chunk_size: int) -> Iterator[bytes]:
    if response.is_stream_consumed:
        # response.content is already content-decoded; the ByteStream still holds the wire bytes
        return iter(response.stream)
    return response.iter_raw(chunk_size)


def _read_body(
    response: httpx.Response, headers: HeaderMultimap, added_gzip: bool, chunk_size: int
) -> tuple[bytes, bool]:
    gzipped = added_gzip and headers.get("Content-Encoding") == "gzip"
    if not gzipped:
        return b"".join(_raw_chunks(response, chunk_size)), False

    decompressor = zlib.decompressobj(zlib.MAX_WBITS | 16)
    chunks = [decompressor.decompress(chunk) for chunk in _raw_chunks(response, chunk_size)]
    chunks.append(decompressor.flush())
    return b"".join(chunks), True


class _SharedTransport(httpx.BaseTransport):
    """Delegate to a transport owned by the engine, ignoring ``close``
    from the per-call client."""

    def __init__(self, transport: httpx.BaseTransport) -> None:
        self._transport = transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self._transport.handle_request(request)

    def close(self) -> None:
        pass


class ExchangeEngine:
    r"""Execute requests and report each outcome as a
    ``ResponseEnvelope``.

    Every call to ``execute`` sends exactly one request through a
    dedicated ``httpx.Client``. Calls share no mutable state, so an
    engine can be used from several threads.

    Args:
        config: Optional ``ClientConfig``. If ``None``, a default config
            is used.
        transport: Optional httpx transport used for every call, e.g.
            ``httpx.MockTransport`` in tests. The engine closes it in
            ``close``. If ``None``, httpx creates a default transport per
            call.

    Example:
        ```pycon
        >>> from webexchange import ExchangeEngine, RequestSpec
        >>> with ExchangeEngine() as engine:  # doctest: +SKIP
        ...     envelope = engine.execute(RequestSpec("GET", "https://api.example.com/data"))
        ...     envelope.success
        ...
        True

        ```
    """

    def __init__(
        self,
        *,
        config: ClientConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._transport = transport

    @property
    def config(self) -> ClientConfig:
        return self._config

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
        """Close the transport supplied at construction, if any."""
        if self._transport is not None:
            self._transport.close()

    def execute(
        self, spec: RequestSpec, *, correlation_id: str | None = None
    ) -> ResponseEnvelope:
        """Execute ``spec`` and return its outcome.

        Args:
            spec: The request to execute. It is copied and never mutated.
            correlation_id: Optional correlation ID for this call. If
                ``None``, the ambient ID from ``get_correlation_id`` is used.

        Returns:
            The envelope. ``status`` is ``0`` if no response was received,
            ``exception`` holds any captured transport failure.

        Raises:
            ValueError: If the request has no method, no valid URL, or a
                negative timeout. Raised before any network I/O.
            BaseException: Process-fatal conditions (see ``is_fatal``)
                are never captured.
        """
        if spec is None:
            msg = "request must not be None"
            raise ValueError(msg)
        request = spec.copy()
        validate_request_spec(request)

        self._propagate_correlation_id(request, correlation_id)

        added_gzip = should_compress(request)
        if added_gzip:
            request.headers.set("Accept-Encoding", "gzip")

        status = 0
        headers: HeaderMultimap | None = None
        body: bytes | None = None
        decompressed = False
        exception: Exception | None = None

        logger.debug(
            f"Sending {request.method} request to {request.url} (gzip negotiated: {added_gzip})"
        )
        try:
            with self._open_client(request) as client:
                response = client.send(self._build_request(request), stream=True)
                try:
                    status = response.status_code
                    headers = _to_multimap(response.headers)
                    body, decompressed = _read_body(
                        response, headers, added_gzip, self._config.chunk_size
                    )
                finally:
                    response.close()
        except Exception as exc:
            if is_fatal(exc):
                raise
            logger.debug(
                f"{request.method} request to {request.url} failed with "
                f"{type(exc).__name__}: {exc}"
            )
            partial = getattr(exc, "response", None)
            if isinstance(partial, httpx.Response):
                status, headers, body, decompressed = self._read_partial_response(
                    partial, added_gzip, request
                )
            exception = exc

        logger.debug(f"{request.method} request to {request.url} completed with status {status}")
        return ResponseEnvelope(
            status=status,
            request=request,
            headers=headers,
            body=body,
            decompressed=decompressed,
            exception=exception,
        )

    def _propagate_correlation_id(self, request: RequestSpec, correlation_id: str | None) -> None:
        value = correlation_id if correlation_id is not None else get_correlation_id()
        if value is not None:
            request.headers.set(self._config.correlation_id_header, value)

    def _open_client(self, request: RequestSpec) -> httpx.Client:
        timeout = request.timeout if request.timeout is not None else self._config.timeout
        limits = (
            httpx.Limits(max_keepalive_connections=0)
            if request.disable_keep_alive
            else httpx.Limits()
        )
        transport = _SharedTransport(self._transport) if self._transport is not None else None
        return httpx.Client(
            auth=request.credentials,
            proxy=request.proxy,
            timeout=httpx.Timeout(timeout),
            follow_redirects=not request.disable_auto_redirect,
            limits=limits,
            trust_env=self._config.trust_env,
            verify=self._config.verify,
            transport=transport,
        )

    def _build_request(self, request: RequestSpec) -> httpx.Request:
        # (name, value) pairs keep repeated fields on separate header lines
        fields = [(field.name, field.value) for field in request.headers]
        if request.disable_keep_alive and "Connection" not in request.headers:
            fields.append(("Connection", "close"))
        content = request.body or b""
        fields = [(name, value) for name, value in fields if name.lower() != "content-length"]
        fields.append(("Content-Length", str(len(content))))
        return httpx.Request(request.method, request.url, headers=fields, content=content)

    def _read_partial_response(
        self, partial: httpx.Response, added_gzip: bool, request: RequestSpec
    ) -> tuple[int, HeaderMultimap | None, bytes | None, bool]:
        status = 0
        headers = None
        body = None
        decompressed = False
        try:
            status = partial.status_code
            headers = _to_multimap(partial.headers)
            body, decompressed = _read_body(partial, headers, added_gzip, self._config.chunk_size)
        except Exception as exc:
            if is_fatal(exc):
                raise
            # best effort, the original failure is the one reported
            logger.debug(
                f"Ignoring {type(exc).__name__} while reading the error response "
                f"of {request.method} request to {request.url}: {exc}"
            )
        finally:
            try:
                partial.close()
            except Exception as exc:
                if is_fatal(exc):
                    raise
                logger.debug(f"Ignoring {type(exc).__name__} while closing the error response")
        return status, headers, body, decompressed


def execute(
    spec: RequestSpec,
    *,
    config: ClientConfig | None = None,
    correlation_id: str | None = None,
) -> ResponseEnvelope:
    """Execute ``spec`` with a default ``ExchangeEngine``.

    Args:
        spec: The request to execute.
        config: Optional ``ClientConfig``.
        correlation_id: Optional correlation ID overriding the ambient one.

    Returns:
        The envelope describing the outcome.
    """
    return ExchangeEngine(config=config).execute(spec, correlation_id=correlation_id)
