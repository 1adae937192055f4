r"""webexchange - HTTP request execution and response decoding.

This package executes one HTTP request per call and reports the outcome
as a ``ResponseEnvelope`` instead of raising for error statuses or
transport failures. Built on top of httpx, it negotiates gzip
compression transparently, keeps repeated header fields on independent
lines, propagates a correlation ID, and decodes response bodies into
bytes, text, JSON or XML with charset detection.

Key Features:
    - Case-insensitive, multi-valued ``HeaderMultimap``
    - Error statuses and transport failures folded into the envelope
    - Transparent gzip negotiation and decompression
    - Charset resolution from Content-Type or byte-order marks
    - JSON and XML decoding into dataclasses
    - Correlation ID propagation through context variables

Example:
    ```pycon
    >>> from webexchange import RequestSpec, decode, execute
    >>> envelope = execute(RequestSpec("GET", "https://api.example.com/data"))  # doctest: +SKIP
    >>> if envelope.success:  # doctest: +SKIP
    ...     data = decode(envelope, dict)
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "CORRELATION_ID_HEADER",
    "DEFAULT_TIMEOUT",
    "ClientConfig",
    "ExchangeEngine",
    "FormData",
    "HeaderField",
    "HeaderMultimap",
    "HttpRequestError",
    "NoErrorPresentError",
    "RequestSpec",
    "ResponseEnvelope",
    "WebApiClient",
    "__version__",
    "correlation_scope",
    "decode",
    "decode_error",
    "execute",
    "read_bytes",
    "read_error_bytes",
    "read_error_string",
    "read_string",
]

from importlib.metadata import PackageNotFoundError, version

from webexchange.client import WebApiClient
from webexchange.core.config import CORRELATION_ID_HEADER, DEFAULT_TIMEOUT, ClientConfig
from webexchange.decoding import (
    decode,
    decode_error,
    read_bytes,
    read_error_bytes,
    read_error_string,
    read_string,
)
from webexchange.exceptions import HttpRequestError, NoErrorPresentError
from webexchange.exchange import ExchangeEngine, execute
from webexchange.form import FormData
from webexchange.headers import HeaderField, HeaderMultimap
from webexchange.request import RequestSpec
from webexchange.response import ResponseEnvelope
from webexchange.utils.structured_logging import correlation_scope

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
