r"""Core configuration and validation shared by the engine and client."""

from __future__ import annotations

__all__ = [
    "CORRELATION_ID_HEADER",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_TIMEOUT",
    "MAX_ERROR_BODY_LENGTH",
    "ClientConfig",
    "validate_request_spec",
    "validate_timeout",
]

from webexchange.core.config import (
    CORRELATION_ID_HEADER,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TIMEOUT,
    MAX_ERROR_BODY_LENGTH,
    ClientConfig,
)
from webexchange.core.validation import validate_request_spec, validate_timeout
