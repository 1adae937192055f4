r"""Utility functions for request execution and response decoding.

This package provides helpers for charset resolution, failure
classification, correlation IDs and structured logging.
"""

from __future__ import annotations

__all__ = [
    "EncodingChoice",
    "StructuredFormatter",
    "clear_correlation_id",
    "correlation_scope",
    "declared_encoding",
    "decode_text",
    "get_correlation_id",
    "is_fatal",
    "log_structured",
    "resolve_encoding",
    "set_correlation_id",
]

from webexchange.utils.charset import (
    EncodingChoice,
    declared_encoding,
    decode_text,
    resolve_encoding,
)
from webexchange.utils.exceptions import is_fatal
from webexchange.utils.structured_logging import (
    StructuredFormatter,
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    log_structured,
    set_correlation_id,
)
