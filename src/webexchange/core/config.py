r"""Configuration dataclass and defaults for the exchange engine.

This module provides configuration constants and a dataclass-based
configuration object shared by ``ExchangeEngine`` and ``WebApiClient``.
"""

from __future__ import annotations

__all__ = [
    "CORRELATION_ID_HEADER",
    "ClientConfig",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_TIMEOUT",
    "MAX_ERROR_BODY_LENGTH",
]

from dataclasses import dataclass, replace
from typing import Any

from webexchange.core.validation import validate_timeout

# Default timeout in seconds, applied to connect, read and write phases
# when a request does not set its own
DEFAULT_TIMEOUT = 10.0

# Size of the chunks read from the response stream
DEFAULT_CHUNK_SIZE = 8192

# Number of characters of the response body embedded in decode errors
MAX_ERROR_BODY_LENGTH = 1000

# Header written on every outgoing request with the current correlation ID
CORRELATION_ID_HEADER = "X-Correlation-ID"


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for request execution.

    Args:
        timeout: Timeout in seconds used when a request does not set one.
            Must be >= 0.
        correlation_id_header: Name of the header carrying the correlation
            ID. The engine overwrites any caller value for this field.
        trust_env: Whether httpx may read proxy and TLS settings from the
            environment. This is the "default proxy" used when a request
            does not set one.
        verify: TLS verification setting forwarded to httpx.
        chunk_size: Size of the chunks read from the response stream.
            Must be > 0.

    Example:
        ```pycon
        >>> from webexchange.core.config import ClientConfig
        >>> config = ClientConfig()
        >>> config.timeout
        10.0
        >>> merged = config.merge(timeout=30.0)
        >>> merged.timeout
        30.0
        >>> config.timeout  # Original unchanged
        10.0

        ```
    """

    timeout: float = DEFAULT_TIMEOUT
    correlation_id_header: str = CORRELATION_ID_HEADER
    trust_env: bool = True
    verify: Any = True
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ValueError: If any parameter fails validation.
        """
        validate_timeout(self.timeout)
        if not self.correlation_id_header:
            msg = "correlation_id_header must not be empty"
            raise ValueError(msg)
        if self.chunk_size <= 0:
            msg = f"chunk_size must be > 0, got {self.chunk_size}"
            raise ValueError(msg)

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with specified parameters overridden.

        Args:
            **overrides: Configuration values to override. ``None`` values
                are ignored.

        Returns:
            A new validated ``ClientConfig``.
        """
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})
