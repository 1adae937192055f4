r"""Decoding of response bodies into typed values.

``decode`` requires a successful envelope and ``decode_error`` a failed
one. Both dispatch on the requested shape: ``bytes`` returns the body
verbatim, ``str`` the charset-resolved text, and any other shape goes
through the XML codec when the Content-Type mentions ``xml``, or the
JSON codec otherwise. XML bodies without a usable charset in the
Content-Type reach the parser as bytes so the document's encoding
declaration applies.
"""

from __future__ import annotations

__all__ = [
    "decode",
    "decode_error",
    "read_bytes",
    "read_error_bytes",
    "read_error_string",
    "read_string",
]

import logging
from typing import Any, TypeVar, overload

import httpx

from webexchange.core.config import MAX_ERROR_BODY_LENGTH
from webexchange.exceptions import HttpRequestError, NoErrorPresentError
from webexchange.response import ResponseEnvelope
from webexchange.serialization import json_codec, xml_codec
from webexchange.utils.charset import declared_encoding, decode_text

logger: logging.Logger = logging.getLogger(__name__)

T = TypeVar("T")


def _check_envelope(envelope: ResponseEnvelope) -> None:
    if envelope is None:
        msg = "envelope must not be None"
        raise ValueError(msg)


def _raise_for_failure(envelope: ResponseEnvelope) -> None:
    url = envelope.request.url
    message = f"An error occurred performing a request to {url}."
    if envelope.status != 0:
        phrase = httpx.codes.get_reason_phrase(envelope.status)
        body = decode_text(envelope.headers.get("Content-Type"), envelope.body)
        message += (
            f" StatusCode={envelope.status} {phrase} "
            f"Message Body={body[:MAX_ERROR_BODY_LENGTH]}"
        )
    logger.debug(f"Refusing to decode failed response from {url} (status {envelope.status})")
    raise HttpRequestError(
        method=envelope.request.method or "",
        url=str(url),
        message=message,
        status_code=envelope.status,
        envelope=envelope,
        cause=envelope.exception,
    ) from envelope.exception


def _decode_body(envelope: ResponseEnvelope, shape: Any) -> Any:
    body = envelope.body
    if shape is bytes:
        return body

    content_type = envelope.headers.get("Content-Type")
    if shape is not str and "xml" in content_type.lower():
        if declared_encoding(content_type) is None:
            # the parser honors the document's own encoding declaration
            return xml_codec.decode(body, shape)
        return xml_codec.decode(decode_text(content_type, body), shape)
    text = decode_text(content_type, body)
    if shape is str:
        return text
    return json_codec.decode(text, shape)


@overload
def decode(envelope: ResponseEnvelope, shape: type[T]) -> T: ...


@overload
def decode(envelope: ResponseEnvelope, shape: Any = ...) -> Any: ...


def decode(envelope: ResponseEnvelope, shape: Any = Any) -> Any:
    r"""Decode the body of a successful envelope into ``shape``.

    Args:
        envelope: The envelope to decode.
        shape: ``bytes``, ``str``, a dataclass, or a plain shape such as
            ``dict``, ``list`` or ``Any``.

    Returns:
        The decoded value.

    Raises:
        HttpRequestError: If the envelope is not successful. The message
            includes the URL, the status code and its reason phrase, and
            the beginning of the body; the captured transport exception,
            if any, is chained.

    Example:
        ```pycon
        >>> from webexchange import HeaderMultimap, RequestSpec, ResponseEnvelope, decode
        >>> envelope = ResponseEnvelope(
        ...     status=200,
        ...     request=RequestSpec("GET", "https://api.example.com/data"),
        ...     headers=HeaderMultimap({"Content-Type": "application/json; charset=utf-8"}),
        ...     body=b'{"a":1}',
        ... )
        >>> decode(envelope, dict)
        {'a': 1}
        >>> decode(envelope, str)
        '{"a":1}'

        ```
    """
    _check_envelope(envelope)
    if not envelope.success:
        _raise_for_failure(envelope)
    return _decode_body(envelope, shape)


@overload
def decode_error(envelope: ResponseEnvelope, shape: type[T]) -> T: ...


@overload
def decode_error(envelope: ResponseEnvelope, shape: Any = ...) -> Any: ...


def decode_error(envelope: ResponseEnvelope, shape: Any = Any) -> Any:
    """Decode the body of a failed envelope into ``shape``.

    Args:
        envelope: The envelope to decode.
        shape: The requested shape, as in ``decode``.

    Returns:
        The decoded error body.

    Raises:
        NoErrorPresentError: If the envelope is successful.
    """
    _check_envelope(envelope)
    if envelope.success:
        msg = (
            f"No error occurred performing a request to {envelope.request.url}; "
            "use `decode` instead."
        )
        raise NoErrorPresentError(msg)
    return _decode_body(envelope, shape)


def read_bytes(envelope: ResponseEnvelope) -> bytes:
    """Return the body of a successful envelope verbatim."""
    return decode(envelope, bytes)


def read_string(envelope: ResponseEnvelope) -> str:
    """Return the body of a successful envelope as text."""
    return decode(envelope, str)


def read_error_bytes(envelope: ResponseEnvelope) -> bytes:
    """Return the body of a failed envelope verbatim."""
    return decode_error(envelope, bytes)


def read_error_string(envelope: ResponseEnvelope) -> str:
    """Return the body of a failed envelope as text."""
    return decode_error(envelope, str)
