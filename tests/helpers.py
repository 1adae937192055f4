r"""Shared test helpers for building requests, responses and
envelopes."""

from __future__ import annotations

__all__ = [
    "TEST_URL",
    "create_envelope",
    "raw_response",
]

from typing import TYPE_CHECKING

import httpx

from webexchange import HeaderMultimap, RequestSpec, ResponseEnvelope

if TYPE_CHECKING:
    from collections.abc import Mapping

TEST_URL = "https://api.example.com/data"


def raw_response(
    status_code: int,
    body: bytes = b"",
    headers: list[tuple[str, str]] | None = None,
) -> httpx.Response:
    """Create a response whose body is streamed as raw bytes.

    Unlike ``httpx.Response(content=...)``, the body is not read when the
    response is created, so it reaches the engine as it would from the
    network, without any content decoding.
    """
    return httpx.Response(status_code, headers=headers, stream=httpx.ByteStream(body))


def create_envelope(
    status: int = 200,
    body: bytes = b"",
    headers: Mapping[str, str] | None = None,
    exception: Exception | None = None,
    url: str = TEST_URL,
) -> ResponseEnvelope:
    """Create an envelope for a GET request to ``url``."""
    return ResponseEnvelope(
        status=status,
        request=RequestSpec("GET", url),
        headers=HeaderMultimap(headers),
        body=body,
        exception=exception,
    )
