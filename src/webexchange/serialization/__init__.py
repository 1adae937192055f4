r"""JSON and XML codecs used to encode request bodies and decode
response bodies."""

from __future__ import annotations

__all__ = ["convert", "json_codec", "xml_codec"]

from webexchange.serialization import json_codec, xml_codec
from webexchange.serialization.shapes import convert
