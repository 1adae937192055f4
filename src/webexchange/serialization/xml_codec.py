r"""XML decoding for response bodies.

The mapping between a document and a dataclass shape is inferred from
the root element and the dataclass fields: attributes and child elements
fill the field with the same name (case-insensitive, namespaces
ignored). Repeated child elements fill ``list`` fields, and a single
child wrapping same-named items is read as a list as well. Mappings are
cached per (shape, root tag). The collected text is then validated
against the shape with pydantic, so ``"7"`` fills an ``int`` field.

Plain shapes (``dict``, ``Any``) receive a dict tree keyed by the root
tag. Attributes are stored under ``"@name"``, repeated children become
lists, leaf elements become their text, and the text of elements that
also have attributes or children is stored under ``"#text"``.
"""

from __future__ import annotations

__all__ = ["XmlMapping", "decode", "element_to_plain", "mapping_for"]

import dataclasses
import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Any, NamedTuple

from webexchange.serialization.shapes import (
    FieldSpec,
    convert,
    dataclass_fields,
    is_plain,
    list_item_shape,
    unwrap_optional,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger: logging.Logger = logging.getLogger(__name__)

# Populated lazily, first writer wins
_MAPPING_CACHE: dict[tuple[type, str], XmlMapping] = {}


class XmlMapping(NamedTuple):
    """Mapping between the elements under a root tag and a dataclass.

    Attributes:
        shape: The dataclass type.
        root_tag: The local name of the root element.
        fields: Field specs keyed by lower-cased local element name.
    """

    shape: type
    root_tag: str
    fields: dict[str, FieldSpec]

    def lookup(self, tag: str) -> FieldSpec | None:
        return self.fields.get(local_name(tag).lower())


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix of an ElementTree tag."""
    return tag.rsplit("}", 1)[-1]


def mapping_for(shape: type, root_tag: str) -> XmlMapping:
    """Return the cached mapping for ``shape`` under ``root_tag``.

    On a miss the mapping is built without locking and published with
    ``dict.setdefault``, so concurrent builders agree on the first one
    stored.
    """
    key = (shape, local_name(root_tag))
    cached = _MAPPING_CACHE.get(key)
    if cached is not None:
        return cached
    logger.debug(f"Building XML mapping for {shape.__name__} with root <{key[1]}>")
    built = XmlMapping(shape=shape, root_tag=key[1], fields=dataclass_fields(shape))
    return _MAPPING_CACHE.setdefault(key, built)


def _is_dataclass_shape(shape: Any) -> bool:
    return isinstance(shape, type) and dataclasses.is_dataclass(shape)


def _is_wrapper(element: ET.Element, item_shape: Any) -> bool:
    children = list(element)
    if not children or len({child.tag for child in children}) != 1:
        return False
    if _is_dataclass_shape(item_shape):
        # a single item whose only field repeats is not a wrapper
        return mapping_for(item_shape, element.tag).lookup(children[0].tag) is None
    return True


def _list_items(matches: list[ET.Element], item_shape: Any) -> Iterable[ET.Element]:
    if len(matches) == 1 and _is_wrapper(matches[0], item_shape):
        return list(matches[0])
    return matches


def _element_data(element: ET.Element, shape: Any) -> Any:
    """Collect the data of ``element`` keyed by the field names of ``shape``."""
    shape = unwrap_optional(shape)
    if is_plain(shape):
        return element_to_plain(element)
    if not _is_dataclass_shape(shape):
        return element.text or ""

    mapping = mapping_for(shape, element.tag)
    data: dict[str, Any] = {}
    for name, value in element.attrib.items():
        field = mapping.lookup(name)
        if field is not None:
            data[field.name] = value

    grouped: dict[str, tuple[FieldSpec, list[ET.Element]]] = {}
    for child in element:
        field = mapping.lookup(child.tag)
        if field is None:
            continue
        grouped.setdefault(field.name, (field, []))[1].append(child)

    for name, (field, matches) in grouped.items():
        item_shape = list_item_shape(field.shape)
        if item_shape is None:
            data[name] = _element_data(matches[0], field.shape)
        else:
            data[name] = [
                _element_data(item, item_shape) for item in _list_items(matches, item_shape)
            ]
    return data


def element_to_plain(element: ET.Element) -> Any:
    """Convert an element into a tree of dicts, lists and strings."""
    children = list(element)
    text = (element.text or "").strip()
    if not children and not element.attrib:
        return element.text or ""

    result: dict[str, Any] = {f"@{local_name(key)}": value for key, value in element.attrib.items()}
    for child in children:
        tag = local_name(child.tag)
        value = element_to_plain(child)
        if tag not in result:
            result[tag] = value
        elif isinstance(result[tag], list):
            result[tag].append(value)
        else:
            result[tag] = [result[tag], value]
    if text:
        result["#text"] = text
    return result


def decode(source: str | bytes, shape: Any = Any) -> Any:
    """Parse an XML document and convert it into ``shape``.

    Args:
        source: The document. Text is parsed as is; bytes are handed to
            the parser, which honors the XML encoding declaration.
        shape: The requested shape: a dataclass, or a plain shape.

    Returns:
        The decoded value. Plain shapes get ``{root_tag: tree}``.

    Raises:
        xml.etree.ElementTree.ParseError: If the document is malformed.
        pydantic.ValidationError: If the collected data does not fit
            ``shape``.

    Example:
        ```pycon
        >>> from dataclasses import dataclass
        >>> from webexchange.serialization import xml_codec
        >>> @dataclass
        ... class Order:
        ...     id: int
        ...     status: str = ""
        ...
        >>> xml_codec.decode('<Order id="7"><Status>open</Status></Order>', Order)
        Order(id=7, status='open')
        >>> xml_codec.decode("<a><b>1</b><b>2</b></a>")
        {'a': {'b': ['1', '2']}}

        ```
    """
    parser = ET.XMLParser()
    parser.feed(source)
    root = parser.close()
    if is_plain(shape):
        return {local_name(root.tag): element_to_plain(root)}
    return convert(_element_data(root, shape), shape)
