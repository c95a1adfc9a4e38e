"""XML reader/writer for configuration.xml documents.

A configuration is a pydantic model. Each field becomes a child element;
``None`` is written as an empty element marked ``nil="true"``. Lists are
tagged ``kind="list"`` with one ``<item>`` per element and mappings (nested
models included) ``kind="map"`` with one ``<entry key="...">`` per key, so
keys need not be XML names and empty containers survive a round trip.
"""

from __future__ import annotations

from typing import IO, Any, TypeVar

from lxml import etree
from pydantic import BaseModel

_M = TypeVar("_M", bound=BaseModel)

_LIST_KIND = "list"
_MAP_KIND = "map"
_ITEM_TAG = "item"
_ENTRY_TAG = "entry"
_KEY_ATTRIBUTE = "key"
_NIL_ATTRIBUTE = "nil"


def xml_tag_for(configuration_class: type[BaseModel]) -> str:
    return getattr(configuration_class, "xml_tag", "configuration")


def _write_value(parent: etree._Element, tag: str, value: Any) -> etree._Element:
    element = etree.SubElement(parent, tag)
    if value is None:
        element.set(_NIL_ATTRIBUTE, "true")
    elif isinstance(value, dict):
        element.set("kind", _MAP_KIND)
        for key, item in value.items():
            entry = _write_value(element, _ENTRY_TAG, item)
            entry.set(_KEY_ATTRIBUTE, str(key))
    elif isinstance(value, (list, tuple)):
        element.set("kind", _LIST_KIND)
        for item in value:
            _write_value(element, _ITEM_TAG, item)
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)
    return element


def _read_value(element: etree._Element) -> Any:
    if element.get(_NIL_ATTRIBUTE) == "true":
        return None
    children = [child for child in element if isinstance(child.tag, str)]
    kind = element.get("kind")
    if kind == _LIST_KIND:
        return [_read_value(child) for child in children]
    if kind == _MAP_KIND:
        return {child.get(_KEY_ATTRIBUTE, child.tag): _read_value(child) for child in children}
    if children:
        return {child.tag: _read_value(child) for child in children}
    return element.text or ""


def serialize_configuration(configuration: BaseModel) -> bytes:
    """Serialize a configuration model to a pretty-printed document.

    Raises ValueError if a value cannot be represented in XML (control
    characters, for instance).
    """
    root = etree.Element(xml_tag_for(type(configuration)))
    data = configuration.model_dump(mode="json")
    for name, value in data.items():
        _write_value(root, name, value)
    return etree.tostring(root, pretty_print=True, xml_declaration=True, encoding="UTF-8")


def parse_configuration(source: IO[bytes] | bytes, configuration_class: type[_M]) -> _M:
    """Parse a configuration document into an instance of ``configuration_class``.

    Raises ``etree.XMLSyntaxError`` for malformed XML and ``ValueError``
    (including pydantic's ``ValidationError``) when the document does not
    describe the expected class.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    if isinstance(source, bytes):
        root = etree.fromstring(source, parser)
    else:
        root = etree.parse(source, parser).getroot()
    expected_tag = xml_tag_for(configuration_class)
    if root.tag != expected_tag:
        msg = f"Expected <{expected_tag}> root element, got <{root.tag}>"
        raise ValueError(msg)
    data = {child.tag: _read_value(child) for child in root if isinstance(child.tag, str)}
    return configuration_class.model_validate(data)
