"""
XML codec for the document-embedded citation block.

The block is a generic element tree: an element with children becomes a
dict, a leaf becomes its text, and a repeated child name becomes a list.
That mapping cannot tell a one-element list from a scalar, so every parsed
tree goes through ``normalize_store_tree`` before anything else reads it.

Layout::

    <ZoteroCitations xmlns="http://zotero.org/citations">
      <citations>
        <citation><key>ABCD1234</key><title>...</title>
          <creators><creatorType>author</creatorType><lastName>...</lastName></creators>
          ...
        </citation>
      </citations>
      <version>1</version>
    </ZoteroCitations>
"""
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)

_XML_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")

# Characters XML 1.0 cannot carry, not even as character references
_XML_ILLEGAL = re.compile("[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")
_XML_SPACES = "\x0b\x0c"

# Record fields that are sequences even when the tree holds a single value
REPEATABLE_FIELDS = ("creators", "tags", "collections")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def element_to_tree(element: ET.Element) -> Any:
    """Map an element to nested dicts/lists/strings."""
    children = list(element)
    if not children:
        return element.text or ""

    tree: Dict[str, Any] = {}
    for child in children:
        name = _local_name(child.tag)
        value = element_to_tree(child)
        if name not in tree:
            tree[name] = value
        elif isinstance(tree[name], list):
            tree[name].append(value)
        else:
            tree[name] = [tree[name], value]
    return tree


def as_list(value: Any) -> List[Any]:
    """Wrap a scalar in a list; missing or empty values become []."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def normalize_store_tree(tree: Any) -> Dict[str, Any]:
    """
    Normalize a parsed store tree.

    Returns a dict with ``citations`` (list of record dicts) and ``version``.
    The record list and each record's repeatable fields are always lists, and
    every record key is a string.
    """
    store = tree if isinstance(tree, dict) else {}
    citations = store.get("citations")
    raw_records = as_list(citations.get("citation")) if isinstance(citations, dict) else []

    records = []
    for raw in raw_records:
        if not isinstance(raw, dict):
            logger.warning("Skipping citation entry without fields")
            continue
        record = dict(raw)
        if "key" in record:
            record["key"] = str(record["key"])
        for name in REPEATABLE_FIELDS:
            record[name] = as_list(record.get(name))
        records.append(record)

    return {"citations": records, "version": store.get("version", "")}


def parse_store(xml: Union[str, bytes], namespace: str, root_name: str) -> Dict[str, Any]:
    """
    Parse a persisted block into its normalized form.

    Raises:
        ET.ParseError: If the payload is not well-formed XML
        ValueError: If the root element is not the citation block
    """
    root = ET.fromstring(xml)
    expected = f"{{{namespace}}}{root_name}"
    if root.tag != expected:
        raise ValueError(f"Unexpected root element {root.tag}, expected {expected}")
    return normalize_store_tree(element_to_tree(root))


def _xml_text(value: Any) -> str:
    """Text safe for an XML 1.0 element; vertical tab and form feed become spaces."""
    text = str(value)
    cleaned = _XML_ILLEGAL.sub(lambda m: " " if m.group() in _XML_SPACES else "", text)
    if cleaned != text:
        logger.warning("Replaced characters not allowed in XML in a citation field")
    return cleaned


def _append_value(parent: ET.Element, namespace: str, name: str, value: Any) -> None:
    if not _XML_NAME.match(name):
        logger.warning(f"Skipping field with invalid XML name: {name!r}")
        return
    if isinstance(value, list):
        for item in value:
            _append_value(parent, namespace, name, item)
        return

    child = ET.SubElement(parent, f"{{{namespace}}}{name}")
    if isinstance(value, dict):
        for sub_name, sub_value in value.items():
            _append_value(child, namespace, sub_name, sub_value)
    elif value is not None:
        child.text = _xml_text(value)


def build_store(records: List[Dict[str, Any]], namespace: str, root_name: str,
                version: int) -> bytes:
    """Serialize record dicts into a complete block, XML declaration included."""
    root = ET.Element(f"{{{namespace}}}{root_name}")
    citations = ET.SubElement(root, f"{{{namespace}}}citations")
    for record in records:
        _append_value(citations, namespace, "citation", record)
    ET.SubElement(root, f"{{{namespace}}}version").text = str(version)
    xml = ET.tostring(root, encoding="utf-8", xml_declaration=True, default_namespace=namespace)
    # A raw CR would be read back as LF
    return xml.replace(b"\r", b"&#13;")
