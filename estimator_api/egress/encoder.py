"""
Response encoding for estimator output and audit reports.

One entry point, ``encode(value, fmt)``, renders a structured value as JSON,
XML or delimited text. Encoding never mutates its input and never raises for
JSON-compatible values; an empty collection renders as an empty document
(``[]`` in JSON, a childless ``<root type="list"/>`` in XML, an empty body in text).
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Mapping, Sequence

from estimator_api.audit.models import AuditRecord

TEXT_DELIMITER = "\t\t"
XML_ROOT_TAG = "root"
XML_ITEM_TAG = "item"
XML_TYPE_ATTR = "type"
XML_KEY_ATTR = "key"

_XML_NAME_BAD = re.compile(r"[^A-Za-z0-9_.\-]")
_XML_NAME_START = re.compile(r"^[A-Za-z_]")


class ResponseFormat(str, Enum):
    JSON = "json"
    XML = "xml"
    TEXT = "text"

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]


_MEDIA_TYPES = {
    ResponseFormat.JSON: "application/json",
    ResponseFormat.XML: "application/xml",
    ResponseFormat.TEXT: "text/plain; charset=utf-8",
}


@dataclass(frozen=True)
class Encoded:
    body: bytes
    media_type: str


# ---------------------------------- JSON -------------------------------------


def _plain(value: Any) -> Any:
    if isinstance(value, AuditRecord):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def to_json(value: Any) -> bytes:
    text = json.dumps(_plain(value), ensure_ascii=False, allow_nan=False, default=str)
    return text.encode("utf-8")


# ----------------------------------- XML -------------------------------------


def xml_tag(key: Any) -> str:
    """Map an arbitrary mapping key to a valid XML element name."""
    name = _XML_NAME_BAD.sub("_", str(key))
    if not _XML_NAME_START.match(name) or name.lower().startswith("xml"):
        name = "_" + name
    return name


def _xml_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _fill(element: ET.Element, value: Any) -> None:
    # Containers and null carry XML_TYPE_ATTR so [], {} and None stay distinct;
    # a renamed key keeps its original spelling in XML_KEY_ATTR.
    if isinstance(value, Mapping):
        element.set(XML_TYPE_ATTR, "map")
        for key, child in value.items():
            tag = xml_tag(key)
            sub = ET.SubElement(element, tag)
            if tag != str(key):
                sub.set(XML_KEY_ATTR, str(key))
            _fill(sub, child)
    elif isinstance(value, (list, tuple)):
        element.set(XML_TYPE_ATTR, "list")
        for child in value:
            _fill(ET.SubElement(element, XML_ITEM_TAG), child)
    elif value is None:
        element.set(XML_TYPE_ATTR, "null")
    else:
        element.text = _xml_text(value)


def to_xml(value: Any, *, root: str = XML_ROOT_TAG) -> bytes:
    element = ET.Element(root)
    _fill(element, _plain(value))
    return ET.tostring(element, encoding="utf-8", xml_declaration=True)


# ---------------------------------- text -------------------------------------


def format_audit_line(record: AuditRecord) -> str:
    return TEXT_DELIMITER.join(
        [
            record.method or "-",
            record.path,
            str(record.status_code),
            f"{record.duration_ms} ms",
        ]
    )


def _flatten(value: Any, prefix: str = "") -> Iterable[str]:
    if isinstance(value, Mapping):
        for key, child in value.items():
            yield from _flatten(child, f"{prefix}.{key}" if prefix else str(key))
    elif isinstance(value, (list, tuple)):
        for idx, child in enumerate(value):
            yield from _flatten(child, f"{prefix}.{idx}" if prefix else str(idx))
    else:
        yield f"{prefix}\t{'' if value is None else _xml_text(value)}"


def to_text(value: Any) -> bytes:
    if isinstance(value, (list, tuple)) and all(isinstance(v, AuditRecord) for v in value):
        lines: List[str] = [format_audit_line(r) for r in value]
    else:
        lines = list(_flatten(_plain(value)))
    if not lines:
        return b""
    return ("\n".join(lines) + "\n").encode("utf-8")


# --------------------------------- dispatch ----------------------------------


def encode(value: Any, fmt: ResponseFormat = ResponseFormat.JSON) -> Encoded:
    if fmt is ResponseFormat.XML:
        body = to_xml(value)
    elif fmt is ResponseFormat.TEXT:
        body = to_text(value)
    else:
        body = to_json(value)
    return Encoded(body=body, media_type=fmt.media_type)


def encode_records(records: Sequence[AuditRecord], fmt: ResponseFormat) -> Encoded:
    return encode(list(records), fmt)
