from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl

from estimator_api.audit.models import AuditStore
from estimator_api.egress.encoder import Encoded, ResponseFormat, encode, encode_records
from estimator_api.errors import DecodeFault, EncodeFault, EstimationFault
from estimator_api.services.estimator import Estimator

REPORT_FORMAT = ResponseFormat.TEXT
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"

# region[avgAge] -> ("region", "[avgAge]"); tags[] -> ("tags", "[]")
_FORM_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_FORM_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not JSON")


def decode_json(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8") if raw else "null", parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError) as exc:
        raise DecodeFault("request body is not valid JSON") from exc


def _form_path(key: str) -> List[str]:
    m = _FORM_KEY.match(key)
    if not m:
        return [key]
    return [m.group(1), *_FORM_SEGMENT.findall(m.group(2))]


def _assign(target: Dict[str, Any], path: List[str], value: str, key: str) -> None:
    head, rest = path[0], path[1:]
    if not rest:
        if head not in target:
            target[head] = value
        elif isinstance(target[head], list):
            target[head].append(value)
        elif isinstance(target[head], dict):
            raise DecodeFault(f"form field {key!r} conflicts with a nested field")
        else:
            target[head] = [target[head], value]
        return
    if rest == [""]:
        items = target.setdefault(head, [])
        if not isinstance(items, list):
            raise DecodeFault(f"form field {key!r} conflicts with a scalar field")
        items.append(value)
        return
    if "" in rest:
        raise DecodeFault(f"form field {key!r} nests inside a list")
    child = target.setdefault(head, {})
    if not isinstance(child, dict):
        raise DecodeFault(f"form field {key!r} conflicts with a scalar field")
    _assign(child, rest, value, key)


def decode_form(raw: bytes) -> Dict[str, Any]:
    """Decode an urlencoded body, nesting ``a[b]`` keys into mappings and ``a[]`` into lists."""
    try:
        pairs = parse_qsl(raw.decode("utf-8"), keep_blank_values=True)
    except UnicodeDecodeError as exc:
        raise DecodeFault("form body is not valid UTF-8") from exc
    data: Dict[str, Any] = {}
    for key, value in pairs:
        _assign(data, _form_path(key), value, key)
    return data


def decode_body(raw: bytes, content_type: Optional[str] = None) -> Any:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type == FORM_MEDIA_TYPE:
        return decode_form(raw)
    return decode_json(raw)


def _encode(value: Any, fmt: ResponseFormat) -> Encoded:
    try:
        return encode(value, fmt)
    except Exception as exc:
        raise EncodeFault(f"cannot render value as {fmt.value}") from exc


def run_estimate(
    raw_body: bytes,
    estimator: Estimator,
    fmt: ResponseFormat,
    content_type: Optional[str] = None,
) -> Encoded:
    """Decode the body, hand it to the estimator as-is, encode the output."""
    data = decode_body(raw_body, content_type)
    try:
        output = estimator(data)
    except Exception as exc:
        raise EstimationFault(f"estimator failed: {type(exc).__name__}") from exc
    return _encode(output, fmt)


async def render_audit_report(store: AuditStore, fmt: ResponseFormat = REPORT_FORMAT) -> Encoded:
    records = await store.read_all()
    try:
        return encode_records(records, fmt)
    except Exception as exc:
        raise EncodeFault(f"cannot render audit report as {fmt.value}") from exc
