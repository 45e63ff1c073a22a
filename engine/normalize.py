"""
Record normalization: strips bulky metadata arrays and flattens JSON or XML
documents embedded in a free-text message into dotted attributes so they can be
queried and aggregated like any other field.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional

from config import NOISY_FIELDS
from engine.records import LogRecord, ResultSet

log = logging.getLogger(__name__)

PARSED_PREFIX = "message_parsed"

_JSON_RE = re.compile(r"\{.*\}|\[.*\]", re.S)
_XML_RE = re.compile(r"<([A-Za-z_][\w.\-]*)(?:\s[^<>]*)?>.*?</\1\s*>", re.S)


def _flatten(value: Any, prefix: str, out: Dict[str, Any]) -> None:
    if isinstance(value, dict):
        for key, child in value.items():
            _flatten(child, f"{prefix}.{key}", out)
    elif isinstance(value, list):
        out[prefix] = json.dumps(value, separators=(",", ":"), sort_keys=False)
    else:
        out[prefix] = value


def _parse_json(message: str) -> Optional[Any]:
    match = _JSON_RE.search(message)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except ValueError as exc:
        log.debug("embedded json not parseable: %s", exc)
        return None
    return parsed if isinstance(parsed, (dict, list)) else None


def _element_to_value(element: ET.Element) -> Any:
    children = list(element)
    if not children and not element.attrib:
        return (element.text or "").strip()

    node: Dict[str, Any] = {f"@{k}": v for k, v in element.attrib.items()}
    for child in children:
        value = _element_to_value(child)
        if child.tag in node:
            existing = node[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[child.tag] = [existing, value]
        else:
            node[child.tag] = value
    text = (element.text or "").strip()
    if text:
        node["#text"] = text
    return node


def _parse_xml(message: str) -> Optional[Dict[str, Any]]:
    match = _XML_RE.search(message)
    if not match:
        return None
    try:
        root = ET.fromstring(match.group(0))
    except ET.ParseError as exc:
        log.debug("embedded xml not parseable: %s", exc)
        return None
    return {root.tag: _element_to_value(root)}


def parse_embedded(message: Any) -> Dict[str, Any]:
    """Return flattened ``message_parsed.*`` attributes, or ``{}`` when the
    message carries no parseable JSON or XML document.

    JSON is attempted before XML and the first successful parse wins.
    """
    if not isinstance(message, str) or not message:
        return {}

    parsed = _parse_json(message)
    if parsed is None:
        parsed = _parse_xml(message)
    if parsed is None:
        return {}

    out: Dict[str, Any] = {}
    _flatten(parsed, PARSED_PREFIX, out)
    return out


def strip_noise(attributes: Dict[str, Any], include_tags: bool = False) -> Dict[str, Any]:
    if include_tags:
        return dict(attributes)
    return {k: v for k, v in attributes.items() if k not in NOISY_FIELDS}


def normalize(record: LogRecord, include_tags: bool = False) -> LogRecord:
    attrs = strip_noise(dict(record.attributes), include_tags=include_tags)
    attrs.update(parse_embedded(attrs.get("message")))
    return LogRecord(id=record.id, attributes=attrs)


def normalize_all(result_set: ResultSet, include_tags: bool = False) -> ResultSet:
    return result_set.with_records(normalize(r, include_tags=include_tags) for r in result_set)
