"""Apifox export parser.

Apifox exports are OpenAPI 3.x documents decorated with vendor keys
(``apifoxExtension`` and friends, plus ``x-apifox-*`` annotations).  The
parser strips those keys from a deep copy of the document and hands the
result to the OpenAPI 3 parser in memory.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

from apisynth.models import DocumentFormat, ParsedDocument
from apisynth.parser.openapi_v3 import OpenAPIV3Parser

logger = logging.getLogger(__name__)

_COMPOSITES = ("allOf", "anyOf", "oneOf")


def is_vendor_key(key: Any) -> bool:
    """True for Apifox vendor keys: ``*Extension`` and ``x-apifox*``."""
    return isinstance(key, str) and (key.endswith("Extension") or key.startswith("x-apifox"))


def strip_vendor_keys(raw: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *raw* without Apifox vendor keys.

    Keys are removed at the document level, on every operation, on request
    and response media objects, on ``components.schemas`` and inside every
    schema reached from those places.  The input is left untouched.
    """
    doc = copy.deepcopy(raw)
    _drop(doc)

    for path_item in (doc.get("paths") or {}).values():
        if not isinstance(path_item, dict):
            continue
        _drop(path_item)
        for operation in path_item.values():
            if not isinstance(operation, dict):
                continue
            _drop(operation)
            body = operation.get("requestBody")
            if isinstance(body, dict):
                _drop(body)
                _clean_content(body.get("content"))
            for response in (operation.get("responses") or {}).values():
                if isinstance(response, dict):
                    _drop(response)
                    _clean_content(response.get("content"))
            for param in operation.get("parameters") or []:
                if isinstance(param, dict):
                    _drop(param)
                    _clean_schema(param.get("schema"))

    components = doc.get("components")
    if isinstance(components, dict):
        _drop(components)
        for schema in (components.get("schemas") or {}).values():
            _clean_schema(schema)

    return doc


def _drop(node: dict[str, Any]) -> None:
    for key in [k for k in node if is_vendor_key(k)]:
        del node[key]


def _clean_content(content: Any) -> None:
    if not isinstance(content, dict):
        return
    for media in content.values():
        if isinstance(media, dict):
            _drop(media)
            _clean_schema(media.get("schema"))


def _clean_schema(schema: Any) -> None:
    if not isinstance(schema, dict):
        return
    _drop(schema)
    properties = schema.get("properties")
    if isinstance(properties, dict):
        for prop in properties.values():
            _clean_schema(prop)
    _clean_schema(schema.get("items"))
    for key in _COMPOSITES:
        members = schema.get(key)
        if isinstance(members, list):
            for member in members:
                _clean_schema(member)


class ApifoxParser(OpenAPIV3Parser):
    """Parser for Apifox's OpenAPI dialect."""

    format = DocumentFormat.APIFOX

    def parse_document(
        self, raw: dict[str, Any], source: Optional[str] = None
    ) -> ParsedDocument:
        cleaned = strip_vendor_keys(raw)
        logger.debug("Stripped Apifox vendor keys from %s", source or "<memory>")
        return super().parse_document(cleaned, source)
