"""Format detection and the parser registry.

:func:`detect_format` classifies an already-loaded document;
:class:`ParserRegistry` maps each :class:`~apisynth.models.DocumentFormat`
to a parser instance.  Registries are plain values: build one with
:func:`create_default_registry` and pass it where it is needed.

Example::

    registry = create_default_registry()
    doc = registry.parse(load_document("collection.json"))
    print(doc.format)   # DocumentFormat.POSTMAN
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from apisynth.exceptions import UnsupportedFormatError
from apisynth.models import DocumentFormat, MockDataOptions, ParsedDocument
from apisynth.parser.apifox import ApifoxParser, is_vendor_key
from apisynth.parser.base import DocumentParser
from apisynth.parser.extractor import HTTP_METHODS
from apisynth.parser.loader import parse_text
from apisynth.parser.openapi_v2 import OpenAPIV2Parser
from apisynth.parser.openapi_v3 import OpenAPIV3Parser
from apisynth.parser.postman import PostmanParser
from apisynth.parser.resolver import DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)


def has_vendor_extension(data: dict[str, Any]) -> bool:
    """True when Apifox vendor keys appear at the top level or on any operation."""
    if any(is_vendor_key(key) for key in data):
        return True
    paths = data.get("paths")
    if not isinstance(paths, dict):
        return False
    for path_item in paths.values():
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if isinstance(operation, dict) and any(is_vendor_key(k) for k in operation):
                return True
    return False


def detect_format(data: Any) -> DocumentFormat:
    """Classify a loaded document.

    Checked in order: OpenAPI 3.x without vendor keys, Swagger, Postman
    (``info`` plus ``item``), then Apifox (vendor keys present).

    Raises:
        UnsupportedFormatError: If none of the checks match.
    """
    if not isinstance(data, dict):
        raise UnsupportedFormatError(
            f"cannot detect format of a {type(data).__name__} document"
        )

    vendor = has_vendor_extension(data)
    if str(data.get("openapi", "")).startswith("3.") and not vendor:
        return DocumentFormat.OPENAPI
    if "swagger" in data:
        return DocumentFormat.SWAGGER
    if "info" in data and "item" in data:
        return DocumentFormat.POSTMAN
    if vendor:
        return DocumentFormat.APIFOX

    raise UnsupportedFormatError(
        "unrecognised document format: expected an OpenAPI 3.x, Swagger 2.0, "
        "Postman or Apifox document"
    )


def detect_text(text: str, source: Optional[str] = None) -> DocumentFormat:
    """Parse *text* (JSON first, then YAML) and classify it."""
    return detect_format(parse_text(text, source=source))


class ParserRegistry:
    """Holds one parser per :class:`DocumentFormat`."""

    def __init__(self) -> None:
        self._parsers: dict[DocumentFormat, DocumentParser] = {}

    def register(self, parser: DocumentParser) -> None:
        """Register *parser* for its ``format``, replacing any earlier one."""
        if parser.format in self._parsers:
            logger.debug("Replacing parser for %s", parser.format.value)
        self._parsers[parser.format] = parser

    def get_parser(self, format: DocumentFormat | str) -> DocumentParser:
        """Return the parser registered for *format*.

        Raises:
            UnsupportedFormatError: If no parser is registered for it.
        """
        try:
            key = DocumentFormat(format)
        except ValueError as exc:
            raise UnsupportedFormatError(f"unknown document format: {format}") from exc

        parser = self._parsers.get(key)
        if parser is None:
            raise UnsupportedFormatError(f"no parser registered for format '{key.value}'")
        return parser

    def formats(self) -> list[DocumentFormat]:
        return list(self._parsers)

    def parse(
        self,
        raw: dict[str, Any],
        format: DocumentFormat | str = DocumentFormat.AUTO,
        source: Optional[str] = None,
    ) -> ParsedDocument:
        """Parse *raw* with the parser for *format*, detecting it when ``auto``."""
        try:
            fmt = DocumentFormat(format)
        except ValueError as exc:
            raise UnsupportedFormatError(f"unknown document format: {format}") from exc
        if fmt is DocumentFormat.AUTO:
            fmt = detect_format(raw)
            logger.debug("Detected %s format for %s", fmt.value, source or "<memory>")
        return self.get_parser(fmt).parse_document(raw, source=source)


def create_default_registry(
    options: Optional[MockDataOptions] = None,
    max_ref_depth: int = DEFAULT_MAX_DEPTH,
) -> ParserRegistry:
    """Build a fresh registry holding the four built-in parsers."""
    registry = ParserRegistry()
    for parser_cls in (OpenAPIV3Parser, OpenAPIV2Parser, PostmanParser, ApifoxParser):
        registry.register(parser_cls(options=options, max_ref_depth=max_ref_depth))
    return registry
