"""API document parsers -- load, detect, resolve ``$ref`` pointers, normalize.

This sub-package turns a raw OpenAPI 3.x, Swagger 2.0, Postman or Apifox
document (JSON or YAML, local file, remote URL or stdin) into a
:class:`~apisynth.models.ParsedDocument`.

Typical usage::

    from apisynth.parser import create_default_registry, load_document

    raw = load_document("https://petstore3.swagger.io/api/v3/openapi.json")
    doc = create_default_registry().parse(raw)

Sub-modules:

* :mod:`~apisynth.parser.loader` -- I/O layer (URL, file, stdin, text).
* :mod:`~apisynth.parser.resolver` -- cycle-safe ``$ref`` resolution into
  canonical schemas.
* :mod:`~apisynth.parser.extractor` -- operation walkers shared by the
  OpenAPI-family parsers.
* :mod:`~apisynth.parser.base` -- the :class:`DocumentParser` contract.
* :mod:`~apisynth.parser.openapi_v3`, :mod:`~apisynth.parser.openapi_v2`,
  :mod:`~apisynth.parser.postman`, :mod:`~apisynth.parser.apifox` -- one
  parser per format.
* :mod:`~apisynth.parser.registry` -- format detection and the registry.
"""

from apisynth.parser.base import DocumentParser
from apisynth.parser.loader import load_document, parse_text
from apisynth.parser.registry import (
    ParserRegistry,
    create_default_registry,
    detect_format,
    detect_text,
)
from apisynth.parser.resolver import resolve

__all__ = [
    "DocumentParser",
    "ParserRegistry",
    "create_default_registry",
    "detect_format",
    "detect_text",
    "load_document",
    "parse_text",
    "resolve",
]
