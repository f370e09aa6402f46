"""Tests for apisynth.parser.registry -- format detection and dispatch."""

from __future__ import annotations

import json
from typing import Any

import pytest

from apisynth.exceptions import UnsupportedFormatError
from apisynth.models import DocumentFormat
from apisynth.parser.openapi_v3 import OpenAPIV3Parser
from apisynth.parser.registry import (
    ParserRegistry,
    create_default_registry,
    detect_format,
    detect_text,
    has_vendor_extension,
)


class TestDetectFormat:
    def test_fixtures(
        self,
        petstore_raw: dict[str, Any],
        swagger_raw: dict[str, Any],
        postman_raw: dict[str, Any],
        apifox_raw: dict[str, Any],
    ) -> None:
        assert detect_format(petstore_raw) == DocumentFormat.OPENAPI
        assert detect_format(swagger_raw) == DocumentFormat.SWAGGER
        assert detect_format(postman_raw) == DocumentFormat.POSTMAN
        assert detect_format(apifox_raw) == DocumentFormat.APIFOX

    def test_operation_level_vendor_key(self) -> None:
        raw = {"openapi": "3.0.0", "paths": {"/a": {"get": {"x-apifox-status": "done"}}}}
        assert has_vendor_extension(raw)
        assert detect_format(raw) == DocumentFormat.APIFOX

    def test_other_extensions_stay_openapi(self) -> None:
        raw = {"openapi": "3.1.0", "x-logo": {}, "paths": {"/a": {"get": {"x-internal": True}}}}
        assert detect_format(raw) == DocumentFormat.OPENAPI

    def test_unrecognised(self) -> None:
        with pytest.raises(UnsupportedFormatError, match="unrecognised document format"):
            detect_format({"name": "nothing"})

    def test_non_object(self) -> None:
        with pytest.raises(UnsupportedFormatError, match="list document"):
            detect_format([1, 2])

    def test_detect_text_yaml(self) -> None:
        assert detect_text("swagger: '2.0'\npaths: {}\n") == DocumentFormat.SWAGGER

    def test_detect_text_json(self, postman_raw: dict[str, Any]) -> None:
        assert detect_text(json.dumps(postman_raw)) == DocumentFormat.POSTMAN


class TestParserRegistry:
    def test_default_formats(self) -> None:
        registry = create_default_registry()
        assert registry.formats() == [
            DocumentFormat.OPENAPI,
            DocumentFormat.SWAGGER,
            DocumentFormat.POSTMAN,
            DocumentFormat.APIFOX,
        ]

    def test_get_parser_by_string(self) -> None:
        parser = create_default_registry().get_parser("openapi")
        assert isinstance(parser, OpenAPIV3Parser)

    def test_registry_passes_depth(self) -> None:
        registry = create_default_registry(max_ref_depth=7)
        assert registry.get_parser(DocumentFormat.SWAGGER).max_ref_depth == 7

    def test_unknown_format_name(self) -> None:
        with pytest.raises(UnsupportedFormatError, match="unknown document format"):
            create_default_registry().get_parser("raml")

    def test_unregistered_format(self) -> None:
        with pytest.raises(UnsupportedFormatError, match="no parser registered"):
            ParserRegistry().get_parser(DocumentFormat.POSTMAN)

    def test_register_replaces(self) -> None:
        registry = ParserRegistry()
        first, second = OpenAPIV3Parser(), OpenAPIV3Parser()
        registry.register(first)
        registry.register(second)
        assert registry.get_parser("openapi") is second

    def test_parse_auto_detects(
        self, swagger_raw: dict[str, Any], postman_raw: dict[str, Any]
    ) -> None:
        registry = create_default_registry()
        assert registry.parse(swagger_raw).format == DocumentFormat.SWAGGER
        assert registry.parse(postman_raw).format == DocumentFormat.POSTMAN

    def test_parse_explicit_format(self, apifox_raw: dict[str, Any]) -> None:
        doc = create_default_registry().parse(apifox_raw, format="openapi")
        assert doc.format == DocumentFormat.OPENAPI
