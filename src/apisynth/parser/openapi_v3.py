"""OpenAPI 3.x parser.

Turns an OpenAPI 3.0/3.1 document into a
:class:`~apisynth.models.ParsedDocument`.  Every schema reached from an
operation goes through :func:`~apisynth.parser.resolver.resolve`, so the
resulting endpoints carry no ``$ref`` pointers.

Example::

    raw = load_document("petstore.yaml")
    doc = OpenAPIV3Parser().parse_document(raw, source="petstore.yaml")
    for endpoint in doc.endpoints:
        print(endpoint.method.value, endpoint.path)
"""

from __future__ import annotations

import functools
import logging
import re
from typing import Any, Optional

from apisynth.exceptions import ParseError
from apisynth.models import (
    DocumentFormat,
    Endpoint,
    Example,
    HTTPMethod,
    ParsedDocument,
    Schema,
)
from apisynth.parser.base import DocumentParser
from apisynth.parser.extractor import (
    deref_list,
    extract_examples,
    group_parameters,
    iter_operations,
    merge_parameters,
    pick_media_type,
)
from apisynth.parser.resolver import deref, resolve

logger = logging.getLogger(__name__)

_SERVER_VARIABLE = re.compile(r"\{([^}]+)\}")


def validate_openapi_version(raw: dict[str, Any], source: Optional[str] = None) -> str:
    """Return the ``openapi`` version string of a 3.x document.

    Raises:
        ParseError: If the field is missing, names a non-3.x version, or the
            document is Swagger 2.0.
    """
    if "swagger" in raw:
        raise ParseError(
            f"Swagger {raw['swagger']} document given to the OpenAPI 3 parser",
            source=source,
        )

    version = raw.get("openapi")
    if version is None:
        raise ParseError("missing 'openapi' field; is this an OpenAPI 3.x document?", source=source)

    version_str = str(version)
    if not version_str.startswith("3."):
        raise ParseError(f"unsupported OpenAPI version: {version_str}", source=source)
    return version_str


def server_base_url(raw: dict[str, Any]) -> str:
    """Return ``servers[0].url`` with ``{var}`` placeholders filled in.

    Each placeholder is replaced by its variable's ``default``; unknown
    variables are left untouched.  A trailing slash is removed.
    """
    servers = raw.get("servers")
    if not isinstance(servers, list) or not servers or not isinstance(servers[0], dict):
        return ""

    server = servers[0]
    url = str(server.get("url", ""))
    variables = server.get("variables") or {}

    def _substitute(match: re.Match[str]) -> str:
        var = variables.get(match.group(1))
        if isinstance(var, dict) and "default" in var:
            return str(var["default"])
        return match.group(0)

    return _SERVER_VARIABLE.sub(_substitute, url).rstrip("/")


class OpenAPIV3Parser(DocumentParser):
    """Parser for ``openapi: 3.x`` documents."""

    format = DocumentFormat.OPENAPI

    def parse_document(
        self, raw: dict[str, Any], source: Optional[str] = None
    ) -> ParsedDocument:
        version = validate_openapi_version(raw, source)
        logger.debug("Parsing OpenAPI %s document from %s", version, source or "<memory>")

        info = raw.get("info") if isinstance(raw.get("info"), dict) else {}

        builders = [
            (path, method, functools.partial(self._build_endpoint, raw, path, method, item, op))
            for path, method, item, op in iter_operations(raw, source)
        ]

        return ParsedDocument(
            title=str(info.get("title") or "Untitled API"),
            version=str(info.get("version") or "0.0.0"),
            description=info.get("description"),
            base_url=server_base_url(raw),
            format=self.format,
            endpoints=self.collect(builders),
            schemas=self._component_schemas(raw),
        )

    def _component_schemas(self, raw: dict[str, Any]) -> dict[str, Schema]:
        components = raw.get("components") or {}
        schemas = components.get("schemas") if isinstance(components, dict) else None
        if not isinstance(schemas, dict):
            return {}
        return {
            name: resolve(_component_pointer(name), raw, max_depth=self.max_ref_depth)
            for name in schemas
        }

    def _build_endpoint(
        self,
        raw: dict[str, Any],
        path: str,
        method: str,
        path_item: dict[str, Any],
        operation: dict[str, Any],
    ) -> Endpoint:
        params = merge_parameters(
            deref_list(path_item.get("parameters"), raw),
            deref_list(operation.get("parameters"), raw),
        )
        parameters = group_parameters(
            params, raw, lambda p: p.get("schema"), self.max_ref_depth
        )

        request_schema: Optional[Schema] = None
        request_content_type: Optional[str] = None
        request_examples: list[Example] = []

        body = deref(operation.get("requestBody"), raw)
        if isinstance(body, dict) and body:
            request_content_type, media = pick_media_type(body.get("content"))
            if "schema" in media:
                request_schema = resolve(media["schema"], raw, max_depth=self.max_ref_depth)
            request_examples = extract_examples(media, raw, request_content_type)
            if not request_examples and request_schema is not None and request_schema.has_example:
                request_examples.append(
                    Example(
                        name="schema",
                        content_type=request_content_type,
                        value=request_schema.example,
                    )
                )

        response_schemas: dict[str, Optional[Schema]] = {}
        response_examples: list[Example] = []

        responses = operation.get("responses") or {}
        for status_code, response in responses.items():
            response = deref(response, raw)
            if not isinstance(response, dict):
                continue
            status = str(status_code)
            content_type, media = pick_media_type(response.get("content"))
            response_schemas[status] = (
                resolve(media["schema"], raw, max_depth=self.max_ref_depth)
                if "schema" in media
                else None
            )
            response_examples.extend(extract_examples(media, raw, content_type, status))

        return Endpoint(
            path=path,
            method=HTTPMethod(method.upper()),
            summary=operation.get("summary"),
            description=operation.get("description"),
            parameters=parameters,
            request_schema=request_schema,
            request_content_type=request_content_type,
            response_schemas=response_schemas,
            request_examples=request_examples,
            response_examples=response_examples,
        )


def _component_pointer(name: str) -> str:
    escaped = name.replace("~", "~0").replace("/", "~1")
    return f"#/components/schemas/{escaped}"
