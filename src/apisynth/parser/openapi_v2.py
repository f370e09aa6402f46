"""Swagger 2.0 parser.

Swagger differs from OpenAPI 3 in where things live: the base URL is split
into ``schemes``/``host``/``basePath``, the request body is an ``in: body``
parameter (or a set of ``in: formData`` parameters), responses carry
``schema`` directly, and reusable schemas sit under ``definitions``.
"""

from __future__ import annotations

import functools
import logging
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
)
from apisynth.parser.resolver import deref, resolve

logger = logging.getLogger(__name__)

# Parameter keys that are not part of the inline schema.
_PARAM_ONLY_KEYS = frozenset({"name", "in", "required", "description", "allowEmptyValue"})


def validate_swagger_version(raw: dict[str, Any], source: Optional[str] = None) -> str:
    """Return the ``swagger`` version string of a 2.x document.

    Raises:
        ParseError: If the field is missing or does not name a 2.x version.
    """
    version = raw.get("swagger")
    if version is None:
        raise ParseError("missing 'swagger' field; is this a Swagger 2.0 document?", source=source)
    version_str = str(version)
    if not version_str.startswith("2."):
        raise ParseError(f"unsupported Swagger version: {version_str}", source=source)
    return version_str


def swagger_base_url(raw: dict[str, Any]) -> str:
    """Build ``scheme://host/basePath``; the scheme defaults to ``https``."""
    host = raw.get("host")
    base_path = str(raw.get("basePath") or "")
    if not host:
        return base_path.rstrip("/")

    schemes = raw.get("schemes")
    scheme = schemes[0] if isinstance(schemes, list) and schemes else "https"
    return f"{scheme}://{host}{base_path}".rstrip("/")


def _inline_schema(param: dict[str, Any]) -> Optional[dict[str, Any]]:
    schema = {k: v for k, v in param.items() if k not in _PARAM_ONLY_KEYS}
    return schema or None


class OpenAPIV2Parser(DocumentParser):
    """Parser for ``swagger: "2.0"`` documents."""

    format = DocumentFormat.SWAGGER

    def parse_document(
        self, raw: dict[str, Any], source: Optional[str] = None
    ) -> ParsedDocument:
        version = validate_swagger_version(raw, source)
        logger.debug("Parsing Swagger %s document from %s", version, source or "<memory>")

        info = raw.get("info") if isinstance(raw.get("info"), dict) else {}

        builders = [
            (path, method, functools.partial(self._build_endpoint, raw, path, method, item, op))
            for path, method, item, op in iter_operations(raw, source)
        ]

        definitions = raw.get("definitions")
        schemas: dict[str, Schema] = {}
        if isinstance(definitions, dict):
            for name in definitions:
                pointer = "#/definitions/" + name.replace("~", "~0").replace("/", "~1")
                schemas[name] = resolve(pointer, raw, max_depth=self.max_ref_depth)

        return ParsedDocument(
            title=str(info.get("title") or "Untitled API"),
            version=str(info.get("version") or "0.0.0"),
            description=info.get("description"),
            base_url=swagger_base_url(raw),
            format=self.format,
            endpoints=self.collect(builders),
            schemas=schemas,
        )

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
        parameters = group_parameters(params, raw, _inline_schema, self.max_ref_depth)

        consumes = operation.get("consumes") or raw.get("consumes") or []
        produces = operation.get("produces") or raw.get("produces") or []

        request_schema: Optional[Schema] = None
        request_content_type: Optional[str] = None
        request_examples: list[Example] = []

        body_param = next((p for p in params if p.get("in") == "body"), None)
        form_params = [p for p in params if p.get("in") == "formData"]

        if body_param is not None:
            request_content_type = _preferred(consumes, "application/json")
            if "schema" in body_param:
                request_schema = resolve(body_param["schema"], raw, max_depth=self.max_ref_depth)
            request_examples = extract_examples(body_param, raw, request_content_type)
            if not request_examples and request_schema is not None and request_schema.has_example:
                request_examples.append(
                    Example(
                        name="schema",
                        content_type=request_content_type,
                        value=request_schema.example,
                    )
                )
        elif form_params:
            request_content_type = _preferred(consumes, "application/x-www-form-urlencoded")
            form_schema = {
                "type": "object",
                "properties": {p["name"]: _inline_schema(p) or {} for p in form_params if p.get("name")},
                "required": [p["name"] for p in form_params if p.get("required") and p.get("name")],
            }
            request_schema = resolve(form_schema, raw, max_depth=self.max_ref_depth)

        response_content_type = _preferred(produces, "application/json")
        response_schemas: dict[str, Optional[Schema]] = {}
        response_examples: list[Example] = []

        for status_code, response in (operation.get("responses") or {}).items():
            response = deref(response, raw)
            if not isinstance(response, dict):
                continue
            status = str(status_code)
            response_schemas[status] = (
                resolve(response["schema"], raw, max_depth=self.max_ref_depth)
                if isinstance(response.get("schema"), dict)
                else None
            )
            # Swagger response examples are keyed by mime type.
            if isinstance(response.get("examples"), dict):
                response_examples.extend(extract_examples(response, raw, None, status))
            elif "example" in response:
                response_examples.append(
                    Example(
                        content_type=response_content_type,
                        status_code=status,
                        value=response["example"],
                    )
                )

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


def _preferred(media_types: Any, fallback: str) -> str:
    if not isinstance(media_types, list) or not media_types:
        return fallback
    for media_type in media_types:
        if "json" in str(media_type):
            return str(media_type)
    return str(media_types[0])
