"""Postman Collection v2.x parser.

Postman collections describe requests rather than schemas, so structure is
inferred from the saved bodies: a raw JSON body becomes an object schema
whose property types are the JSON types of the sample values, and saved
responses provide both response schemas and examples.

Folders nest ``item`` arrays to any depth; only leaves with a ``request``
become endpoints.  Path segments written as ``:id`` are normalized to the
OpenAPI ``{id}`` form so that the rest of the pipeline sees one convention.
"""

from __future__ import annotations

import functools
import json
import logging
import re
from typing import Any, Iterator, Optional

from apisynth.exceptions import ParseError
from apisynth.models import (
    DocumentFormat,
    Endpoint,
    Example,
    HTTPMethod,
    ParameterLocation,
    ParamSpec,
    ParsedDocument,
    Schema,
    StringSchema,
)
from apisynth.parser.base import DocumentParser
from apisynth.parser.resolver import resolve

logger = logging.getLogger(__name__)

_VARIABLE = re.compile(r"\{\{([^}]+)\}\}")
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def infer_schema(value: Any) -> dict[str, Any]:
    """Infer a raw JSON Schema from a sample JSON value.

    Object keys become properties, an array takes its item schema from the
    first element (an empty array gets empty ``items``), and scalars map to
    their JSON type name.
    """
    if value is None:
        return {"type": "null"}
    if isinstance(value, bool):
        return {"type": "boolean"}
    if isinstance(value, int):
        return {"type": "integer"}
    if isinstance(value, float):
        return {"type": "number"}
    if isinstance(value, str):
        return {"type": "string"}
    if isinstance(value, list):
        return {"type": "array", "items": infer_schema(value[0]) if value else {}}
    if isinstance(value, dict):
        return {
            "type": "object",
            "properties": {str(k): infer_schema(v) for k, v in value.items()},
        }
    return {"type": "string"}


def normalize_path(url: Any) -> str:
    """Return the request path in ``/a/{b}`` form.

    ``url.path`` segments are preferred over ``url.raw``.  For a string URL
    (or a raw one) the scheme, host and query string are stripped.
    """
    if isinstance(url, dict):
        segments = url.get("path")
        if isinstance(segments, list):
            path = "/" + "/".join(
                str(s.get("value", "")) if isinstance(s, dict) else str(s) for s in segments
            )
        elif isinstance(segments, str):
            path = "/" + segments.lstrip("/")
        else:
            path = _path_from_raw(str(url.get("raw", "")))
    else:
        path = _path_from_raw(str(url or ""))

    parts = [
        "{" + seg[1:] + "}" if seg.startswith(":") and len(seg) > 1 else seg
        for seg in path.split("/")
    ]
    path = "/".join(parts)
    return path if path.startswith("/") else "/" + path


def _path_from_raw(raw: str) -> str:
    raw = raw.split("#", 1)[0].split("?", 1)[0].strip()
    if _SCHEME.match(raw):
        raw = _SCHEME.sub("", raw, count=1)
        raw = raw[raw.find("/"):] if "/" in raw else ""
    elif not raw.startswith("/"):
        # Leading host or {{baseUrl}} variable.
        raw = raw[raw.find("/"):] if "/" in raw else ""
    return raw or "/"


def _header_value(headers: Any, name: str) -> Optional[str]:
    if not isinstance(headers, list):
        return None
    for header in headers:
        if isinstance(header, dict) and str(header.get("key", "")).lower() == name:
            return str(header.get("value", ""))
    return None


class PostmanParser(DocumentParser):
    """Parser for Postman Collection v2.0/v2.1 exports."""

    format = DocumentFormat.POSTMAN

    def parse_document(
        self, raw: dict[str, Any], source: Optional[str] = None
    ) -> ParsedDocument:
        info = raw.get("info")
        items = raw.get("item")
        if not isinstance(info, dict) or not isinstance(items, list):
            raise ParseError("invalid Postman collection: 'info' and 'item' are required", source=source)

        variables = {
            str(v.get("key")): str(v.get("value", ""))
            for v in raw.get("variable") or []
            if isinstance(v, dict) and v.get("key")
        }

        leaves = list(_walk(items))
        logger.debug("Postman collection %r has %d requests", info.get("name"), len(leaves))

        builders = []
        first_url: Any = None
        for item in leaves:
            request = item["request"]
            if isinstance(request, str):
                request = {"url": request, "method": "GET"}
            if first_url is None:
                first_url = request.get("url")
            method = str(request.get("method") or "GET").upper()
            path = normalize_path(request.get("url"))
            builders.append(
                (path, method, functools.partial(self._build_endpoint, item, request, path, method))
            )

        description = info.get("description")
        if isinstance(description, dict):
            description = description.get("content")

        return ParsedDocument(
            title=str(info.get("name") or "Postman Collection"),
            version=str(info.get("version") or "1.0.0") if not isinstance(info.get("version"), dict) else "1.0.0",
            description=description,
            base_url=_base_url(first_url, variables),
            format=self.format,
            endpoints=self.collect(builders),
        )

    def _build_endpoint(
        self,
        item: dict[str, Any],
        request: dict[str, Any],
        path: str,
        method: str,
    ) -> Endpoint:
        url = request.get("url") if isinstance(request.get("url"), dict) else {}
        parameters = self._parameters(url, request.get("header"), path)

        request_schema: Optional[Schema] = None
        request_content_type: Optional[str] = None
        request_examples: list[Example] = []

        body = request.get("body")
        if isinstance(body, dict):
            request_schema, request_content_type, request_examples = self._request_body(
                body, request.get("header")
            )

        response_schemas: dict[str, Optional[Schema]] = {}
        response_examples: list[Example] = []
        for response in item.get("response") or []:
            if not isinstance(response, dict):
                continue
            status = str(response.get("code") or 200)
            content_type = _header_value(response.get("header"), "content-type") or "application/json"
            text = response.get("body")
            if not text:
                response_schemas.setdefault(status, None)
                continue
            try:
                value = json.loads(text)
                raw_schema = infer_schema(value)
            except (TypeError, ValueError):
                value = text
                raw_schema = {"type": "string", "example": text}
            response_schemas[status] = resolve(raw_schema, {})
            response_examples.append(
                Example(
                    name=str(response.get("name") or "Example"),
                    content_type=content_type,
                    status_code=status,
                    value=value,
                )
            )

        if not response_schemas:
            response_schemas["200"] = None

        description = request.get("description")
        if isinstance(description, dict):
            description = description.get("content")

        return Endpoint(
            path=path,
            method=HTTPMethod(method),
            summary=item.get("name"),
            description=description,
            parameters=parameters,
            request_schema=request_schema,
            request_content_type=request_content_type,
            response_schemas=response_schemas,
            request_examples=request_examples,
            response_examples=response_examples,
        )

    def _parameters(
        self, url: dict[str, Any], headers: Any, path: str
    ) -> dict[str, dict[str, ParamSpec]]:
        grouped: dict[str, dict[str, ParamSpec]] = {}

        def _add(location: ParameterLocation, entry: dict[str, Any], required: bool) -> None:
            name = str(entry.get("key") or "")
            if not name or entry.get("disabled"):
                return
            value = entry.get("value")
            description = entry.get("description")
            if isinstance(description, dict):
                description = description.get("content")
            grouped.setdefault(location.value, {})[name] = ParamSpec(
                name=name,
                location=location,
                required=required,
                description=description or None,
                schema=StringSchema(name=name),
                default=value if location == ParameterLocation.HEADER else None,
                example=value,
            )

        for variable in url.get("variable") or []:
            if isinstance(variable, dict):
                _add(ParameterLocation.PATH, variable, True)
        for query in url.get("query") or []:
            if isinstance(query, dict):
                _add(ParameterLocation.QUERY, query, False)
        for header in headers or []:
            if isinstance(header, dict):
                _add(ParameterLocation.HEADER, header, False)

        # Path placeholders without a declared variable.
        for name in re.findall(r"\{([^}/]+)\}", path):
            grouped.setdefault("path", {}).setdefault(
                name,
                ParamSpec(
                    name=name,
                    location=ParameterLocation.PATH,
                    required=True,
                    schema=StringSchema(name=name),
                ),
            )
        return grouped

    def _request_body(
        self, body: dict[str, Any], headers: Any
    ) -> tuple[Optional[Schema], Optional[str], list[Example]]:
        mode = body.get("mode")

        if mode == "raw" and body.get("raw"):
            text = str(body["raw"])
            content_type = _header_value(headers, "content-type")
            language = (body.get("options") or {}).get("raw", {}).get("language")
            try:
                value = json.loads(text)
            except ValueError:
                return (
                    resolve({"type": "string", "example": text}, {}),
                    content_type or "text/plain",
                    [Example(content_type=content_type or "text/plain", value=text)],
                )
            if content_type is None:
                content_type = "application/json" if language in (None, "json") else "text/plain"
            return (
                resolve(infer_schema(value), {}),
                content_type,
                [Example(content_type=content_type, value=value)],
            )

        if mode in ("formdata", "urlencoded") and isinstance(body.get(mode), list):
            fields = [f for f in body[mode] if isinstance(f, dict) and f.get("key") and not f.get("disabled")]
            properties = {
                str(f["key"]): {"type": "file" if f.get("type") == "file" else "string"}
                for f in fields
            }
            content_type = (
                "multipart/form-data" if mode == "formdata" else "application/x-www-form-urlencoded"
            )
            name = "Form Data Example" if mode == "formdata" else "URL Encoded Example"
            example = Example(
                name=name,
                content_type=content_type,
                value={str(f["key"]): f.get("value") for f in fields if f.get("type") != "file"},
            )
            return resolve({"type": "object", "properties": properties}, {}), content_type, [example]

        return None, None, []


def _walk(items: list[Any]) -> Iterator[dict[str, Any]]:
    for item in items:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("item"), list):
            yield from _walk(item["item"])
        elif item.get("request"):
            yield item


def _base_url(url: Any, variables: dict[str, str]) -> str:
    def _substitute(text: str) -> str:
        return _VARIABLE.sub(lambda m: variables.get(m.group(1), m.group(0)), text)

    if isinstance(url, dict) and url.get("host"):
        host = url["host"]
        host = ".".join(str(h) for h in host) if isinstance(host, list) else str(host)
        host = _substitute(host)
        if url.get("port"):
            host += f":{url['port']}"
        if "{{" not in host:
            if _SCHEME.match(host):
                return host.rstrip("/")
            return f"{url.get('protocol') or 'https'}://{host}".rstrip("/")
    elif isinstance(url, str) and url:
        raw = _substitute(url.split("?", 1)[0])
        match = re.match(r"^([a-zA-Z][a-zA-Z0-9+.-]*://[^/]+)", raw)
        if match:
            return match.group(1)

    return variables.get("baseUrl", "").rstrip("/")
