"""Derive baseline test cases from a parsed document.

One test case is produced per endpoint.  It asserts the expected success
status and, when the document shows what a successful response looks like,
either the top-level scalar values of the response example or conformance
to the response schema.

The request is filled from the document as far as it goes: a request
example (or a generated body) for POST, PUT and PATCH, query parameters
that carry a default or example, header parameters with a default, and a
value for every path parameter.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from apisynth.mock.schema_generator import SchemaGenerator
from apisynth.models import (
    Assertion,
    AssertionOperator,
    AssertionType,
    Endpoint,
    Example,
    HTTPMethod,
    MockDataOptions,
    ParameterLocation,
    ParsedDocument,
    Schema,
    TestCase,
)

logger = logging.getLogger(__name__)

_BODY_METHODS = frozenset({HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.PATCH})
_DEFAULT_STATUS = {HTTPMethod.POST: 201, HTTPMethod.DELETE: 204}
_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(method: str, path: str) -> str:
    """``("GET", "/pets/{id}")`` -> ``"get-pets-id"``."""
    return _SLUG.sub("-", f"{method}-{path}".lower()).strip("-")


def join_url(base_url: str, path: str) -> str:
    """Join *base_url* and *path* without doubling or dropping a slash."""
    if not base_url:
        return path
    return base_url.rstrip("/") + "/" + path.lstrip("/")


def success_status(endpoint: Endpoint) -> int:
    """First declared 2xx status, else 201 for POST, 204 for DELETE, 200 otherwise."""
    declared = list(endpoint.response_schemas) + [
        ex.status_code for ex in endpoint.response_examples if ex.status_code
    ]
    for code in declared:
        if len(code) == 3 and code.startswith("2") and code.isdigit():
            return int(code)
    return _DEFAULT_STATUS.get(endpoint.method, 200)


def success_example(endpoint: Endpoint, status: int) -> Optional[Example]:
    """The response example for *status*, or one without a status code."""
    for example in endpoint.response_examples:
        if example.status_code == str(status):
            return example
    for example in endpoint.response_examples:
        if example.status_code is None:
            return example
    return None


def success_schema(endpoint: Endpoint, status: int) -> Optional[Schema]:
    schema = endpoint.response_schemas.get(str(status))
    if schema is None:
        schema = endpoint.response_schemas.get("default")
    return schema


def synthesize_for_endpoint(
    endpoint: Endpoint,
    base_url: str = "",
    options: Optional[MockDataOptions] = None,
) -> list[TestCase]:
    """Build the test cases for one endpoint and append them to it."""
    generator = SchemaGenerator(options)
    method = endpoint.method

    headers: dict[str, str] = {}
    for param in endpoint.params_in(ParameterLocation.HEADER).values():
        if param.default is not None:
            headers[param.name] = str(param.default)

    query: dict[str, Any] = {}
    for param in endpoint.params_in(ParameterLocation.QUERY).values():
        if param.default is not None:
            query[param.name] = param.default
        elif param.example is not None:
            query[param.name] = param.example

    path_params: dict[str, Any] = {}
    for param in endpoint.params_in(ParameterLocation.PATH).values():
        if param.example is not None:
            path_params[param.name] = param.example
        elif param.default is not None:
            path_params[param.name] = param.default
        else:
            path_params[param.name] = generator.generate(param.schema_) if param.schema_ else 1

    body: Any = None
    if method in _BODY_METHODS and (endpoint.request_examples or endpoint.request_schema):
        if endpoint.request_examples:
            body = endpoint.request_examples[0].value
        else:
            body = generator.generate(endpoint.request_schema)
        if not any(k.lower() == "content-type" for k in headers):
            headers["Content-Type"] = endpoint.request_content_type or "application/json"

    status = success_status(endpoint)
    assertions = [Assertion(type=AssertionType.STATUS, value=status)]

    example = success_example(endpoint, status)
    schema = success_schema(endpoint, status)
    if example is not None and isinstance(example.value, dict):
        for key, value in example.value.items():
            if isinstance(value, (dict, list)):
                continue
            operator = AssertionOperator.CONTAINS if isinstance(value, str) else AssertionOperator.EQ
            assertions.append(
                Assertion(type=AssertionType.BODY, target=key, operator=operator, value=value)
            )
    elif schema is not None:
        assertions.append(Assertion(type=AssertionType.SCHEMA, value=schema.to_json_schema()))

    case = TestCase(
        id=slugify(method.value, endpoint.path),
        description=endpoint.summary or f"{method.value} {endpoint.path}",
        endpoint=join_url(base_url, endpoint.path),
        method=method,
        headers=headers,
        query=query,
        path_params=path_params,
        body=body,
        assertions=assertions,
    )
    endpoint.test_cases.append(case)
    return [case]


def synthesize_test_cases(
    doc: ParsedDocument, options: Optional[MockDataOptions] = None
) -> list[TestCase]:
    """Synthesize test cases for every endpoint of *doc*.

    Cases are appended to each ``endpoint.test_cases`` and also returned in
    endpoint order.  Ids are made unique within the document.
    """
    cases: list[TestCase] = []
    used: set[str] = {case.id for case in doc.test_cases}

    for endpoint in doc.endpoints:
        for case in synthesize_for_endpoint(endpoint, doc.base_url, options):
            if case.id in used:
                suffix = 2
                while f"{case.id}-{suffix}" in used:
                    suffix += 1
                case.id = f"{case.id}-{suffix}"
            used.add(case.id)
            cases.append(case)

    logger.debug("Synthesized %d test cases for %d endpoints", len(cases), len(doc.endpoints))
    return cases
