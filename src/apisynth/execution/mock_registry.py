"""Canned responses keyed by ``"METHOD:path"``, served through httpx.

A :class:`MockRegistry` belongs to one test-execution context.  Responses
are registered verbatim, generated from a schema, or generated from an
example, and are served to an :class:`httpx.Client` through
:meth:`MockRegistry.transport`.

Lookups are exact: ``GET:/users`` does not answer ``GET /users/5``, and a
templated path such as ``/pets/{id}`` only answers a request for that
literal path.  Unregistered keys get a 404.

Example::

    registry = MockRegistry()
    registry.mock_endpoint("GET", "/users", ApiResponse(status=200, body=[]))
    with httpx.Client(transport=registry.transport(), base_url="http://mock") as client:
        client.get("/users").status_code   # 200
        client.get("/users/5").status_code # 404
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Iterable, Optional, Union

import httpx
from pydantic import BaseModel, Field

from apisynth.mock.example_generator import ExampleGenerator
from apisynth.mock.schema_generator import SchemaGenerator
from apisynth.models import (
    ApiResponse,
    HttpRequest,
    HTTPMethod,
    MockDataOptions,
    ParsedDocument,
    Schema,
)
from apisynth.parser.resolver import resolve
from apisynth.synthesis.testcases import join_url, success_example, success_schema, success_status

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class MockDefinition(BaseModel):
    """One entry of :meth:`MockRegistry.mock_batch`.

    ``response`` is a full response when neither flag is set, a schema
    when ``use_schema`` is set, and an example value when ``use_example``
    is set.
    """

    method: str
    path: str
    response: Any = None
    use_schema: bool = False
    use_example: bool = False
    status: int = 200
    headers: dict[str, str] = Field(default_factory=lambda: dict(JSON_HEADERS))


def mock_key(method: str, path: str) -> str:
    return f"{method.upper()}:{path}"


def status_text(status: int) -> str:
    return httpx.codes.get_reason_phrase(status) or str(status)


class MockRegistry:
    """Registry of canned responses for one execution context.

    Args:
        options: Options for the schema and example generators.
    """

    def __init__(self, options: Optional[MockDataOptions] = None) -> None:
        self.options = options or MockDataOptions()
        self._responses: dict[str, ApiResponse] = {}
        self.recorded_requests: list[HttpRequest] = []

    def __len__(self) -> int:
        return len(self._responses)

    def __contains__(self, key: object) -> bool:
        return key in self._responses

    def keys(self) -> list[str]:
        return list(self._responses)

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def mock_endpoint(
        self, method: str, path: str, response: Union[ApiResponse, dict[str, Any]]
    ) -> ApiResponse:
        """Register *response* for ``method path``; the last write wins."""
        if isinstance(response, dict):
            response = ApiResponse.model_validate(response)
        key = mock_key(method, path)
        if key in self._responses:
            logger.debug("Replacing mock for %s", key)
        self._responses[key] = response
        return response

    def mock_with_schema(
        self,
        method: str,
        path: str,
        schema: Union[Schema, dict[str, Any], None],
        status: int = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> ApiResponse:
        """Register a response whose body is generated from *schema*.

        A raw JSON Schema dict is resolved first; its ``$ref`` pointers are
        looked up inside the dict itself.
        """
        if isinstance(schema, dict):
            schema = resolve(schema, schema)
        body = SchemaGenerator(self.options).generate(schema)
        return self.mock_endpoint(method, path, self._response(status, headers, body))

    def mock_with_example(
        self,
        method: str,
        path: str,
        example: Any,
        status: int = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> ApiResponse:
        """Register a response whose body resembles *example*."""
        body = ExampleGenerator(self.options).generate(example)
        return self.mock_endpoint(method, path, self._response(status, headers, body))

    def mock_batch(
        self, definitions: Iterable[Union[MockDefinition, dict[str, Any]]]
    ) -> list[ApiResponse]:
        registered = []
        for definition in definitions:
            if isinstance(definition, dict):
                definition = MockDefinition.model_validate(definition)
            if definition.use_schema:
                response = self.mock_with_schema(
                    definition.method, definition.path, definition.response,
                    definition.status, definition.headers,
                )
            elif definition.use_example:
                response = self.mock_with_example(
                    definition.method, definition.path, definition.response,
                    definition.status, definition.headers,
                )
            else:
                response = self.mock_endpoint(definition.method, definition.path, definition.response)
            registered.append(response)
        return registered

    def mock_document(self, doc: ParsedDocument, from_example: bool = False) -> int:
        """Register one success response for every endpoint of *doc*.

        A response example for the success status is served verbatim (or
        varied through the example generator when *from_example* is set);
        otherwise the body is generated from the response schema.  Keys use
        the path part of ``base_url`` joined with the endpoint path, so the
        test cases synthesized from *doc* hit them.

        Returns:
            The number of endpoints mocked.
        """
        for endpoint in doc.endpoints:
            path = httpx.URL(join_url(doc.base_url, endpoint.path)).path if doc.base_url else endpoint.path
            method = endpoint.method.value
            status = success_status(endpoint)
            example = success_example(endpoint, status)
            headers = dict(JSON_HEADERS)
            if example is not None and example.content_type:
                headers["Content-Type"] = example.content_type

            if example is not None and from_example:
                self.mock_with_example(method, path, example.value, status, headers)
            elif example is not None:
                body = copy.deepcopy(example.value)
                self.mock_endpoint(method, path, self._response(status, headers, body))
            else:
                self.mock_with_schema(method, path, success_schema(endpoint, status), status, headers)

        logger.debug("Mocked %d endpoints of %s", len(doc.endpoints), doc.title)
        return len(doc.endpoints)

    # ------------------------------------------------------------------ #
    # Lookup and transport
    # ------------------------------------------------------------------ #

    def lookup(self, method: str, path: str) -> Optional[ApiResponse]:
        """Exact ``"METHOD:path"`` lookup."""
        return self._responses.get(mock_key(method, path))

    def clear(self) -> None:
        self._responses.clear()
        self.recorded_requests.clear()

    def transport(self) -> httpx.MockTransport:
        """Return an httpx transport that answers from this registry."""
        return httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.recorded_requests.append(_to_http_request(request))

        response = self.lookup(request.method, request.url.path)
        if response is None:
            logger.debug("No mock for %s %s", request.method, request.url.path)
            return httpx.Response(
                404,
                json={"error": f"no mock registered for {request.method} {request.url.path}"},
            )

        headers = dict(response.headers)
        body = response.body
        if body is None or response.status in (204, 304):
            return httpx.Response(response.status, headers=headers)
        if isinstance(body, str):
            return httpx.Response(response.status, headers=headers, text=body)
        headers.setdefault("Content-Type", "application/json")
        return httpx.Response(
            response.status,
            headers=headers,
            content=json.dumps(body).encode("utf-8"),
        )

    @staticmethod
    def _response(status: int, headers: Optional[dict[str, str]], body: Any) -> ApiResponse:
        return ApiResponse(
            status=status,
            status_text=status_text(status),
            headers=dict(JSON_HEADERS if headers is None else headers),
            body=body,
        )


def _to_http_request(request: httpx.Request) -> HttpRequest:
    content = request.content
    body: Any = None
    if content:
        try:
            body = json.loads(content)
        except ValueError:
            body = content.decode("utf-8", errors="replace")
    try:
        method = HTTPMethod(request.method)
    except ValueError:
        method = HTTPMethod.GET
    return HttpRequest(
        method=method,
        url=str(request.url),
        headers=dict(request.headers),
        query=dict(request.url.params),
        body=body,
    )
