"""Tests for apisynth.parser.postman."""

from __future__ import annotations

from typing import Any

import pytest

from apisynth.exceptions import ParseError
from apisynth.models import (
    ArraySchema,
    BooleanSchema,
    DocumentFormat,
    HTTPMethod,
    ObjectSchema,
    ParsedDocument,
)
from apisynth.parser.postman import PostmanParser, infer_schema, normalize_path


@pytest.fixture
def postman_doc(postman_raw: dict[str, Any]) -> ParsedDocument:
    return PostmanParser().parse_document(postman_raw, source="postman_collection.json")


class TestInferSchema:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "null"),
            (True, "boolean"),
            (3, "integer"),
            (2.5, "number"),
            ("x", "string"),
        ],
    )
    def test_scalars(self, value: Any, expected: str) -> None:
        assert infer_schema(value) == {"type": expected}

    def test_nested(self) -> None:
        assert infer_schema({"tags": ["a"], "empty": []}) == {
            "type": "object",
            "properties": {
                "tags": {"type": "array", "items": {"type": "string"}},
                "empty": {"type": "array", "items": {}},
            },
        }


class TestNormalizePath:
    def test_segments_with_variable(self) -> None:
        assert normalize_path({"path": ["users", ":id", "posts"]}) == "/users/{id}/posts"

    def test_string_path_field(self) -> None:
        assert normalize_path({"path": "a/b"}) == "/a/b"

    def test_raw_with_variable_host(self) -> None:
        assert normalize_path({"raw": "{{baseUrl}}/users/:id?x=1"}) == "/users/{id}"

    def test_absolute_string(self) -> None:
        assert normalize_path("https://postman.test/users?page=2") == "/users"

    def test_host_only(self) -> None:
        assert normalize_path("https://postman.test") == "/"


class TestParseCollection:
    def test_metadata(self, postman_doc: ParsedDocument) -> None:
        assert postman_doc.title == "Postman Store"
        assert postman_doc.version == "1.0.0"
        assert postman_doc.format == DocumentFormat.POSTMAN
        assert postman_doc.base_url == "https://postman.test"
        assert postman_doc.schemas == {}

    def test_folders_flattened(self, postman_doc: ParsedDocument) -> None:
        keys = [(ep.method, ep.path) for ep in postman_doc.endpoints]
        assert keys == [
            (HTTPMethod.GET, "/users"),
            (HTTPMethod.GET, "/users/{id}"),
            (HTTPMethod.POST, "/users"),
        ]
        assert postman_doc.endpoints[0].summary == "List users"

    def test_query_and_header_parameters(self, postman_doc: ParsedDocument) -> None:
        endpoint = postman_doc.find_endpoint("/users", "GET")
        query = endpoint.params_in("query")
        assert set(query) == {"page"}
        assert query["page"].example == "1"
        assert query["page"].required is False

        accept = endpoint.params_in("header")["Accept"]
        assert accept.default == "application/json"

    def test_path_variable(self, postman_doc: ParsedDocument) -> None:
        endpoint = postman_doc.find_endpoint("/users/{id}", "GET")
        param = endpoint.params_in("path")["id"]
        assert param.required is True
        assert param.example == "1"

    def test_response_schema_inferred(self, postman_doc: ParsedDocument) -> None:
        listing = postman_doc.response_schemas("/users", "GET")["200"]
        assert isinstance(listing, ArraySchema)
        assert isinstance(listing.items, ObjectSchema)
        assert set(listing.items.properties) == {"id", "name"}

        user = postman_doc.response_schemas("/users/{id}", "GET")["200"]
        assert isinstance(user.properties["active"], BooleanSchema)

    def test_response_examples(self, postman_doc: ParsedDocument) -> None:
        examples = postman_doc.response_examples("/users", "GET")
        assert len(examples) == 1
        assert examples[0].name == "OK"
        assert examples[0].status_code == "200"
        assert examples[0].content_type == "application/json"
        assert examples[0].value == [{"id": 1, "name": "Ann"}]

    def test_raw_json_body(self, postman_doc: ParsedDocument) -> None:
        endpoint = postman_doc.find_endpoint("/users", "POST")
        assert endpoint.request_content_type == "application/json"
        assert isinstance(endpoint.request_schema, ObjectSchema)
        assert endpoint.request_schema.properties["age"].type == "integer"
        assert endpoint.request_examples[0].value == {"name": "Ann", "age": 30}

    def test_no_saved_responses_defaults_to_200(self, postman_doc: ParsedDocument) -> None:
        assert postman_doc.response_schemas("/users", "POST") == {"200": None}


class TestParseVariants:
    def _collection(self, request: Any, **item: Any) -> dict[str, Any]:
        return {"info": {"name": "C"}, "item": [{"name": "r", "request": request, **item}]}

    def test_string_request(self) -> None:
        doc = PostmanParser().parse_document(self._collection("https://api.test/ping"))
        endpoint = doc.endpoints[0]
        assert endpoint.method == HTTPMethod.GET
        assert endpoint.path == "/ping"
        assert doc.base_url == "https://api.test"

    def test_formdata_body(self) -> None:
        request = {
            "method": "POST",
            "url": "https://api.test/upload",
            "body": {
                "mode": "formdata",
                "formdata": [
                    {"key": "title", "value": "Doc"},
                    {"key": "file", "type": "file", "src": "/tmp/a.txt"},
                    {"key": "skip", "value": "x", "disabled": True},
                ],
            },
        }
        endpoint = PostmanParser().parse_document(self._collection(request)).endpoints[0]
        assert endpoint.request_content_type == "multipart/form-data"
        assert set(endpoint.request_schema.properties) == {"title", "file"}
        assert endpoint.request_schema.properties["file"].format == "binary"
        assert endpoint.request_examples[0].value == {"title": "Doc"}

    def test_non_json_raw_body(self) -> None:
        request = {"method": "POST", "url": "/echo", "body": {"mode": "raw", "raw": "hello"}}
        endpoint = PostmanParser().parse_document(self._collection(request)).endpoints[0]
        assert endpoint.request_content_type == "text/plain"
        assert endpoint.request_examples[0].value == "hello"

    def test_undeclared_placeholder_becomes_path_param(self) -> None:
        request = {"method": "GET", "url": {"raw": "/items/:sku", "path": ["items", ":sku"]}}
        endpoint = PostmanParser().parse_document(self._collection(request)).endpoints[0]
        assert endpoint.params_in("path")["sku"].required is True

    def test_duplicate_requests_keep_first(self) -> None:
        raw = {
            "info": {"name": "C"},
            "item": [
                {"name": "first", "request": {"method": "GET", "url": "/a"}},
                {"name": "second", "request": {"method": "GET", "url": "/a"}},
            ],
        }
        doc = PostmanParser().parse_document(raw)
        assert [ep.summary for ep in doc.endpoints] == ["first"]

    def test_missing_item_raises(self) -> None:
        with pytest.raises(ParseError, match="invalid Postman collection"):
            PostmanParser().parse_document({"info": {"name": "C"}})
