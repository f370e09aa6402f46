"""Canonical Pydantic models shared across all apisynth modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Schema variants** -- a closed union discriminated on ``type``:
    :class:`ObjectSchema`, :class:`ArraySchema`, :class:`StringSchema`,
    :class:`NumberSchema`, :class:`BooleanSchema`, :class:`NullSchema` and
    :class:`RefSchema`. The :data:`Schema` alias is the annotated union.

**Document model** -- produced by the format parsers:
    :class:`DocumentFormat`, :class:`HTTPMethod`, :class:`ParamSpec`,
    :class:`Example`, :class:`Endpoint` and :class:`ParsedDocument`.

**Test model** -- produced by the synthesizer and consumed by the runner:
    :class:`Assertion`, :class:`TestCase`, :class:`TestSuite`,
    :class:`HttpRequest`, :class:`ApiResponse`, :class:`AssertionResult`
    and :class:`ApiTestResult`.

**Run configuration** -- :class:`RunConfig` and its :class:`MockSettings`
section, resolved by :mod:`apisynth.config`.

Mock generation options (:class:`MockRule`, :class:`MockDataOptions`) are
plain dataclasses because rules carry callables.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Callable, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Enumerations ---


class DocumentFormat(str, enum.Enum):
    """Input document formats. ``AUTO`` asks the detector to decide."""

    OPENAPI = "openapi"
    SWAGGER = "swagger"
    POSTMAN = "postman"
    APIFOX = "apifox"
    AUTO = "auto"


class HTTPMethod(str, enum.Enum):
    """HTTP methods picked up from path items and Postman requests."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


class AssertionType(str, enum.Enum):
    STATUS = "status"
    HEADER = "header"
    BODY = "body"
    SCHEMA = "schema"


class AssertionOperator(str, enum.Enum):
    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    CONTAINS = "contains"
    MATCHES = "matches"


# --- Schema variants ---


class _SchemaBase(BaseModel):
    """Metadata shared by every schema variant, preserved verbatim."""

    title: Optional[str] = None
    name: Optional[str] = Field(
        default=None, description="Property name the schema was declared under"
    )
    description: Optional[str] = None
    example: Any = None
    default: Any = None
    enum: Optional[list[Any]] = None
    nullable: bool = False

    @property
    def has_example(self) -> bool:
        """True when an ``example`` was declared, even an explicit ``null``."""
        return "example" in self.model_fields_set

    def to_json_schema(self) -> dict[str, Any]:
        """Re-emit this schema as a JSON Schema dictionary."""
        out: dict[str, Any] = {}
        match self:
            case ObjectSchema():
                out["type"] = "object"
                out["properties"] = {
                    key: prop.to_json_schema() for key, prop in self.properties.items()
                }
                if self.required:
                    out["required"] = list(self.required)
            case ArraySchema():
                out["type"] = "array"
                if self.items is not None:
                    out["items"] = self.items.to_json_schema()
                if self.min_items is not None:
                    out["minItems"] = self.min_items
                if self.max_items is not None:
                    out["maxItems"] = self.max_items
            case StringSchema():
                out["type"] = "string"
                for key, attr in (
                    ("format", "format"),
                    ("pattern", "pattern"),
                    ("minLength", "min_length"),
                    ("maxLength", "max_length"),
                ):
                    value = getattr(self, attr)
                    if value is not None:
                        out[key] = value
            case NumberSchema():
                out["type"] = self.type
                if self.minimum is not None:
                    out["minimum"] = self.minimum
                if self.maximum is not None:
                    out["maximum"] = self.maximum
            case BooleanSchema():
                out["type"] = "boolean"
            case NullSchema():
                out["type"] = "null"
            case RefSchema():
                out["$ref"] = self.pointer
        if self.enum is not None:
            out["enum"] = list(self.enum)
        if self.nullable and "type" in out:
            out["type"] = [out["type"], "null"]
        if self.title:
            out["title"] = self.title
        return out


class ObjectSchema(_SchemaBase):
    type: Literal["object"] = "object"
    properties: dict[str, Schema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class ArraySchema(_SchemaBase):
    type: Literal["array"] = "array"
    items: Optional[Schema] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None


class StringSchema(_SchemaBase):
    type: Literal["string"] = "string"
    format: Optional[str] = None
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None


class NumberSchema(_SchemaBase):
    type: Literal["number", "integer"] = "number"
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None


class BooleanSchema(_SchemaBase):
    type: Literal["boolean"] = "boolean"


class NullSchema(_SchemaBase):
    type: Literal["null"] = "null"


class RefSchema(_SchemaBase):
    """An unresolved ``$ref``. Never reachable from a parsed document."""

    type: Literal["ref"] = "ref"
    pointer: str


Schema = Annotated[
    Union[
        ObjectSchema,
        ArraySchema,
        StringSchema,
        NumberSchema,
        BooleanSchema,
        NullSchema,
        RefSchema,
    ],
    Field(discriminator="type"),
]

ObjectSchema.model_rebuild()
ArraySchema.model_rebuild()


# --- Document model ---


class ParamSpec(BaseModel):
    """A single request parameter, grouped by location on :class:`Endpoint`."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_: Optional[Schema] = Field(default=None, alias="schema")
    default: Any = None
    example: Any = None


class Example(BaseModel):
    """A concrete JSON value plus where it came from."""

    name: str = "Example"
    content_type: Optional[str] = None
    status_code: Optional[str] = None
    value: Any = None


class Assertion(BaseModel):
    """A typed check evaluated against an actual response."""

    type: AssertionType
    target: str = ""
    operator: AssertionOperator = AssertionOperator.EQ
    value: Any = None


class TestCase(BaseModel):
    """One request plus the assertions its response must satisfy."""

    __test__: ClassVar[bool] = False

    id: str
    description: str = ""
    endpoint: str
    method: HTTPMethod
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, Any] = Field(default_factory=dict)
    path_params: dict[str, Any] = Field(
        default_factory=dict,
        description="Values substituted into {name} placeholders of the endpoint",
    )
    body: Any = None
    assertions: list[Assertion] = Field(default_factory=list)


class Endpoint(BaseModel):
    """A single ``(path, method)`` operation in canonical form."""

    path: str
    method: HTTPMethod
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: dict[str, dict[str, ParamSpec]] = Field(
        default_factory=dict,
        description="Parameters keyed by location, then by name",
    )
    request_schema: Optional[Schema] = None
    request_content_type: Optional[str] = None
    response_schemas: dict[str, Optional[Schema]] = Field(default_factory=dict)
    request_examples: list[Example] = Field(default_factory=list)
    response_examples: list[Example] = Field(default_factory=list)
    test_cases: list[TestCase] = Field(default_factory=list)

    def params_in(self, location: ParameterLocation | str) -> dict[str, ParamSpec]:
        """Return the parameters declared at *location* (empty when none)."""
        key = location.value if isinstance(location, ParameterLocation) else location
        return self.parameters.get(key, {})


class ParsedDocument(BaseModel):
    """Format-agnostic representation of an API document.

    Produced by every :class:`~apisynth.parser.base.DocumentParser` and
    consumed by the test case synthesizer, the mock registry and the CLI.
    ``endpoints`` never holds two entries with the same ``(path, method)``.
    """

    title: str = "Untitled API"
    version: str = "0.0.0"
    description: Optional[str] = None
    base_url: str = ""
    format: DocumentFormat = DocumentFormat.OPENAPI
    endpoints: list[Endpoint] = Field(default_factory=list)
    schemas: dict[str, Schema] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_unique_endpoints(self) -> ParsedDocument:
        seen: set[tuple[str, str]] = set()
        for endpoint in self.endpoints:
            key = (endpoint.path, endpoint.method.value)
            if key in seen:
                raise ValueError(f"duplicate endpoint {key[1]} {key[0]}")
            seen.add(key)
        return self

    def find_endpoint(self, path: str, method: str) -> Optional[Endpoint]:
        """Return the endpoint for *path* and *method* (case-insensitive)."""
        wanted = method.upper()
        for endpoint in self.endpoints:
            if endpoint.path == path and endpoint.method.value == wanted:
                return endpoint
        return None

    def request_schema(self, path: str, method: str) -> Optional[Schema]:
        endpoint = self.find_endpoint(path, method)
        return endpoint.request_schema if endpoint else None

    def response_schemas(self, path: str, method: str) -> dict[str, Optional[Schema]]:
        endpoint = self.find_endpoint(path, method)
        return dict(endpoint.response_schemas) if endpoint else {}

    def request_examples(self, path: str, method: str) -> list[Example]:
        endpoint = self.find_endpoint(path, method)
        return list(endpoint.request_examples) if endpoint else []

    def response_examples(self, path: str, method: str) -> list[Example]:
        endpoint = self.find_endpoint(path, method)
        return list(endpoint.response_examples) if endpoint else []

    @property
    def test_cases(self) -> list[TestCase]:
        """All synthesized test cases, in endpoint order."""
        return [case for endpoint in self.endpoints for case in endpoint.test_cases]


class TestSuite(BaseModel):
    """Persisted collection of synthesized test cases for one document."""

    __test__: ClassVar[bool] = False

    name: str
    source: Optional[str] = None
    format: DocumentFormat = DocumentFormat.OPENAPI
    base_url: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    test_cases: list[TestCase] = Field(default_factory=list)


# --- Execution model ---


class HttpRequest(BaseModel):
    """A fully formed request handed to the HTTP client collaborator."""

    method: HTTPMethod
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, Any] = Field(default_factory=dict)
    body: Any = None
    timeout: float = 10.0


class ApiResponse(BaseModel):
    """An actual or canned HTTP response."""

    status: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None


MockedResponse = ApiResponse


class AssertionResult(BaseModel):
    passed: bool
    message: str


class ApiTestResult(BaseModel):
    """Outcome of executing one :class:`TestCase`."""

    test_case_id: str
    passed: bool
    response: Optional[ApiResponse] = None
    failed_assertions: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0


# --- Run configuration ---


class MockSettings(BaseModel):
    """Mock data section of :class:`RunConfig`."""

    locale: Optional[str] = Field(default=None, description="Faker locale, e.g. en_US or zh_CN")
    seed: Optional[int] = Field(default=None, description="Seed for reproducible mock data")
    use_examples: bool = True


class RunConfig(BaseModel):
    """Effective configuration after precedence resolution.

    Serialised as JSON in ``apisynth.json`` (project) and
    ``config.json`` (global config directory).

    Example::

        RunConfig(base_url="https://staging.example.com", timeout=5.0)
    """

    base_url: Optional[str] = None
    timeout: float = Field(default=10.0, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = True
    headers: dict[str, str] = Field(default_factory=dict)
    settle_delay: float = Field(default=0.0, ge=0, description="Seconds to wait after each case")
    max_ref_depth: int = Field(default=3, ge=0)
    mock: MockSettings = Field(default_factory=MockSettings)

    def mock_options(self) -> MockDataOptions:
        return MockDataOptions(
            use_examples=self.mock.use_examples,
            locale=self.mock.locale,
            seed=self.mock.seed,
        )


# --- Mock generation options ---


@dataclass(frozen=True)
class MockRule:
    """Override generation for fields whose name matches *field_pattern*.

    A string pattern must equal the field name; a compiled regex only has
    to match somewhere in it (``re.search``).
    """

    field_pattern: Union[str, re.Pattern[str]]
    generate: Callable[[str, Any], Any]

    def matches(self, field_name: str) -> bool:
        if isinstance(self.field_pattern, str):
            return field_name == self.field_pattern
        return self.field_pattern.search(field_name) is not None


@dataclass
class MockDataOptions:
    """Per-call options for the mock data generators."""

    use_examples: bool = True
    locale: Optional[str] = None
    seed: Optional[int] = None
    custom_templates: dict[str, Any] = field(default_factory=dict)
    rules: list[MockRule] = field(default_factory=list)
