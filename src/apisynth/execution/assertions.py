"""Evaluate test case assertions against a response.

:func:`evaluate` never raises: every problem (missing header, unknown path,
non-numeric operand, invalid regex, schema violation, unresolvable
``$ref``, an operand that cannot be serialised) becomes a failed
:class:`~apisynth.models.AssertionResult` with a message saying why.

Equality compares canonical JSON (keys sorted), so two objects with the
same members in a different order are equal.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Union

import jsonschema
from pydantic import ValidationError
from referencing.exceptions import Unresolvable

from apisynth.models import (
    ApiResponse,
    Assertion,
    AssertionOperator,
    AssertionResult,
    AssertionType,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def evaluate(
    assertion: Union[Assertion, dict[str, Any]],
    response: Union[ApiResponse, dict[str, Any]],
) -> AssertionResult:
    """Evaluate one assertion.

    Args:
        assertion: An :class:`Assertion` or its dict form.
        response: An :class:`ApiResponse` or its dict form.

    Returns:
        The outcome.  Malformed input is reported as a failure.
    """
    try:
        if isinstance(assertion, dict):
            assertion = Assertion.model_validate(assertion)
        if isinstance(response, dict):
            response = ApiResponse.model_validate(response)
    except ValidationError as exc:
        return AssertionResult(passed=False, message=f"invalid assertion or response: {exc}")

    try:
        match assertion.type:
            case AssertionType.STATUS:
                return _status(assertion, response)
            case AssertionType.HEADER:
                return _header(assertion, response)
            case AssertionType.BODY:
                return _body(assertion, response)
            case AssertionType.SCHEMA:
                return _schema(assertion, response)
            case _:
                return AssertionResult(passed=False, message=f"unknown assertion type: {assertion.type}")
    except Exception as exc:  # noqa: BLE001
        logger.warning("Assertion %s on %r raised %s", assertion.type.value, assertion.target, exc)
        return AssertionResult(passed=False, message=f"assertion error: {exc}")


def evaluate_all(
    assertions: Iterable[Union[Assertion, dict[str, Any]]],
    response: Union[ApiResponse, dict[str, Any]],
) -> list[AssertionResult]:
    return [evaluate(assertion, response) for assertion in assertions]


def lookup_path(body: Any, path: str) -> Any:
    """Follow a dot path into *body*; numeric segments index lists.

    Returns the module's ``_MISSING`` sentinel when a segment is absent.
    An empty path returns *body* itself.
    """
    if not path:
        return body
    current = body
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, list) and segment.lstrip("-").isdigit():
            index = int(segment)
            if not -len(current) <= index < len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def compare(actual: Any, expected: Any, operator: AssertionOperator) -> tuple[bool, str]:
    """Apply *operator*; returns ``(passed, reason)`` where *reason* explains a failure.

    Operands that cannot be serialised as JSON (mixed key types, cycles)
    fail the comparison instead of raising.
    """
    try:
        return _compare(actual, expected, operator)
    except (TypeError, ValueError) as exc:
        return False, f"cannot serialise operand: {exc}"


def _compare(actual: Any, expected: Any, operator: AssertionOperator) -> tuple[bool, str]:
    match operator:
        case AssertionOperator.EQ:
            return _canonical(actual) == _canonical(expected), ""
        case AssertionOperator.NE:
            return _canonical(actual) != _canonical(expected), ""
        case AssertionOperator.GT | AssertionOperator.LT:
            if not (_is_number(actual) and _is_number(expected)):
                return False, "operands are not numeric"
            if operator is AssertionOperator.GT:
                return actual > expected, ""
            return actual < expected, ""
        case AssertionOperator.CONTAINS:
            if isinstance(actual, str) and isinstance(expected, str):
                return expected in actual, ""
            return _canonical(expected) in _canonical(actual), ""
        case AssertionOperator.MATCHES:
            try:
                pattern = re.compile(str(expected))
            except re.error as exc:
                return False, f"invalid regex: {exc}"
            return pattern.search(str(actual)) is not None, ""
        case _:
            return False, f"unknown operator: {operator}"


def _status(assertion: Assertion, response: ApiResponse) -> AssertionResult:
    expected = assertion.value
    if isinstance(expected, str) and expected.isdigit():
        expected = int(expected)
    return _result(f"status {response.status}", response.status, expected, assertion.operator)


def _header(assertion: Assertion, response: ApiResponse) -> AssertionResult:
    name = assertion.target.lower()
    for key, value in response.headers.items():
        if key.lower() == name:
            return _result(f"header {name}: {value}", value, assertion.value, assertion.operator)
    return AssertionResult(passed=False, message=f"header {name} not present")


def _body(assertion: Assertion, response: ApiResponse) -> AssertionResult:
    actual = lookup_path(response.body, assertion.target)
    if actual is _MISSING:
        return AssertionResult(passed=False, message=f"path not found: {assertion.target}")
    label = f"body {assertion.target or '<root>'}: {_render(actual)}"
    return _result(label, actual, assertion.value, assertion.operator)


def _schema(assertion: Assertion, response: ApiResponse) -> AssertionResult:
    if not isinstance(assertion.value, dict):
        return AssertionResult(passed=False, message="schema assertion needs a JSON Schema object")
    try:
        jsonschema.validate(instance=response.body, schema=assertion.value)
    except jsonschema.ValidationError as exc:
        where = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        return AssertionResult(passed=False, message=f"schema violation at {where}: {exc.message}")
    except jsonschema.SchemaError as exc:
        return AssertionResult(passed=False, message=f"invalid schema: {exc.message}")
    except Unresolvable as exc:
        return AssertionResult(passed=False, message=f"invalid schema: unresolvable reference {exc}")
    return AssertionResult(passed=True, message="body matches schema")


def _result(label: str, actual: Any, expected: Any, operator: AssertionOperator) -> AssertionResult:
    passed, reason = compare(actual, expected, operator)
    message = f"{label} {operator.value} {_render(expected)}"
    if not passed:
        message = f"assertion failed: {message}" + (f" ({reason})" if reason else "")
    return AssertionResult(passed=passed, message=message)


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def _render(value: Any) -> str:
    try:
        return _canonical(value)
    except (TypeError, ValueError):
        return repr(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
