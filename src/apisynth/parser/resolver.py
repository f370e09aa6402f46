"""Resolve ``$ref`` JSON Reference pointers into canonical schema trees.

API documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition.  This module
walks a raw JSON Schema node, follows every internal reference it meets, and
builds the closed :data:`~apisynth.models.Schema` variant that the rest of
the package consumes.

Resolution never fails.  A reference that is external, points nowhere, closes
a cycle, or sits deeper than ``max_depth`` refs on the current branch degrades
to an empty :class:`~apisynth.models.ObjectSchema` and emits a
:class:`~apisynth.exceptions.SchemaResolutionWarning`.  This bounds
self-referential schemas (a tree node whose children are tree nodes) without
unbounded recursion.

Public functions:

* :func:`resolve` -- raw schema (or ``$ref``) to :data:`Schema`.
* :func:`resolve_pointer` -- look up a ``#/a/b/c`` pointer, ``None`` if absent.
* :func:`deref` -- follow ``$ref`` chains on non-schema objects such as
  parameters, request bodies and responses.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any

from apisynth.exceptions import SchemaResolutionWarning
from apisynth.models import (
    ArraySchema,
    BooleanSchema,
    NullSchema,
    NumberSchema,
    ObjectSchema,
    Schema,
    StringSchema,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 3

_METADATA_KEYS = ("title", "description", "default", "enum")

_MISSING = object()


def resolve(
    schema_or_ref: Any,
    root: dict[str, Any],
    visited: frozenset[str] = frozenset(),
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Schema:
    """Resolve a raw schema node against *root* into a :data:`Schema`.

    Args:
        schema_or_ref: A JSON Schema dict, a ``{"$ref": ...}`` dict, or a bare
            ``"#/..."`` pointer string.
        root: The whole raw document the pointers are relative to.
        visited: Pointers already followed on the current branch.  Each
            branch works on its own copy, so two sibling properties that
            reference the same schema both resolve.
        depth: Number of refs followed on the current branch.
        max_depth: Refs followed beyond this count stop expanding.

    Returns:
        A schema tree with no :class:`~apisynth.models.RefSchema` inside.

    Example::

        root = {"components": {"schemas": {"Pet": {"type": "object"}}}}
        resolve({"$ref": "#/components/schemas/Pet"}, root)
        # ObjectSchema(properties={}, ...)
    """
    if isinstance(schema_or_ref, str):
        return _follow(schema_or_ref, {}, root, visited, depth, max_depth)

    if not isinstance(schema_or_ref, dict):
        if schema_or_ref is not None and schema_or_ref is not True:
            _warn(f"Schema node of type {type(schema_or_ref).__name__} replaced by an empty object")
        return ObjectSchema()

    ref = schema_or_ref.get("$ref")
    if isinstance(ref, str):
        return _follow(ref, schema_or_ref, root, visited, depth, max_depth)

    return _build(schema_or_ref, root, visited, depth, max_depth)


def resolve_pointer(pointer: str, root: Any) -> Any:
    """Return the value *pointer* designates inside *root*, or ``None``.

    Handles RFC 6901 escaping (``~1`` for ``/``, ``~0`` for ``~``) and
    numeric segments into lists.  External references (anything not starting
    with ``#``) are not followed.
    """
    value = _lookup(pointer, root)
    return None if value is _MISSING else value


def deref(node: Any, root: dict[str, Any], max_hops: int = 16) -> Any:
    """Follow a chain of ``$ref`` pointers on a non-schema object.

    Parameters, request bodies and responses may themselves be references
    (``#/components/parameters/Limit``).  The chain is followed until a
    concrete object is reached.  A dangling pointer or a cycle returns an
    empty dict.
    """
    seen: set[str] = set()
    current = node
    while isinstance(current, dict) and isinstance(current.get("$ref"), str):
        pointer = current["$ref"]
        if pointer in seen or len(seen) >= max_hops:
            _warn(f"Circular $ref chain at '{pointer}'")
            return {}
        seen.add(pointer)
        target = _lookup(pointer, root)
        if target is _MISSING:
            _warn(f"Cannot resolve $ref '{pointer}'")
            return {}
        current = target
    return current


# ------------------------------------------------------------------ #
# Internals
# ------------------------------------------------------------------ #


def _lookup(pointer: str, root: Any) -> Any:
    if pointer == "#":
        return root
    if not pointer.startswith("#/"):
        return _MISSING

    current: Any = root
    for segment in pointer[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return _MISSING
        else:
            return _MISSING
    return current


def _follow(
    pointer: str,
    node: dict[str, Any],
    root: dict[str, Any],
    visited: frozenset[str],
    depth: int,
    max_depth: int,
) -> Schema:
    if pointer in visited:
        _warn(f"Circular $ref '{pointer}' replaced by an empty object")
        return _stub(node)
    if depth >= max_depth:
        _warn(f"$ref '{pointer}' exceeds depth {max_depth}, replaced by an empty object")
        return _stub(node)

    target = _lookup(pointer, root)
    if target is _MISSING or not isinstance(target, dict):
        _warn(f"Cannot resolve $ref '{pointer}', replaced by an empty object")
        return _stub(node)

    # Sibling keys next to $ref (description, example) override the target.
    merged = dict(target)
    for key, value in node.items():
        if key != "$ref":
            merged[key] = value

    logger.debug("Following %s at depth %d", pointer, depth + 1)
    return resolve(merged, root, visited | {pointer}, depth + 1, max_depth)


def _stub(node: dict[str, Any]) -> ObjectSchema:
    return ObjectSchema(**_metadata(node))


def _build(
    raw: dict[str, Any],
    root: dict[str, Any],
    visited: frozenset[str],
    depth: int,
    max_depth: int,
) -> Schema:
    if isinstance(raw.get("allOf"), list):
        return _merge_all_of(raw, root, visited, depth, max_depth)

    # No polymorphism: anyOf/oneOf degrade to their first member.
    for key in ("oneOf", "anyOf"):
        members = raw.get(key)
        if isinstance(members, list) and members:
            first = dict(members[0]) if isinstance(members[0], dict) else {}
            rest = {k: v for k, v in raw.items() if k not in ("oneOf", "anyOf")}
            if "type" not in rest or "$ref" in first:
                return resolve({**first, **_metadata(rest)}, root, visited, depth, max_depth)

    schema_type, nullable = _schema_type(raw)
    meta = _metadata(raw)
    if nullable:
        meta["nullable"] = True

    if schema_type == "object":
        properties: dict[str, Schema] = {}
        for prop_name, prop_raw in (raw.get("properties") or {}).items():
            prop = resolve(prop_raw, root, visited, depth, max_depth)
            if prop.name is None:
                prop = prop.model_copy(update={"name": prop_name})
            properties[prop_name] = prop
        required = raw.get("required")
        return ObjectSchema(
            properties=properties,
            required=list(required) if isinstance(required, list) else [],
            **meta,
        )

    if schema_type == "array":
        items_raw = raw.get("items")
        items = (
            resolve(items_raw, root, visited, depth, max_depth)
            if isinstance(items_raw, dict)
            else None
        )
        return ArraySchema(
            items=items,
            min_items=raw.get("minItems"),
            max_items=raw.get("maxItems"),
            **meta,
        )

    if schema_type == "string":
        return StringSchema(
            format=raw.get("format"),
            pattern=raw.get("pattern"),
            min_length=raw.get("minLength"),
            max_length=raw.get("maxLength"),
            **meta,
        )

    if schema_type == "file":
        return StringSchema(format="binary", **meta)

    if schema_type in ("number", "integer"):
        return NumberSchema(
            type=schema_type,
            minimum=raw.get("minimum"),
            maximum=raw.get("maximum"),
            **meta,
        )

    if schema_type == "boolean":
        return BooleanSchema(**meta)

    if schema_type == "null":
        return NullSchema(**meta)

    _warn(f"Unknown schema type '{schema_type}' replaced by an empty object")
    return ObjectSchema(**meta)


def _merge_all_of(
    raw: dict[str, Any],
    root: dict[str, Any],
    visited: frozenset[str],
    depth: int,
    max_depth: int,
) -> Schema:
    properties: dict[str, Schema] = {}
    required: list[str] = []
    last: Schema | None = None

    rest = {k: v for k, v in raw.items() if k != "allOf"}
    members = list(raw["allOf"])
    if rest.get("properties") or rest.get("type") == "object":
        members.append(rest)

    for member in members:
        part = resolve(member, root, visited, depth, max_depth)
        if isinstance(part, ObjectSchema):
            properties.update(part.properties)
            required.extend(r for r in part.required if r not in required)
        last = part

    if not properties and last is not None and not isinstance(last, ObjectSchema):
        return last
    return ObjectSchema(properties=properties, required=required, **_metadata(rest))


def _schema_type(raw: dict[str, Any]) -> tuple[str, bool]:
    """Return the effective type and whether ``null`` is allowed.

    Handles OpenAPI 3.1 type arrays (``["string", "null"]``) and infers a
    missing type from ``properties`` or ``items``.
    """
    nullable = bool(raw.get("nullable", False))
    value = raw.get("type")

    if isinstance(value, list):
        non_null = [t for t in value if t != "null"]
        if len(non_null) < len(value):
            nullable = True
        value = non_null[0] if non_null else "null"

    if not value:
        if "properties" in raw or "additionalProperties" in raw:
            value = "object"
        elif "items" in raw:
            value = "array"
        else:
            value = "object"

    return str(value), nullable


def _metadata(raw: dict[str, Any]) -> dict[str, Any]:
    meta: dict[str, Any] = {}
    for key in _METADATA_KEYS:
        if key in raw:
            meta[key] = raw[key]
    if "example" in raw:
        meta["example"] = raw["example"]
    elif isinstance(raw.get("examples"), list) and raw["examples"]:
        meta["example"] = raw["examples"][0]
    if isinstance(meta.get("title"), str) is False:
        meta.pop("title", None)
    if "description" in meta and not isinstance(meta["description"], str):
        meta.pop("description")
    if "enum" in meta and not isinstance(meta["enum"], list):
        meta.pop("enum")
    return meta


def _warn(message: str) -> None:
    logger.debug(message)
    warnings.warn(message, SchemaResolutionWarning, stacklevel=3)
