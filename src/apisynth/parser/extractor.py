"""Walk OpenAPI-family documents and extract operation pieces.

Helpers shared by the OpenAPI 3.x and Swagger 2.0 parsers.  Each function
handles one section of the structure:

* :func:`iter_operations` -- the ``paths`` object, yielding every path and
  recognised HTTP method.
* :func:`merge_parameters` -- path-level parameters provide defaults and
  operation-level parameters override them on the same ``name`` and ``in``.
* :func:`group_parameters` -- raw parameter dicts to
  :class:`~apisynth.models.ParamSpec` grouped by location.
* :func:`pick_media_type` -- choose the JSON entry of a ``content`` map.
* :func:`extract_examples` -- ``examples`` maps and singular ``example``
  values.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Optional

from apisynth.exceptions import ParseError
from apisynth.models import Example, ParameterLocation, ParamSpec
from apisynth.parser.resolver import deref, resolve

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options")

_LOCATIONS = frozenset(loc.value for loc in ParameterLocation)


def iter_operations(
    raw: dict[str, Any], source: Optional[str] = None
) -> Iterator[tuple[str, str, dict[str, Any], dict[str, Any]]]:
    """Yield ``(path, method, path_item, operation)`` for every operation.

    Raises:
        ParseError: If ``paths`` is present but not an object.
    """
    paths = raw.get("paths") or {}
    if not isinstance(paths, dict):
        raise ParseError("'paths' must be an object", source=source)

    for path, path_item in paths.items():
        path_item = deref(path_item, raw)
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if isinstance(operation, dict):
                yield str(path), method, path_item, operation


def merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field).
    """
    op_keys = {(p.get("name", ""), p.get("in", "")) for p in op_params}
    merged = [p for p in path_params if (p.get("name", ""), p.get("in", "")) not in op_keys]
    merged.extend(op_params)
    return merged


def deref_list(items: Any, root: dict[str, Any]) -> list[dict[str, Any]]:
    """Dereference every entry of a raw parameter list, dropping non-objects."""
    if not isinstance(items, list):
        return []
    result = []
    for item in items:
        item = deref(item, root)
        if isinstance(item, dict) and item:
            result.append(item)
    return result


def group_parameters(
    params: list[dict[str, Any]],
    root: dict[str, Any],
    schema_of: Callable[[dict[str, Any]], Any],
    max_depth: int,
) -> dict[str, dict[str, ParamSpec]]:
    """Convert raw parameters into :class:`ParamSpec` grouped by location.

    Parameters whose ``in`` is not one of path, query, header or cookie
    (Swagger's ``body`` and ``formData``) are left to the caller.  Path
    parameters are always required regardless of the ``required`` field.

    Args:
        params: Merged raw parameter dicts.
        root: The raw document, for ``$ref`` resolution.
        schema_of: Returns the raw schema of one parameter.  OpenAPI 3 reads
            ``schema``; Swagger 2 declares the type inline.
        max_depth: Passed through to the resolver.
    """
    grouped: dict[str, dict[str, ParamSpec]] = {}

    for param in params:
        location = param.get("in")
        name = param.get("name")
        if location not in _LOCATIONS or not name:
            continue

        raw_schema = schema_of(param)
        schema = resolve(raw_schema, root, max_depth=max_depth) if raw_schema else None

        default = param.get("default")
        if default is None and schema is not None:
            default = schema.default

        example = param.get("example")
        if example is None and isinstance(param.get("examples"), dict):
            for entry in param["examples"].values():
                entry = deref(entry, root)
                if isinstance(entry, dict) and "value" in entry:
                    example = entry["value"]
                    break
        if example is None and schema is not None and schema.has_example:
            example = schema.example

        grouped.setdefault(location, {})[name] = ParamSpec(
            name=name,
            location=ParameterLocation(location),
            required=True if location == "path" else bool(param.get("required", False)),
            description=param.get("description"),
            schema=schema,
            default=default,
            example=example,
        )

    return grouped


def pick_media_type(content: Any) -> tuple[Optional[str], dict[str, Any]]:
    """Return ``(content_type, media_object)``, preferring JSON media types.

    ``application/json`` wins, then any ``*+json`` or ``*json*`` type, then
    the first declared entry.  An empty or invalid map yields
    ``(None, {})``.
    """
    if not isinstance(content, dict) or not content:
        return None, {}

    if isinstance(content.get("application/json"), dict):
        return "application/json", content["application/json"]

    for content_type, media in content.items():
        if "json" in content_type.lower() and isinstance(media, dict):
            return content_type, media

    content_type, media = next(iter(content.items()))
    return content_type, media if isinstance(media, dict) else {}


def extract_examples(
    container: dict[str, Any],
    root: dict[str, Any],
    content_type: Optional[str] = None,
    status_code: Optional[str] = None,
) -> list[Example]:
    """Collect examples declared on a media object or Swagger parameter.

    An ``examples`` map wins over a singular ``example``.  OpenAPI 3 wraps
    each named example in an Example Object with a ``value``; Swagger 2 maps
    mime types straight to values, in which case the key becomes the
    content type.
    """
    examples: list[Example] = []
    named = container.get("examples")

    if isinstance(named, dict) and named:
        for key, entry in named.items():
            entry = deref(entry, root)
            if isinstance(entry, dict) and "value" in entry:
                examples.append(
                    Example(
                        name=str(entry.get("summary") or key),
                        content_type=content_type,
                        status_code=status_code,
                        value=entry["value"],
                    )
                )
            elif isinstance(entry, dict) and "externalValue" in entry:
                logger.debug("External example %s ignored", entry["externalValue"])
            else:
                examples.append(
                    Example(
                        name=str(key),
                        content_type=content_type or (str(key) if "/" in str(key) else None),
                        status_code=status_code,
                        value=entry,
                    )
                )
    elif "example" in container:
        examples.append(
            Example(content_type=content_type, status_code=status_code, value=container["example"])
        )

    return examples
