"""Read raw API documents from a URL, local file, stdin, or memory.

Every supported format (OpenAPI 3.x, Swagger 2.0, Postman Collection v2,
Apifox) is a JSON or YAML document whose root is an object, so loading is
format-agnostic: this module only turns bytes into a ``dict``.  Choosing the
parser for that dict is the job of :mod:`apisynth.parser.registry`.

Public functions:

* :func:`load_document` -- load from ``-`` (stdin), ``http(s)://`` or a path.
* :func:`parse_text` -- parse text that is already in memory.

Every failure raises :class:`~apisynth.exceptions.ParseError` with the
offending source attached.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from apisynth.exceptions import ParseError

_YAML_SUFFIXES = (".yaml", ".yml")


def load_document(source: str) -> dict[str, Any]:
    """Load an API document from URL, file path, or stdin (``'-'``).

    Args:
        source: A URL (http/https), file path, or ``'-'`` for stdin.

    Returns:
        The document as a dictionary.

    Raises:
        ParseError: If the source cannot be read or its content cannot be
            parsed into an object.
    """
    if source == "-":
        return _read_stdin()
    if source.startswith(("http://", "https://")):
        return _fetch(source)
    return _read_file(source)


def parse_text(text: str, source: Optional[str] = None, hint: str = "") -> dict[str, Any]:
    """Parse *text* as JSON, falling back to YAML.

    JSON is tried first unless *hint* is ``"yaml"``.  A ``"json"`` hint
    disables the YAML fallback so that a broken ``.json`` file reports the
    JSON error rather than a confusing YAML one.

    Args:
        text: Raw document content.
        source: Where the text came from, used in error messages.
        hint: ``"json"``, ``"yaml"`` or empty.

    Raises:
        ParseError: If the text is empty, unparseable, or not an object.
    """
    if not text.strip():
        raise ParseError("document is empty", source=source)

    json_error: Exception | None = None

    if hint != "yaml":
        try:
            return _require_object(json.loads(text), source)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise ParseError(f"invalid JSON: {exc}", source=source) from exc
            json_error = exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = "cannot parse document as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise ParseError(msg, source=source) from exc

    return _require_object(data, source)


def hint_for_path(path: str) -> str:
    """Return the parse hint implied by a file extension."""
    suffix = Path(path).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in _YAML_SUFFIXES:
        return "yaml"
    return ""


def _require_object(data: Any, source: Optional[str]) -> dict[str, Any]:
    if not isinstance(data, dict):
        kind = type(data).__name__ if data is not None else "empty document"
        raise ParseError(f"document root must be an object (got {kind})", source=source)
    return data


def _read_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise ParseError(f"failed to read: {exc}", source="stdin") from exc
    return parse_text(content, source="stdin")


def _fetch(url: str) -> dict[str, Any]:
    """Fetch a document over HTTP, using the content type as a parse hint."""
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ParseError(f"HTTP {exc.response.status_code}", source=url) from exc
    except httpx.RequestError as exc:
        raise ParseError(f"request failed: {exc}", source=url) from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"

    return parse_text(response.text, source=url, hint=hint)


def _read_file(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise ParseError("file not found", source=path)

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"failed to read file: {exc}", source=path) from exc

    return parse_text(content, source=path, hint=hint_for_path(path))
