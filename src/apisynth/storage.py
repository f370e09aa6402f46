"""JSON snapshots of parsed documents, test suites and run results.

Every writer serialises through pydantic and goes through
:func:`~apisynth.config.atomic_write`, so a crash mid-write never leaves a
truncated file behind.  Readers raise :class:`~apisynth.exceptions.ParseError`
when a file is not valid JSON or does not match the model.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Union

from pydantic import TypeAdapter, ValidationError

from apisynth.config import atomic_write
from apisynth.exceptions import ParseError
from apisynth.models import ApiTestResult, ParsedDocument, TestSuite

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_RESULTS_ADAPTER = TypeAdapter(list[ApiTestResult])


def save_document(doc: ParsedDocument, path: PathLike) -> Path:
    return _write(path, doc.model_dump(mode="json", by_alias=True))


def load_document_snapshot(path: PathLike) -> ParsedDocument:
    return _read(path, ParsedDocument.model_validate)


def save_suite(suite: TestSuite, path: PathLike) -> Path:
    return _write(path, suite.model_dump(mode="json", by_alias=True))


def load_suite(path: PathLike) -> TestSuite:
    return _read(path, TestSuite.model_validate)


def save_results(results: Iterable[ApiTestResult], path: PathLike) -> Path:
    return _write(path, _RESULTS_ADAPTER.dump_python(list(results), mode="json"))


def load_results(path: PathLike) -> list[ApiTestResult]:
    return _read(path, _RESULTS_ADAPTER.validate_python)


def _write(path: PathLike, data: Any) -> Path:
    target = Path(path)
    atomic_write(target, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    logger.debug("Wrote %s", target)
    return target


def _read(path: PathLike, validate: Any) -> Any:
    source = str(path)
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ParseError(f"cannot read file: {exc}", source) from exc
    except ValueError as exc:
        raise ParseError(f"invalid JSON: {exc}", source) from exc
    try:
        return validate(data)
    except ValidationError as exc:
        raise ParseError(f"unexpected content: {exc.error_count()} validation errors", source) from exc
