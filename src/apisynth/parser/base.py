"""Common contract shared by every format parser.

A parser turns one raw document (already loaded into a ``dict`` by
:mod:`apisynth.parser.loader`) into a :class:`~apisynth.models.ParsedDocument`
and can derive baseline test cases from the result.  Concrete parsers live in
:mod:`~apisynth.parser.openapi_v3`, :mod:`~apisynth.parser.openapi_v2`,
:mod:`~apisynth.parser.postman` and :mod:`~apisynth.parser.apifox`.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Callable, ClassVar, Iterable, Optional

from apisynth.exceptions import ParseError
from apisynth.models import (
    DocumentFormat,
    Endpoint,
    MockDataOptions,
    ParsedDocument,
    TestCase,
)
from apisynth.parser.resolver import DEFAULT_MAX_DEPTH
from apisynth.synthesis import synthesize_test_cases

logger = logging.getLogger(__name__)

EndpointBuilder = tuple[str, str, Callable[[], Endpoint]]
"""``(path, method, build)`` -- *build* is called lazily by :meth:`DocumentParser.collect`."""


class DocumentParser(abc.ABC):
    """Abstract base class for format parsers.

    Args:
        options: Mock data options used by :meth:`generate_test_cases` when
            the caller does not pass its own.
        max_ref_depth: Maximum number of ``$ref`` hops the schema resolver
            follows on one branch.
    """

    format: ClassVar[DocumentFormat]

    def __init__(
        self,
        options: Optional[MockDataOptions] = None,
        max_ref_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.options = options or MockDataOptions()
        self.max_ref_depth = max_ref_depth

    @abc.abstractmethod
    def parse_document(
        self, raw: dict[str, Any], source: Optional[str] = None
    ) -> ParsedDocument:
        """Normalize *raw* into a :class:`ParsedDocument`.

        Raises:
            ParseError: If *raw* fails this format's required-field checks.
        """

    def generate_test_cases(
        self,
        doc: ParsedDocument,
        options: Optional[MockDataOptions] = None,
    ) -> list[TestCase]:
        """Synthesize baseline test cases for every endpoint of *doc*."""
        return synthesize_test_cases(doc, options or self.options)

    def collect(self, builders: Iterable[EndpointBuilder]) -> list[Endpoint]:
        """Build endpoints, dropping duplicates and isolating failures.

        The first endpoint for a ``(path, method)`` pair wins; later ones are
        dropped with a warning.  A builder that raises anything other than
        :class:`ParseError` skips only its own endpoint.
        """
        endpoints: list[Endpoint] = []
        seen: set[tuple[str, str]] = set()

        for path, method, build in builders:
            key = (path, method.upper())
            if key in seen:
                logger.warning("Duplicate endpoint %s %s dropped", key[1], path)
                continue
            try:
                endpoint = build()
            except ParseError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.warning("Skipping endpoint %s %s: %s", key[1], path, exc)
                continue
            seen.add(key)
            endpoints.append(endpoint)

        logger.debug("Collected %d endpoints", len(endpoints))
        return endpoints

    def __repr__(self) -> str:
        return f"{type(self).__name__}(format={self.format.value!r})"
