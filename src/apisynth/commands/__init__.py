"""Built-in CLI commands for apisynth.

Each module exports plain callback functions that :mod:`apisynth.app`
registers directly on the root Typer application:

* :mod:`~apisynth.commands.document` -- ``detect`` and ``parse``.
* :mod:`~apisynth.commands.suite` -- ``generate`` and ``run``.
* :mod:`~apisynth.commands.mock` -- ``mock``.

Shared helpers live here: resolving the run configuration from the Typer
context and loading a document into a
:class:`~apisynth.models.ParsedDocument`.
"""

from __future__ import annotations

from typing import NoReturn, Optional

import typer

from apisynth.exceptions import ApisynthError
from apisynth.models import DocumentFormat, ParsedDocument, RunConfig
from apisynth.output import debug, error


def fail(exc: ApisynthError) -> NoReturn:
    """Report *exc* on stderr and exit with its exit code."""
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def config_from_context(ctx: typer.Context, **cli: object) -> RunConfig:
    """Resolve the :class:`RunConfig` using ``--config`` from the root callback."""
    from apisynth.config import resolve_config

    config_path = (ctx.obj or {}).get("config_path")
    return resolve_config(config_path=config_path, **cli)  # type: ignore[arg-type]


def load_parsed(
    source: str,
    format: DocumentFormat = DocumentFormat.AUTO,
    config: Optional[RunConfig] = None,
) -> ParsedDocument:
    """Load *source* and normalize it with the default parser registry.

    Raises:
        ParseError: If the document cannot be read or parsed.
        UnsupportedFormatError: If its format cannot be detected.
    """
    from apisynth.parser import create_default_registry, load_document

    config = config or RunConfig()
    raw = load_document(source)
    registry = create_default_registry(config.mock_options(), max_ref_depth=config.max_ref_depth)
    doc = registry.parse(raw, format=format, source=source)
    debug(f"Parsed {len(doc.endpoints)} endpoints from {source} ({doc.format.value})")
    return doc
