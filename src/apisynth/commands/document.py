"""Document commands -- detect the format of a document and normalize it.

``apisynth detect DOC`` prints the detected format.  ``apisynth parse DOC``
lists the normalized endpoints (or, with ``--json``, the whole
:class:`~apisynth.models.ParsedDocument`) and can save a JSON snapshot.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from apisynth.commands import config_from_context, fail, load_parsed
from apisynth.exceptions import ApisynthError
from apisynth.models import DocumentFormat, ParameterLocation
from apisynth.output import OutputFormat, emit, get_output, print_table, success


def detect_command(
    document: str = typer.Argument(help="Document path, URL, or '-' for stdin."),
) -> None:
    """Detect the format of an API document.

    Example::

        apisynth detect petstore.yaml
        openapi
    """
    from apisynth.parser import detect_format, load_document

    try:
        fmt = detect_format(load_document(document))
    except ApisynthError as exc:
        fail(exc)

    if get_output().format == OutputFormat.JSON:
        emit({"source": document, "format": fmt.value})
    else:
        get_output().print_data(fmt.value)


def parse_command(
    ctx: typer.Context,
    document: str = typer.Argument(help="Document path, URL, or '-' for stdin."),
    format: DocumentFormat = typer.Option(
        DocumentFormat.AUTO, "--format", "-f", help="Input format (default: detect)."
    ),
    save: Optional[Path] = typer.Option(
        None, "--save", help="Write the normalized document as JSON."
    ),
) -> None:
    """Normalize an API document and list its endpoints.

    Example::

        apisynth parse petstore.yaml
        apisynth --json parse collection.json --format postman
        apisynth parse swagger.json --save parsed.json
    """
    from apisynth.storage import save_document

    try:
        doc = load_parsed(document, format, config_from_context(ctx))
        if save is not None:
            save_document(doc, save)
    except ApisynthError as exc:
        fail(exc)

    if get_output().format == OutputFormat.JSON:
        emit(doc.model_dump(mode="json", by_alias=True))
    else:
        rows = [
            [
                ep.method.value,
                ep.path,
                ", ".join(ep.params_in(ParameterLocation.PATH)),
                ", ".join(sorted(ep.response_schemas)),
                ep.summary or "",
            ]
            for ep in doc.endpoints
        ]
        print_table(
            ["Method", "Path", "Path params", "Responses", "Summary"],
            rows,
            title=f"{doc.title} {doc.version} ({doc.format.value})",
        )

    if save is not None:
        success(f"Saved {len(doc.endpoints)} endpoints to {save}")
