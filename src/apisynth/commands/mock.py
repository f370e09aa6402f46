"""Mock command -- print a synthesized response body for one endpoint."""

from __future__ import annotations

from typing import Optional

import typer

from apisynth.commands import config_from_context, fail, load_parsed
from apisynth.exceptions import ApisynthError, InvalidUsageError
from apisynth.models import DocumentFormat
from apisynth.output import debug, emit, info


def mock_command(
    ctx: typer.Context,
    document: str = typer.Argument(help="Document path, URL, or '-' for stdin."),
    method: str = typer.Argument(help="HTTP method, e.g. GET."),
    path: str = typer.Argument(help="Endpoint path as declared, e.g. /pets/{id}."),
    status: Optional[int] = typer.Option(
        None, "--status", "-s", help="Response status to mock (default: the success status)."
    ),
    from_example: bool = typer.Option(
        False, "--from-example", help="Vary the declared response example instead of the schema."
    ),
    format: DocumentFormat = typer.Option(
        DocumentFormat.AUTO, "--format", "-f", help="Input format (default: detect)."
    ),
    locale: Optional[str] = typer.Option(None, "--locale", help="Faker locale for generated values."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible values."),
) -> None:
    """Print a mock response body for METHOD PATH.

    The body is generated from the response schema for the status, or
    varied from the response example with ``--from-example``.

    Example::

        apisynth mock petstore.yaml GET /pets/{id}
        apisynth mock petstore.yaml POST /pets --status 201 --seed 7
    """
    from apisynth.execution import MockRegistry
    from apisynth.synthesis.testcases import success_example, success_schema, success_status

    try:
        config = config_from_context(ctx, cli_locale=locale, cli_seed=seed)
        doc = load_parsed(document, format, config)
        endpoint = doc.find_endpoint(path, method)
        if endpoint is None:
            raise InvalidUsageError(f"no endpoint {method.upper()} {path} in {document}")

        code = status or success_status(endpoint)
        registry = MockRegistry(config.mock_options())
        example = success_example(endpoint, code)
        schema = success_schema(endpoint, code)
        if from_example:
            if example is None:
                raise InvalidUsageError(f"no response example for {method.upper()} {path} ({code})")
            response = registry.mock_with_example(method, path, example.value, code)
        elif schema is not None:
            response = registry.mock_with_schema(method, path, schema, code)
        elif example is not None:
            response = registry.mock_endpoint(method, path, {"status": code, "body": example.value})
        else:
            response = registry.mock_endpoint(method, path, {"status": code})
    except ApisynthError as exc:
        fail(exc)

    debug(f"Mocked {method.upper()} {path} -> {response.status}")
    if response.body is None:
        info(f"{method.upper()} {path} responds {response.status} with an empty body")
        return
    emit(response.body)
