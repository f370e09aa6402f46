"""Suite commands -- synthesize a test suite and run it.

``apisynth generate DOC`` writes one baseline test case per endpoint as a
:class:`~apisynth.models.TestSuite`.  ``apisynth run SUITE`` sends every
case to a live server, or to mocks built from a document with ``--mock``,
and exits 1 when any case fails.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from apisynth.commands import config_from_context, fail, load_parsed
from apisynth.exceptions import ApisynthError
from apisynth.exit_codes import EXIT_GENERIC_FAILURE
from apisynth.models import ApiTestResult, DocumentFormat, TestCase, TestSuite
from apisynth.output import emit, error, info, print_results, success

# Host used for mocked runs of suites whose cases carry bare paths.
MOCK_BASE_URL = "http://apisynth.mock"


def generate_command(
    ctx: typer.Context,
    document: str = typer.Argument(help="Document path, URL, or '-' for stdin."),
    format: DocumentFormat = typer.Option(
        DocumentFormat.AUTO, "--format", "-f", help="Input format (default: detect)."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the suite to this file instead of stdout."
    ),
    locale: Optional[str] = typer.Option(None, "--locale", help="Faker locale for generated values."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible values."),
) -> None:
    """Synthesize a test suite from an API document.

    Example::

        apisynth generate petstore.yaml -o suite.json
        apisynth generate collection.json --seed 42
    """
    from apisynth.storage import save_suite
    from apisynth.synthesis import synthesize_test_cases

    try:
        config = config_from_context(ctx, cli_locale=locale, cli_seed=seed)
        doc = load_parsed(document, format, config)
        suite = TestSuite(
            name=doc.title,
            source=document,
            format=doc.format,
            base_url=doc.base_url,
            test_cases=synthesize_test_cases(doc, config.mock_options()),
        )
        if output is not None:
            save_suite(suite, output)
    except ApisynthError as exc:
        fail(exc)

    if output is None:
        emit(suite.model_dump(mode="json"))
    else:
        success(f"Wrote {len(suite.test_cases)} test cases to {output}")


def run_command(
    ctx: typer.Context,
    suite_path: Path = typer.Argument(help="Test suite JSON written by 'generate'."),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", "-b", help="Target server; replaces the suite's base URL."
    ),
    mock: Optional[str] = typer.Option(
        None, "--mock", "-m", help="Answer requests from mocks built from this document."
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Request timeout in seconds."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Also write the results to this file."
    ),
) -> None:
    """Run a test suite and report the results.

    Exits 1 when any test case fails.

    Example::

        apisynth run suite.json --base-url http://localhost:8000
        apisynth run suite.json --mock petstore.yaml -o results.json
    """
    from apisynth.execution import MockRegistry, TestRunner
    from apisynth.storage import load_suite, save_results

    try:
        suite = load_suite(suite_path)
        config = config_from_context(ctx, cli_base_url=base_url, cli_timeout=timeout)
        cases = rebase_cases(suite.test_cases, suite.base_url, config.base_url)
        target = config.base_url or suite.base_url

        runner_kwargs = {}
        registry = None
        if mock is not None:
            registry = MockRegistry(config.mock_options())
            count = registry.mock_document(load_parsed(mock, config=config))
            info(f"Mocked {count} endpoints from {mock}")
            runner_kwargs = {
                "transport": registry.transport(),
                "substitute_path_params": False,
            }
            target = target or MOCK_BASE_URL

        try:
            with TestRunner(
                base_url=target,
                timeout=config.timeout,
                settle_delay=config.settle_delay,
                headers=config.headers,
                verify_ssl=config.verify_ssl,
                **runner_kwargs,
            ) as runner:
                results = runner.run(cases)
        finally:
            if registry is not None:
                registry.clear()

        if output is not None:
            save_results(results, output)
    except ApisynthError as exc:
        fail(exc)

    print_results(results)
    _report(results, output)


def rebase_cases(
    cases: list[TestCase], old_base: str, new_base: Optional[str]
) -> list[TestCase]:
    """Point cases recorded against *old_base* at *new_base* instead."""
    if not new_base or not old_base:
        return list(cases)
    old = old_base.rstrip("/")
    new = new_base.rstrip("/")
    rebased = []
    for case in cases:
        if case.endpoint.startswith(old):
            case = case.model_copy(update={"endpoint": new + case.endpoint[len(old):]})
        rebased.append(case)
    return rebased


def _report(results: list[ApiTestResult], output: Optional[Path]) -> None:
    failed = sum(1 for r in results if not r.passed)
    passed = len(results) - failed
    if output is not None:
        info(f"Results written to {output}")
    if failed:
        error(f"{failed} of {len(results)} test cases failed")
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)
    success(f"{passed} test cases passed")
