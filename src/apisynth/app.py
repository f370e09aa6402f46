"""Typer application and CLI entry point for apisynth.

This module builds the root Typer application, registers the built-in
commands (``detect``, ``parse``, ``generate``, ``mock``, ``run``) and
installs the global output and logging configuration in
:func:`main_callback`.

:func:`main` is the console-script entry point declared in
``pyproject.toml``.  :class:`~apisynth.exceptions.ApisynthError` exits with
the error's ``exit_code``; any other exception is written to a crash log
under the data directory.

See Also:
    :mod:`apisynth.config`: Run configuration resolution.
    :mod:`apisynth.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from apisynth import __version__
from apisynth.commands.document import detect_command, parse_command
from apisynth.commands.mock import mock_command
from apisynth.commands.suite import generate_command, run_command
from apisynth.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="apisynth",
    help="Normalize API documents, synthesize mock data and run generated test cases.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("detect")(detect_command)
app.command("parse")(parse_command)
app.command("generate")(generate_command)
app.command("mock")(mock_command)
app.command("run")(run_command)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"apisynth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Project config file (default: ./apisynth.json)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every command.

    Installs the global :class:`~apisynth.output.OutputManager`, routes
    library logging to stderr, and stores shared options in ``ctx.obj``.
    """
    from apisynth.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    configure_logging(verbose=verbose, no_color=no_color)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to ``<data dir>/crash-<timestamp>.log``."""
    from apisynth.config import get_data_dir

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = get_data_dir() / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        encoding="utf-8",
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``apisynth`` console script.

    Unhandled :class:`~apisynth.exceptions.ApisynthError` instances cause a
    clean exit with the error's ``exit_code``.  All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from apisynth.exceptions import ApisynthError
        from apisynth.output import error

        if isinstance(exc, ApisynthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
