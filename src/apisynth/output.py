"""Output formatting and logging with strict stdout/stderr discipline.

* **stdout** -- primary data only (parsed documents, suites, run results,
  tables).  This is what downstream tools pipe and parse.
* **stderr** -- diagnostics: status lines, warnings, errors and log
  records.  Never mixed into the data stream.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb`` and the
  ``--no-color`` flag.

Library modules log through :mod:`logging`; :func:`configure_logging`
routes those records to stderr through a :class:`rich.logging.RichHandler`.
Commands talk to the user through the module-level helpers (:func:`info`,
:func:`error`, :func:`emit`, ...), which delegate to the global
:class:`OutputManager` installed by :func:`~apisynth.app.main_callback`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from apisynth.models import ApiTestResult


class OutputFormat(str, Enum):
    """Supported output formats.

    ``AUTO`` resolves to ``RICH`` on an interactive, colour-capable TTY and
    to ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    Args:
        format: Desired output format. ``AUTO`` resolves from TTY detection.
        no_color: Disable colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Show debug messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        return self._stderr

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def emit(self, data: Any) -> None:
        """Write a data payload to stdout in the active format.

        JSON and Rich modes print the payload as indented JSON (highlighted
        in Rich mode).  Plain mode prints ``key<TAB>value`` lines for a dict
        and one line per item for a list.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps(data))
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_dumps(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout.

        * **Rich mode** -- a styled :class:`~rich.table.Table`.
        * **JSON mode** -- an array of objects keyed by header.
        * **Plain mode** -- tab-separated values, header line first.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps([dict(zip(headers, row)) for row in rows]))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    def print_results(self, results: list[ApiTestResult]) -> None:
        """Print one row per test result; JSON mode prints the full results."""
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps([r.model_dump(mode="json") for r in results]))
            return

        rich = self._format == OutputFormat.RICH
        rows = []
        for result in results:
            status = str(result.response.status) if result.response else "-"
            failures = "; ".join(result.failed_assertions)
            if rich:
                verdict = "[green]PASS[/green]" if result.passed else "[red]FAIL[/red]"
                rows.append([escape(result.test_case_id), verdict, status,
                             f"{result.duration_ms:.1f}", escape(failures)])
            else:
                verdict = "PASS" if result.passed else "FAIL"
                rows.append([result.test_case_id, verdict, status,
                             f"{result.duration_ms:.1f}", failures])
        self.print_table(["Case", "Result", "Status", "ms", "Failures"], rows, title="Test results")

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Informational message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message, "")

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, "", style="green")

    def warning(self, message: str) -> None:
        """Yellow warning. Not suppressed by ``--quiet``."""
        self._diagnostic(message, "Warning: ", style="yellow")

    def error(self, message: str) -> None:
        """Bold-red error. Never suppressed."""
        self._diagnostic(message, "Error: ", style="bold red")

    def debug(self, message: str) -> None:
        """Debug message, only shown with ``--verbose``."""
        if self._verbose:
            self._diagnostic(message, "[debug] ", style="dim")

    def _diagnostic(self, message: str, prefix: str, style: Optional[str] = None) -> None:
        if self._no_color or style is None:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[{style}]{escape(prefix + message)}[/{style}]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, (dict, list)):
                    value = json.dumps(value, ensure_ascii=False, default=str)
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(str(data))


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


# ------------------------------------------------------------------ #
# Logging
# ------------------------------------------------------------------ #


def configure_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Send ``apisynth`` log records to stderr through a Rich handler.

    ``--verbose`` lowers the level to DEBUG.  Resolution and generation
    warnings are captured into the log so they show once, on stderr.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color or _should_disable_color()),
        show_time=verbose,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    for name in ("apisynth", "py.warnings"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(level)

    logging.captureWarnings(True)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating an ``AUTO`` one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global manager; used by tests for a clean state."""
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def emit(data: Any) -> None:
    get_output().emit(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def print_results(results: list[ApiTestResult]) -> None:
    get_output().print_results(results)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
