"""Exception hierarchy for apisynth.

All exceptions inherit from :class:`ApisynthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apisynth.exit_codes`.
The top-level error handler in :func:`apisynth.app.main` catches
``ApisynthError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    ApisynthError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- ExecutionError          (exit 6)
    +-- ParseError              (exit 7)
    +-- UnsupportedFormatError  (exit 8)
    +-- ConfigError             (exit 1)

Two warning categories cover recoverable problems that never abort a run:
:class:`SchemaResolutionWarning` (dangling or cyclic ``$ref``) and
:class:`GenerationFallback` (a shape the mock generators do not recognise).
"""

from __future__ import annotations

from typing import Optional

from apisynth.exit_codes import (
    EXIT_EXECUTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PARSE_ERROR,
    EXIT_UNSUPPORTED_FORMAT,
)


class ApisynthError(Exception):
    """Base exception for all apisynth errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`apisynth.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ApisynthError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ExecutionError(ApisynthError):
    """Raised when a test run cannot start (e.g. no base URL and no mocks)."""

    exit_code = EXIT_EXECUTION_ERROR


class ParseError(ApisynthError):
    """Raised when a document is not valid JSON/YAML or fails a shape check.

    The offending ``source`` (file path, URL, ``"stdin"``) is prefixed to
    the message when known.
    """

    exit_code = EXIT_PARSE_ERROR

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class UnsupportedFormatError(ApisynthError):
    """Raised when a format cannot be detected or has no registered parser."""

    exit_code = EXIT_UNSUPPORTED_FORMAT


class ConfigError(ApisynthError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class SchemaResolutionWarning(UserWarning):
    """A ``$ref`` was dangling, external, cyclic or nested too deeply.

    The resolver substitutes an empty object schema and carries on.
    """


class GenerationFallback(UserWarning):
    """A schema or example shape fell through to a generic default value."""
