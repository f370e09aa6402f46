"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apisynth.exceptions.ApisynthError` subclass.
CI scripts can inspect the exit code to tell a failing test run apart from
a document that could not be parsed.

Example::

    $ apisynth generate broken.yaml -o suite.json
    $ echo $?
    7   # EXIT_PARSE_ERROR -- the document is not valid YAML
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred, or at least one test case failed."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_EXECUTION_ERROR = 6
"""The test runner could not talk to its HTTP transport at all."""

EXIT_PARSE_ERROR = 7
"""The API document could not be parsed or failed a required-field check."""

EXIT_UNSUPPORTED_FORMAT = 8
"""The document format could not be detected or has no registered parser."""
