"""apisynth -- normalize API documents and synthesize mock data and test cases.

This package ingests OpenAPI 3.x, Swagger 2.0, Postman Collection v2 and
Apifox documents, converts them into one canonical
:class:`~apisynth.models.ParsedDocument`, and derives baseline API test
cases whose assertions can be evaluated against live or mocked responses.

Typical workflow::

    apisynth parse petstore.yaml            # inspect the normalized endpoints
    apisynth generate petstore.yaml -o suite.json
    apisynth run suite.json --mock petstore.yaml

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: Layered run configuration (flags, env, project, global).
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    storage: JSON snapshots of documents, suites and results.
"""

__version__ = "0.1.0"
