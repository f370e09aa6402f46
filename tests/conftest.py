"""Shared test fixtures for apisynth.

Provides raw and parsed document fixtures, an isolated config environment,
output state management and a CLI runner.  These fixtures are discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any

import pytest

from apisynth.models import MockDataOptions, ParsedDocument
from apisynth.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager holds Rich consoles bound to the streams that existed
    when it was created.  CliRunner swaps those streams during a test, so a
    fresh manager is created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Raw document fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_raw() -> dict[str, Any]:
    """OpenAPI 3.0 petstore: list/create pets, get/delete one pet."""
    return load_fixture("petstore_v3.json")


@pytest.fixture
def swagger_raw() -> dict[str, Any]:
    return load_fixture("swagger_v2.json")


@pytest.fixture
def postman_raw() -> dict[str, Any]:
    return load_fixture("postman_collection.json")


@pytest.fixture
def apifox_raw() -> dict[str, Any]:
    return load_fixture("apifox.json")


@pytest.fixture
def recursive_raw() -> dict[str, Any]:
    """OpenAPI 3.0 document whose Node schema contains a list of Nodes."""
    return load_fixture("recursive.json")


# ---------------------------------------------------------------------------
# Parsed document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_doc(petstore_raw: dict[str, Any]) -> ParsedDocument:
    from apisynth.parser.openapi_v3 import OpenAPIV3Parser

    return OpenAPIV3Parser().parse_document(petstore_raw, source="petstore_v3.json")


@pytest.fixture
def seeded_options() -> MockDataOptions:
    """Mock options with a fixed seed for reproducible values."""
    return MockDataOptions(seed=1234)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, clears all APISYNTH_*
    environment variables, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("apisynth.config._is_xdg_platform", lambda: True)

    for var in [
        "APISYNTH_BASE_URL",
        "APISYNTH_TIMEOUT",
        "APISYNTH_LOCALE",
        "APISYNTH_SEED",
        "APISYNTH_SETTLE_DELAY",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Warning control
# ---------------------------------------------------------------------------


@pytest.fixture
def no_warnings() -> None:
    """Fail the test if any warning is emitted."""
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        yield


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
