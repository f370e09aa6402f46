"""End-to-end tests for the apisynth command line.

Every command is invoked through the real root application so that the
global callback (output format, logging, ``--config``) runs exactly as it
does from the console script.  Runs go against mocks built from the
fixture documents; nothing touches the network.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from apisynth import __version__
from apisynth.app import app
from apisynth.execution import MockRegistry
from apisynth.exit_codes import (
    EXIT_EXECUTION_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_PARSE_ERROR,
    EXIT_SUCCESS,
    EXIT_UNSUPPORTED_FORMAT,
)
from apisynth.models import Assertion, AssertionType, HTTPMethod, TestCase, TestSuite
from apisynth.storage import load_results, load_suite, save_suite

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
PETSTORE = str(FIXTURES_DIR / "petstore_v3.json")


@pytest.fixture
def runner(isolated_config: Path) -> CliRunner:
    """CLI runner whose config lookups stay inside a temporary directory."""
    return CliRunner()


def _invoke(runner: CliRunner, *args: str, input: str | None = None):
    return runner.invoke(app, ["--no-color", *args], input=input)


def _write_suite(path: Path, cases: list[TestCase], base_url: str = "") -> Path:
    return save_suite(TestSuite(name="handmade", base_url=base_url, test_cases=cases), path)


# ---------------------------------------------------------------------------
# Root options
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, runner: CliRunner) -> None:
        result = _invoke(runner, "--version")
        assert result.exit_code == EXIT_SUCCESS
        assert f"apisynth {__version__}" in result.output

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, [])
        assert "detect" in result.output
        assert "generate" in result.output


# ---------------------------------------------------------------------------
# detect
# ---------------------------------------------------------------------------


class TestDetect:
    def test_plain(self, runner: CliRunner) -> None:
        result = _invoke(runner, "detect", PETSTORE)
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert result.stdout.strip() == "openapi"

    def test_each_fixture(self, runner: CliRunner) -> None:
        expected = {
            "swagger_v2.json": "swagger",
            "postman_collection.json": "postman",
            "apifox.json": "apifox",
            "pet_by_id.yaml": "openapi",
        }
        for name, fmt in expected.items():
            result = _invoke(runner, "detect", str(FIXTURES_DIR / name))
            assert result.stdout.strip() == fmt, name

    def test_json(self, runner: CliRunner) -> None:
        result = _invoke(runner, "--json", "detect", PETSTORE)
        assert json.loads(result.stdout) == {"source": PETSTORE, "format": "openapi"}

    def test_stdin(self, runner: CliRunner) -> None:
        document = "swagger: '2.0'\ninfo:\n  title: T\n  version: '1'\npaths: {}\n"
        result = _invoke(runner, "detect", "-", input=document)
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert result.stdout.strip() == "swagger"

    def test_missing_file(self, runner: CliRunner, isolated_config: Path) -> None:
        result = _invoke(runner, "detect", str(isolated_config / "missing.json"))
        assert result.exit_code == EXIT_PARSE_ERROR
        assert "file not found" in result.output

    def test_unrecognised(self, runner: CliRunner, isolated_config: Path) -> None:
        path = isolated_config / "other.json"
        path.write_text(json.dumps({"hello": "world"}), encoding="utf-8")
        result = _invoke(runner, "detect", str(path))
        assert result.exit_code == EXIT_UNSUPPORTED_FORMAT
        assert "Error:" in result.output


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


class TestParse:
    def test_plain_table(self, runner: CliRunner) -> None:
        result = _invoke(runner, "parse", PETSTORE)
        assert result.exit_code == EXIT_SUCCESS, result.output
        lines = result.stdout.splitlines()
        assert lines[0] == "Method\tPath\tPath params\tResponses\tSummary"
        assert lines[1] == "GET\t/pets\t\t200\tList all pets"
        assert any(line.startswith("GET\t/pets/{id}\tid\t") for line in lines)
        assert len(lines) == 5

    def test_json(self, runner: CliRunner) -> None:
        result = _invoke(runner, "--json", "parse", PETSTORE)
        data = json.loads(result.stdout)
        assert data["title"] == "Petstore"
        assert data["base_url"] == "http://petstore.test/v1"
        assert [(e["method"], e["path"]) for e in data["endpoints"]] == [
            ("GET", "/pets"),
            ("POST", "/pets"),
            ("GET", "/pets/{id}"),
            ("DELETE", "/pets/{id}"),
        ]

    def test_explicit_format_mismatch(self, runner: CliRunner) -> None:
        result = _invoke(runner, "parse", PETSTORE, "--format", "postman")
        assert result.exit_code == EXIT_PARSE_ERROR

    def test_save(self, runner: CliRunner, isolated_config: Path) -> None:
        target = isolated_config / "out" / "doc.json"
        result = _invoke(runner, "parse", PETSTORE, "--save", str(target))
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "Saved 4 endpoints" in result.output
        assert json.loads(target.read_text(encoding="utf-8"))["format"] == "openapi"


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_to_file(self, runner: CliRunner, isolated_config: Path) -> None:
        target = isolated_config / "suite.json"
        result = _invoke(runner, "generate", PETSTORE, "-o", str(target), "--seed", "7")
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "Wrote 4 test cases" in result.output

        suite = load_suite(target)
        assert suite.name == "Petstore"
        assert suite.source == PETSTORE
        assert suite.base_url == "http://petstore.test/v1"
        assert [c.id for c in suite.test_cases] == ["get-pets", "post-pets", "get-pets-id", "delete-pets-id"]

    def test_to_stdout(self, runner: CliRunner) -> None:
        result = _invoke(runner, "--json", "generate", PETSTORE, "--seed", "7")
        assert result.exit_code == EXIT_SUCCESS, result.output
        suite = TestSuite.model_validate(json.loads(result.stdout))
        assert len(suite.test_cases) == 4

    def test_seed_is_reproducible(self, runner: CliRunner) -> None:
        first = _invoke(runner, "--json", "generate", PETSTORE, "--seed", "3")
        second = _invoke(runner, "--json", "generate", PETSTORE, "--seed", "3")
        cases = [json.loads(r.stdout)["test_cases"] for r in (first, second)]
        assert cases[0] == cases[1]


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRun:
    @pytest.fixture
    def suite_file(self, runner: CliRunner, isolated_config: Path) -> Path:
        target = isolated_config / "suite.json"
        result = _invoke(runner, "generate", PETSTORE, "-o", str(target), "--seed", "11")
        assert result.exit_code == EXIT_SUCCESS, result.output
        return target

    def test_against_mocks(self, runner: CliRunner, suite_file: Path) -> None:
        result = _invoke(runner, "run", str(suite_file), "--mock", PETSTORE)
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "Mocked 4 endpoints" in result.output
        assert "4 test cases passed" in result.output
        assert "get-pets\tPASS\t200\t" in result.stdout

    def test_results_file(self, runner: CliRunner, suite_file: Path, isolated_config: Path) -> None:
        target = isolated_config / "results.json"
        result = _invoke(runner, "run", str(suite_file), "--mock", PETSTORE, "-o", str(target))
        assert result.exit_code == EXIT_SUCCESS, result.output

        results = load_results(target)
        assert [r.test_case_id for r in results] == ["get-pets", "post-pets", "get-pets-id", "delete-pets-id"]
        assert all(r.passed for r in results)

    def test_json_results(self, runner: CliRunner, suite_file: Path) -> None:
        result = _invoke(runner, "--json", "--quiet", "run", str(suite_file), "--mock", PETSTORE)
        assert result.exit_code == EXIT_SUCCESS, result.output
        data = json.loads(result.stdout)
        assert [r["passed"] for r in data] == [True] * 4

    def test_registry_cleared_after_run(
        self, runner: CliRunner, suite_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        cleared: list[int] = []
        original = MockRegistry.clear

        def recording_clear(registry: MockRegistry) -> None:
            cleared.append(len(registry.recorded_requests))
            original(registry)
            assert len(registry) == 0

        monkeypatch.setattr(MockRegistry, "clear", recording_clear)
        result = _invoke(runner, "run", str(suite_file), "--mock", PETSTORE)
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert cleared == [4]

    def test_failing_case_exits_one(self, runner: CliRunner, isolated_config: Path) -> None:
        suite = _write_suite(
            isolated_config / "suite.json",
            [
                TestCase(
                    id="unknown",
                    endpoint="/nothing",
                    method=HTTPMethod.GET,
                    assertions=[Assertion(type=AssertionType.STATUS, value=200)],
                )
            ],
        )
        result = _invoke(runner, "run", str(suite), "--mock", PETSTORE)
        assert result.exit_code == 1
        assert "unknown\tFAIL\t404\t" in result.stdout
        assert "1 of 1 test cases failed" in result.output

    def test_relative_endpoint_without_base_url(self, runner: CliRunner, isolated_config: Path) -> None:
        suite = _write_suite(
            isolated_config / "suite.json",
            [TestCase(id="rel", endpoint="/pets", method=HTTPMethod.GET)],
        )
        result = _invoke(runner, "run", str(suite))
        assert result.exit_code == EXIT_EXECUTION_ERROR
        assert "no base URL" in result.output

    def test_missing_suite(self, runner: CliRunner, isolated_config: Path) -> None:
        result = _invoke(runner, "run", str(isolated_config / "nope.json"))
        assert result.exit_code == EXIT_PARSE_ERROR
        assert "cannot read file" in result.output


# ---------------------------------------------------------------------------
# mock
# ---------------------------------------------------------------------------


class TestMock:
    def test_schema_body(self, runner: CliRunner) -> None:
        result = _invoke(runner, "--json", "mock", PETSTORE, "GET", "/pets/{id}", "--seed", "5")
        assert result.exit_code == EXIT_SUCCESS, result.output
        pet = json.loads(result.stdout)
        assert isinstance(pet["id"], int)
        assert isinstance(pet["name"], str)

    def test_seed_is_reproducible(self, runner: CliRunner) -> None:
        args = ("--json", "mock", PETSTORE, "GET", "/pets/{id}", "--seed", "5")
        assert _invoke(runner, *args).stdout == _invoke(runner, *args).stdout

    def test_from_example(self, runner: CliRunner) -> None:
        result = _invoke(runner, "--json", "mock", PETSTORE, "post", "/pets", "--from-example")
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert set(json.loads(result.stdout)) == {"id", "name", "tag"}

    def test_missing_endpoint(self, runner: CliRunner) -> None:
        result = _invoke(runner, "mock", PETSTORE, "PUT", "/pets")
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "no endpoint PUT /pets" in result.output

    def test_empty_body(self, runner: CliRunner) -> None:
        result = _invoke(runner, "mock", PETSTORE, "DELETE", "/pets/{id}")
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "responds 204 with an empty body" in result.output
