"""Tests for apisynth.storage -- JSON snapshots of documents, suites and results."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from apisynth.exceptions import ParseError
from apisynth.models import ApiResponse, ApiTestResult, ParsedDocument, TestSuite
from apisynth.storage import (
    load_document_snapshot,
    load_results,
    load_suite,
    save_document,
    save_results,
    save_suite,
)
from apisynth.synthesis import synthesize_test_cases


class TestDocumentSnapshot:
    def test_round_trip(self, tmp_path: Path, petstore_doc: ParsedDocument) -> None:
        path = save_document(petstore_doc, tmp_path / "doc.json")
        loaded = load_document_snapshot(path)

        assert loaded.model_dump() == petstore_doc.model_dump()
        assert loaded.find_endpoint("/pets/{id}", "GET").params_in("path")["id"].schema_.type == "integer"

    def test_parameter_schema_uses_alias(self, tmp_path: Path, petstore_doc: ParsedDocument) -> None:
        path = save_document(petstore_doc, tmp_path / "doc.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        param = data["endpoints"][0]["parameters"]["query"]["limit"]
        assert param["schema"]["type"] == "integer"
        assert "schema_" not in param


class TestSuiteSnapshot:
    def test_round_trip(self, tmp_path: Path, petstore_doc: ParsedDocument) -> None:
        suite = TestSuite(
            name=petstore_doc.title,
            base_url=petstore_doc.base_url,
            test_cases=synthesize_test_cases(petstore_doc),
        )
        loaded = load_suite(save_suite(suite, tmp_path / "suites" / "suite.json"))

        assert loaded.model_dump() == suite.model_dump()
        assert [case.id for case in loaded.test_cases] == [
            "get-pets",
            "post-pets",
            "get-pets-id",
            "delete-pets-id",
        ]


class TestResults:
    def test_round_trip(self, tmp_path: Path) -> None:
        results = [
            ApiTestResult(
                test_case_id="a",
                passed=True,
                response=ApiResponse(status=200, body={"ok": True}),
                duration_ms=1.5,
            ),
            ApiTestResult(test_case_id="b", passed=False, failed_assertions=["status 500 = 200"]),
        ]
        path = save_results(results, tmp_path / "results.json")
        assert load_results(path) == results

    def test_written_as_json_array(self, tmp_path: Path) -> None:
        path = save_results([], tmp_path / "results.json")
        assert json.loads(path.read_text(encoding="utf-8")) == []


class TestReadErrors:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ParseError, match="cannot read file"):
            load_suite(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.json"
        path.write_text("{nope", encoding="utf-8")
        with pytest.raises(ParseError, match="invalid JSON") as exc_info:
            load_suite(path)
        assert exc_info.value.source == str(path)

    def test_wrong_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.json"
        path.write_text(json.dumps({"test_cases": "nope"}), encoding="utf-8")
        with pytest.raises(ParseError, match="unexpected content"):
            load_suite(path)
