"""Tests for apisynth.parser.loader -- file, URL, stdin and text loading."""

from __future__ import annotations

import io
import json
from pathlib import Path

import httpx
import pytest

from apisynth.exceptions import ParseError
from apisynth.parser.loader import hint_for_path, load_document, parse_text


FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


class TestParseText:
    """JSON-first parsing with YAML fallback."""

    def test_json_object(self) -> None:
        assert parse_text('{"openapi": "3.0.0"}') == {"openapi": "3.0.0"}

    def test_yaml_fallback(self) -> None:
        data = parse_text("openapi: 3.0.0\ninfo:\n  title: T\n")
        assert data["info"] == {"title": "T"}

    def test_yaml_hint_skips_json(self) -> None:
        assert parse_text('{"a": 1}', hint="yaml") == {"a": 1}

    def test_empty_text_raises(self) -> None:
        with pytest.raises(ParseError, match="document is empty"):
            parse_text("   \n", source="empty.json")

    def test_json_hint_reports_json_error(self) -> None:
        with pytest.raises(ParseError, match="invalid JSON") as exc_info:
            parse_text("{not json", source="broken.json", hint="json")
        assert exc_info.value.source == "broken.json"
        assert str(exc_info.value).startswith("broken.json: ")

    def test_unparseable_reports_both_errors(self) -> None:
        with pytest.raises(ParseError, match="JSON or YAML"):
            parse_text("{a: [1, 2", source="bad")

    def test_non_object_root_raises(self) -> None:
        with pytest.raises(ParseError, match="must be an object"):
            parse_text("[1, 2, 3]")

    def test_scalar_yaml_root_raises(self) -> None:
        with pytest.raises(ParseError, match="must be an object"):
            parse_text("just a string")


class TestHintForPath:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("api.json", "json"),
            ("api.JSON", "json"),
            ("api.yaml", "yaml"),
            ("api.yml", "yaml"),
            ("api.txt", ""),
        ],
    )
    def test_hints(self, path: str, expected: str) -> None:
        assert hint_for_path(path) == expected


class TestLoadDocument:
    def test_load_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_text(json.dumps({"swagger": "2.0"}), encoding="utf-8")
        assert load_document(str(path)) == {"swagger": "2.0"}

    def test_load_yaml_file(self) -> None:
        data = load_document(str(FIXTURES_DIR / "pet_by_id.yaml"))
        assert data["openapi"] == "3.0.0"
        assert "/pets/{id}" in data["paths"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ParseError, match="file not found"):
            load_document(str(tmp_path / "nope.json"))

    def test_stdin(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO('{"info": {}, "item": []}'))
        assert load_document("-") == {"info": {}, "item": []}

    def test_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_get(url: str, **kwargs: object) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"content-type": "application/yaml"},
                text="openapi: 3.1.0\n",
                request=httpx.Request("GET", url),
            )

        monkeypatch.setattr("apisynth.parser.loader.httpx.get", fake_get)
        assert load_document("https://example.test/openapi.yaml") == {"openapi": "3.1.0"}

    def test_url_http_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_get(url: str, **kwargs: object) -> httpx.Response:
            return httpx.Response(404, request=httpx.Request("GET", url))

        monkeypatch.setattr("apisynth.parser.loader.httpx.get", fake_get)
        with pytest.raises(ParseError, match="HTTP 404"):
            load_document("https://example.test/missing.json")

    def test_url_connection_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_get(url: str, **kwargs: object) -> httpx.Response:
            raise httpx.ConnectError("refused", request=httpx.Request("GET", url))

        monkeypatch.setattr("apisynth.parser.loader.httpx.get", fake_get)
        with pytest.raises(ParseError, match="request failed"):
            load_document("http://example.test/doc.json")
