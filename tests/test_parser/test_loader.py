"""Tests for swizzle.parser.loader."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from swizzle.exceptions import ConnectionError_, MalformedSourceError
from swizzle.parser.loader import (
    _load_from_file,
    _load_from_url,
    _parse_content,
    check_declaration,
    check_resource_listing,
    listing_paths,
    load_document,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
PETSTORE_DIR = FIXTURES_DIR / "petstore"


# ---------------------------------------------------------------------------
# load_document dispatch
# ---------------------------------------------------------------------------


class TestLoadDocument:
    """Test load_document routes to the correct loader."""

    def test_dash_is_a_file_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(MalformedSourceError, match="not found"):
            load_document("-")

    def test_loads_from_file_json(self) -> None:
        result = load_document(str(PETSTORE_DIR / "api-docs.json"))
        assert result["swaggerVersion"] == "1.2"
        assert result["info"]["title"] == "Swagger Sample App"

    def test_loads_from_file_yaml(self, tmp_path: Path) -> None:
        yaml_content = textwrap.dedent("""\
            swaggerVersion: "1.2"
            apis:
              - path: /pet
        """)
        yaml_file = tmp_path / "api-docs.yaml"
        yaml_file.write_text(yaml_content, encoding="utf-8")
        result = load_document(str(yaml_file))
        assert result["apis"] == [{"path": "/pet"}]

    def test_loads_from_url_with_client(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/api-docs"
            return httpx.Response(200, json={"swaggerVersion": "1.2", "apis": []})

        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            result = load_document("http://petstore.example.com/api/api-docs", client=client)
        assert result["apis"] == []


# ---------------------------------------------------------------------------
# _load_from_file
# ---------------------------------------------------------------------------


class TestLoadFromFile:
    def test_file_not_found_raises(self) -> None:
        with pytest.raises(MalformedSourceError, match="not found"):
            _load_from_file("/nonexistent/path/to/api-docs.json")

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.json"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(MalformedSourceError, match="empty"):
            _load_from_file(str(empty))

    def test_invalid_json_file_raises(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{invalid json", encoding="utf-8")
        with pytest.raises(MalformedSourceError, match="Invalid JSON"):
            _load_from_file(str(bad))

    def test_non_object_json_raises(self, tmp_path: Path) -> None:
        array_file = tmp_path / "array.json"
        array_file.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(MalformedSourceError, match="must be a JSON/YAML object"):
            _load_from_file(str(array_file))


# ---------------------------------------------------------------------------
# _load_from_url
# ---------------------------------------------------------------------------


class TestLoadFromUrl:
    def test_loads_json_from_url(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            json={"swaggerVersion": "1.2", "apis": []},
            request=httpx.Request("GET", "https://example.com/api-docs"),
        )
        with patch("swizzle.parser.loader.httpx.get", return_value=mock_response):
            result = _load_from_url("https://example.com/api-docs")
        assert result["swaggerVersion"] == "1.2"

    def test_loads_yaml_from_url(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            text="swaggerVersion: '1.2'\napis: []\n",
            headers={"content-type": "application/x-yaml"},
            request=httpx.Request("GET", "https://example.com/api-docs"),
        )
        with patch("swizzle.parser.loader.httpx.get", return_value=mock_response):
            result = _load_from_url("https://example.com/api-docs")
        assert result["swaggerVersion"] == "1.2"

    def test_http_error_is_malformed_source(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/api-docs"),
        )
        with patch("swizzle.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(MalformedSourceError, match="HTTP 404"):
                _load_from_url("https://example.com/api-docs")

    def test_network_error_is_connection_error(self) -> None:
        with patch(
            "swizzle.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("connection refused"),
        ):
            with pytest.raises(ConnectionError_, match="Failed to fetch"):
                _load_from_url("https://example.com/api-docs")


# ---------------------------------------------------------------------------
# _parse_content
# ---------------------------------------------------------------------------


class TestParseContent:
    def test_json_first(self) -> None:
        assert _parse_content('{"a": 1}') == {"a": 1}

    def test_yaml_fallback(self) -> None:
        assert _parse_content("a: 1\n") == {"a": 1}

    def test_garbage_raises(self) -> None:
        with pytest.raises(MalformedSourceError):
            _parse_content("just a string")


# ---------------------------------------------------------------------------
# Shape checks
# ---------------------------------------------------------------------------


class TestCheckResourceListing:
    def test_valid_listing(self) -> None:
        assert check_resource_listing({"swaggerVersion": "1.2", "apis": []}) == "1.2"

    def test_numeric_version_is_accepted(self) -> None:
        assert check_resource_listing({"swaggerVersion": 1.2, "apis": []}) == "1.2"

    def test_missing_apis(self) -> None:
        with pytest.raises(MalformedSourceError, match="doesn't look like"):
            check_resource_listing({"swaggerVersion": "1.2"})

    def test_unsupported_version(self) -> None:
        with pytest.raises(MalformedSourceError, match="Unsupported Swagger version 2.0"):
            check_resource_listing({"swaggerVersion": "2.0", "apis": []})


class TestCheckDeclaration:
    def test_valid(self) -> None:
        check_declaration({"apis": [], "models": {}}, "/pet")
        check_declaration({"apis": [], "models": []}, "/pet")

    def test_missing_apis(self) -> None:
        with pytest.raises(MalformedSourceError) as exc_info:
            check_declaration({}, "/pet")
        assert exc_info.value.document == "/pet"

    def test_bad_models(self) -> None:
        with pytest.raises(MalformedSourceError, match="models"):
            check_declaration({"apis": [], "models": "Pet"}, "/pet")


class TestListingPaths:
    def test_order_is_kept(self) -> None:
        listing = {"apis": [{"path": "/b"}, {"path": "/a"}, {"description": "no path"}, "junk"]}
        assert listing_paths(listing) == ["/b", "/a"]
