"""Tests for swizzle.compiler.urls."""

from __future__ import annotations

from swizzle.compiler.urls import merge_url


class TestMergeUrl:
    def test_path_onto_base(self) -> None:
        assert merge_url("/api", "http://petstore.example.com/docs") == (
            "http://petstore.example.com/api"
        )

    def test_absolute_path_keeps_its_host(self) -> None:
        assert merge_url("https://other.example.com/v2", "http://a.example.com/v1") == (
            "https://other.example.com/v2"
        )

    def test_host_only_path_takes_base_path(self) -> None:
        assert merge_url("https://other.example.com", "http://a.example.com/v1") == (
            "https://other.example.com/v1"
        )

    def test_empty_path_returns_base(self) -> None:
        assert merge_url("", "http://a.example.com/v1") == "http://a.example.com/v1"

    def test_defaults_to_localhost(self) -> None:
        assert merge_url("/") == "http://localhost/"
        assert merge_url("") == "http://localhost/"
        assert merge_url("/api") == "http://localhost/api"

    def test_port_is_kept(self) -> None:
        assert merge_url("/api", "http://localhost:8080/docs") == "http://localhost:8080/api"

    def test_relative_segment_gets_leading_slash(self) -> None:
        assert merge_url("api", "http://a.example.com") == "http://a.example.com/api"

    def test_query_is_dropped(self) -> None:
        assert merge_url("/api?x=1", "http://a.example.com") == "http://a.example.com/api"

    def test_result_is_always_absolute(self) -> None:
        for path in ("", "/", "/x", "x", "http://h"):
            assert merge_url(path).startswith("http://")
