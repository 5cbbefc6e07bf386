"""Tests for URL composition."""

from typing import TYPE_CHECKING

from neatfetch import compose_url, fetch
from neatfetch._utils import is_absolute_url, join_base_url, query_pairs

if TYPE_CHECKING:
    from _pytest.monkeypatch import MonkeyPatch


class TestComposeUrl:
    def test_base_url_and_query(self) -> None:
        assert (
            compose_url("users", "https://api.test/", {"page": 1, "tag": ["a", "b"]})
            == "https://api.test/users?page=1&tag=a&tag=b"
        )

    def test_absolute_target_ignores_base_url(self) -> None:
        assert (
            compose_url("https://other.test/items", "https://api.test")
            == "https://other.test/items"
        )

    def test_single_slash_between_base_and_path(self) -> None:
        assert compose_url("/users", "https://api.test/") == "https://api.test/users"
        assert compose_url("users", "https://api.test") == "https://api.test/users"

    def test_base_url_with_path_prefix(self) -> None:
        assert (
            compose_url("users/1", "https://api.test/v2/")
            == "https://api.test/v2/users/1"
        )

    def test_relative_without_base_uses_fallback_origin(self) -> None:
        assert compose_url("/users", params={"q": 1}) == "http://localhost/users?q=1"

    def test_explicit_fallback_origin(self) -> None:
        assert (
            compose_url("users", fallback_origin="https://app.test")
            == "https://app.test/users"
        )

    def test_none_values_are_skipped(self) -> None:
        assert (
            compose_url("https://api.test/x", params={"a": None, "b": 2})
            == "https://api.test/x?b=2"
        )

    def test_booleans_render_lowercase(self) -> None:
        assert (
            compose_url("https://api.test/x", params={"active": True, "deleted": False})
            == "https://api.test/x?active=true&deleted=false"
        )

    def test_existing_query_is_preserved(self) -> None:
        assert (
            compose_url("https://api.test/x?sort=asc", params={"page": 2})
            == "https://api.test/x?sort=asc&page=2"
        )

    def test_values_are_encoded_once(self) -> None:
        url = compose_url("https://api.test/search", params={"q": "a b&c", "p": "%20"})
        assert url == "https://api.test/search?q=a+b%26c&p=%2520"

    def test_is_pure(self) -> None:
        params = {"tag": ["x", "y"], "n": 3}
        first = compose_url("items", "https://api.test", params)
        assert compose_url("items", "https://api.test", params) == first
        assert params == {"tag": ["x", "y"], "n": 3}


class TestHelpers:
    def test_is_absolute_url(self) -> None:
        assert is_absolute_url("https://api.test/users")
        assert not is_absolute_url("/users")
        assert not is_absolute_url("users")

    def test_join_base_url(self) -> None:
        assert join_base_url("https://api.test/", "/a") == "https://api.test/a"

    def test_query_pairs_preserves_order(self) -> None:
        assert query_pairs({"b": 1, "a": ["x", None, "y"]}) == [
            ("b", "1"),
            ("a", "x"),
            ("a", "y"),
        ]


class TestUrlSettings:
    def test_base_url_from_environment(self, monkeypatch: "MonkeyPatch") -> None:
        monkeypatch.setenv("NEATFETCH_BASE_URL", "https://env.test/api/")
        assert fetch("/users").url == "https://env.test/api/users"

    def test_origin_from_environment(self, monkeypatch: "MonkeyPatch") -> None:
        monkeypatch.setenv("NEATFETCH_ORIGIN", "https://origin.test")
        assert fetch("/users").url == "https://origin.test/users"
