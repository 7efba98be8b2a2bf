"""Tests for API URL resolution and the platform theme preference."""

from __future__ import annotations

import pytest

from feedview.config import DEV_API_URL, Settings, prefers_dark_scheme, resolve_api_url, settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("FEED_API_URL", raising=False)
    monkeypatch.delenv("COLORFGBG", raising=False)
    monkeypatch.setattr(settings, "PREFERS_DARK", None)


class TestResolveApiUrl:
    def test_localhost_origin_uses_dev_backend(self):
        assert resolve_api_url(origin="http://localhost:5173") == DEV_API_URL
        assert resolve_api_url(origin="localhost") == DEV_API_URL

    def test_other_origin_is_same_origin(self):
        assert resolve_api_url(origin="https://feed.example.com/some/page") == "https://feed.example.com"
        assert resolve_api_url(origin="http://10.0.0.5:8080") == "http://10.0.0.5:8080"

    def test_bare_host_defaults_to_https(self):
        assert resolve_api_url(origin="feed.example.com") == "https://feed.example.com"

    def test_override_beats_origin(self):
        assert resolve_api_url("http://api.example.com/", origin="http://localhost") == "http://api.example.com"

    def test_env_beats_override(self, monkeypatch):
        monkeypatch.setenv("FEED_API_URL", "https://env.example.com/")

        assert resolve_api_url("http://api.example.com", origin="http://localhost") == "https://env.example.com"

    def test_falls_back_to_configured_origin(self, monkeypatch):
        monkeypatch.setattr(settings, "ORIGIN", "https://configured.example.com")

        assert resolve_api_url() == "https://configured.example.com"


class TestPrefersDarkScheme:
    def test_explicit_setting_wins(self, monkeypatch):
        monkeypatch.setenv("COLORFGBG", "0;15")
        monkeypatch.setattr(settings, "PREFERS_DARK", False)

        assert prefers_dark_scheme() is False

    @pytest.mark.parametrize(
        "colorfgbg,expected",
        [
            ("15;0", True),
            ("7;8", True),
            ("0;15", False),
            ("0;default;7", False),
        ],
    )
    def test_terminal_background_hint(self, monkeypatch, colorfgbg, expected):
        monkeypatch.setenv("COLORFGBG", colorfgbg)

        assert prefers_dark_scheme() is expected

    def test_unknown_platform_defaults_to_dark(self, monkeypatch):
        monkeypatch.setenv("COLORFGBG", "default;default")

        assert prefers_dark_scheme() is True


def test_search_debounce_seconds():
    config = Settings()
    config.SEARCH_DEBOUNCE_MS = 250

    assert config.SEARCH_DEBOUNCE_SECONDS == 0.25
