"""Tests for radar/topsy.py — request parameters and response parsing."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from config.settings import Settings
from radar.errors import ParseError
from radar.topsy import REALTIME, TopsyClient

API_URL = "http://otter.topsy.com/search.json"

SINGLE_RESULT = {
    "request": {"parameters": {"q": "github.com", "window": "realtime"}},
    "response": {
        "page": 1,
        "perpage": 10,
        "last_offset": 1,
        "total": 1,
        "list": [
            {
                "trackback_permalink": "http://twitter.com/coplusk/status/23909517578211328",
                "trackback_author_nick": "coplusk",
                "trackback_date": 1294107590,
                "url": "https://github.com/tomwaddington/suggestedshare/commit/1e4117f001d224cd15039ff030bc39b105f24a13",
                "title": "Commit 1e4117f",
                "hits": 1,
            }
        ],
    },
}


@pytest.fixture
def http() -> MagicMock:
    mock = MagicMock()
    mock.get_json.return_value = SINGLE_RESULT
    return mock


class TestSearch:
    def test_sends_query_parameters(self, http):
        TopsyClient(API_URL, http=http).search("github.com", window=REALTIME, page=2, per_page=5)

        http.get_json.assert_called_once_with(
            API_URL,
            params={"q": "github.com", "window": "realtime", "page": 2, "perpage": 5},
        )

    def test_includes_api_key_when_configured(self, http):
        TopsyClient(API_URL, api_key="secret", http=http).search("github.com")
        assert http.get_json.call_args.kwargs["params"]["apikey"] == "secret"

    def test_parses_page(self, http):
        page = TopsyClient(API_URL, http=http).search("github.com")

        assert page.last_offset == 1
        assert page.total == 1
        assert not page.has_more
        (item,) = page.items
        assert item.trackback_author_nick == "coplusk"
        assert item.trackback_date == 1294107590

    def test_empty_list(self, http):
        http.get_json.return_value = {"response": {"list": [], "last_offset": 0, "total": 0}}
        assert TopsyClient(API_URL, http=http).search("github.com").items == []

    def test_missing_response_object(self, http):
        http.get_json.return_value = {"error": "rate limited"}
        with pytest.raises(ParseError):
            TopsyClient(API_URL, http=http).search("github.com")

    def test_malformed_item(self, http):
        http.get_json.return_value = {
            "response": {"list": [{"url": "http://example.com"}], "last_offset": 1, "total": 1}
        }
        with pytest.raises(ParseError, match="Malformed"):
            TopsyClient(API_URL, http=http).search("github.com")


class TestFromSettings:
    def test_uses_configured_endpoint(self, monkeypatch):
        monkeypatch.setenv("TOPSY_API_URL", "http://localhost:9999/search.json")
        monkeypatch.setenv("TOPSY_API_KEY", "k")
        monkeypatch.setenv("HTTP_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTP_MAX_RETRIES", "1")

        client = TopsyClient.from_settings(Settings())

        assert client.base_url == "http://localhost:9999/search.json"
        assert client.api_key == "k"
        assert client.http.timeout == 2.5
        assert client.http.max_retries == 1

    def test_reuses_given_http_client(self):
        http = MagicMock()
        client = TopsyClient.from_settings(Settings(), http=http)
        assert client.http is http
