"""Tests for radar/loader.py — pagination, watermark cutoff and message building."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from radar.errors import ConfigurationError, NetworkError, ParseError
from radar.loader import PAGE_CAP, SOURCE_NAME, TrackbackLoader, create_message
from radar.models import LoaderState, SearchItem

from factories import (
    GITHUB_COMMIT_URL,
    NEWEST,
    ScriptedSearchClient,
    make_item,
    make_page,
)


def _utc(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


# ── Message building ───────────────────────────────────────────────────────────


class TestCreateMessage:
    def test_copies_item_fields(self):
        message = create_message(make_item(23909517578211328, NEWEST))

        assert message.source == SOURCE_NAME
        assert message.source_id == "23909517578211328"
        assert message.author == "coplusk"
        assert message.url == GITHUB_COMMIT_URL
        assert message.created_at == _utc(NEWEST)
        assert message.topic is None

    def test_uses_only_trailing_digits(self):
        item = SearchItem(
            trackback_permalink="http://twitter.com/user99/status/12345",
            trackback_author_nick="user99",
            url="http://example.com",
            trackback_date=NEWEST,
        )
        assert create_message(item).source_id == "12345"

    def test_permalink_without_id_raises(self):
        item = SearchItem(
            trackback_permalink="http://twitter.com/coplusk/status/",
            trackback_author_nick="coplusk",
            url="http://example.com",
            trackback_date=NEWEST,
        )
        with pytest.raises(ParseError, match="trailing identifier"):
            create_message(item)


# ── Loading ────────────────────────────────────────────────────────────────────


class TestLoad:
    def test_missing_site_raises_without_searching(self):
        client = MagicMock()
        loader = TrackbackLoader(client)

        with pytest.raises(
            ConfigurationError, match="cannot load trackbacks without a site defined"
        ):
            loader.load(LoaderState())

        client.search.assert_not_called()

    def test_empty_site_raises(self):
        client = MagicMock()
        with pytest.raises(ConfigurationError):
            TrackbackLoader(client).load(LoaderState(site=""))
        client.search.assert_not_called()

    def test_single_trackback(self):
        client = ScriptedSearchClient(
            {1: make_page([make_item(23909517578211328, NEWEST)], 1, 1)}
        )

        messages, _ = TrackbackLoader(client).load(LoaderState(site="github.com"))

        assert len(messages) == 1
        message = messages[0]
        assert message.source == "twitter-trackback"
        assert message.source_id == "23909517578211328"
        assert message.author == "coplusk"
        assert message.url == GITHUB_COMMIT_URL

    def test_search_parameters(self):
        client = ScriptedSearchClient({1: make_page([], 0, 0)})

        TrackbackLoader(client).load(LoaderState(site="github.com", per_page=25))

        assert client.calls == [
            {"site": "github.com", "window": "realtime", "page": 1, "per_page": 25}
        ]

    def test_pages_through_results(self):
        client = ScriptedSearchClient({
            1: make_page([make_item(4, NEWEST), make_item(3, NEWEST - 10)], 2, 4),
            2: make_page([make_item(2, NEWEST - 20), make_item(1, NEWEST - 30)], 4, 4),
        })

        messages, _ = TrackbackLoader(client).load(
            LoaderState(site="github.com", per_page=2)
        )

        assert len(messages) == 4
        assert [m.source_id for m in messages] == ["4", "3", "2", "1"]
        assert client.pages_fetched == [1, 2]
        assert all(call["per_page"] == 2 for call in client.calls)

    def test_page_cap(self):
        endless = make_page([], 10, 10_000)
        client = MagicMock()
        client.search.return_value = endless

        TrackbackLoader(client).load(LoaderState(site="github.com"))

        assert client.search.call_count == PAGE_CAP == 9

    def test_state_is_not_mutated(self):
        client = ScriptedSearchClient({1: make_page([make_item(1, NEWEST)], 1, 1)})
        state = LoaderState(site="github.com")

        _, new_state = TrackbackLoader(client).load(state)

        assert state.watermark is None
        assert new_state.watermark == _utc(NEWEST)
        assert new_state.site == "github.com"

    def test_no_results_keeps_watermark(self):
        client = ScriptedSearchClient({1: make_page([], 0, 0)})
        state = LoaderState(site="github.com", watermark=_utc(NEWEST))

        messages, new_state = TrackbackLoader(client).load(state)

        assert messages == []
        assert new_state.watermark == _utc(NEWEST)

    def test_search_errors_propagate(self):
        client = MagicMock()
        client.search.side_effect = NetworkError("backend down")

        with pytest.raises(NetworkError):
            TrackbackLoader(client).load(LoaderState(site="github.com"))


class TestWatermark:
    def _first_batch(self) -> ScriptedSearchClient:
        items = [make_item(100 + i, NEWEST - i * 60) for i in range(7)]
        return ScriptedSearchClient({1: make_page(items, 7, 7)})

    def test_first_load_sets_watermark_to_newest_item(self):
        messages, state = TrackbackLoader(self._first_batch()).load(
            LoaderState(site="github.com")
        )

        assert len(messages) == 7
        assert state.watermark == _utc(NEWEST)

    def test_second_load_skips_already_seen(self):
        _, state = TrackbackLoader(self._first_batch()).load(
            LoaderState(site="github.com")
        )

        later = [
            make_item(201, NEWEST + 120),
            make_item(200, NEWEST + 60),
            make_item(100, NEWEST),
            make_item(101, NEWEST - 60),
        ]
        # Backend claims more pages exist; none of them should be requested.
        client = ScriptedSearchClient({1: make_page(later, 4, 50)})

        messages, state = TrackbackLoader(client).load(state)

        assert [m.source_id for m in messages] == ["201", "200"]
        assert client.pages_fetched == [1]
        assert state.watermark == _utc(NEWEST + 120)

    def test_item_at_watermark_counts_as_seen(self):
        client = ScriptedSearchClient({1: make_page([make_item(5, NEWEST)], 1, 1)})

        messages, state = TrackbackLoader(client).load(
            LoaderState(site="github.com", watermark=_utc(NEWEST))
        )

        assert messages == []
        assert state.watermark == _utc(NEWEST)

    def test_stops_on_later_page(self):
        client = ScriptedSearchClient({
            1: make_page([make_item(4, NEWEST), make_item(3, NEWEST - 10)], 2, 6),
            2: make_page([make_item(2, NEWEST - 20), make_item(1, NEWEST - 30)], 4, 6),
            3: make_page([make_item(0, NEWEST - 40)], 6, 6),
        })

        messages, _ = TrackbackLoader(client).load(
            LoaderState(site="github.com", per_page=2, watermark=_utc(NEWEST - 30))
        )

        assert [m.source_id for m in messages] == ["4", "3", "2"]
        assert client.pages_fetched == [1, 2]

    def test_naive_watermark_treated_as_utc(self):
        naive = _utc(NEWEST - 10).replace(tzinfo=None)
        client = ScriptedSearchClient({
            1: make_page([make_item(2, NEWEST), make_item(1, NEWEST - 10)], 2, 2),
        })

        messages, _ = TrackbackLoader(client).load(
            LoaderState(site="github.com", watermark=naive)
        )

        assert [m.source_id for m in messages] == ["2"]
