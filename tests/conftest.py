"""Shared fixtures: a temp store and a canned title fetcher."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from radar.store import TrackbackStore


@pytest.fixture
def store(tmp_path) -> TrackbackStore:
    """A fresh SQLite store in a temp directory."""
    db = TrackbackStore(tmp_path / "radar.db")
    db.init_db()
    return db


@pytest.fixture
def fetcher() -> MagicMock:
    """A title fetcher that serves a tiny HTML page with a fixed title."""
    mock = MagicMock()
    mock.fetch.return_value = "<html><head><title>Some page</title></head></html>"
    return mock
