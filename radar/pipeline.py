"""One ingestion cycle: load new trackbacks, group them, remember progress.

Usage:
    from config.settings import Settings
    from radar.pipeline import build_pipeline

    with build_pipeline(Settings()) as pipeline:
        result = pipeline.ingest("github.com")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from radar.aggregator import TopicAggregator
from radar.errors import ConfigurationError
from radar.fetcher import PageFetcher
from radar.http import HttpClient
from radar.loader import TrackbackLoader
from radar.models import LoaderState, Message
from radar.store import TrackbackStore
from radar.topsy import TopsyClient

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Outcome of a single ingestion cycle."""

    site: str
    messages: list[Message]
    watermark: Optional[datetime]

    @property
    def loaded(self) -> int:
        return len(self.messages)


class IngestPipeline:
    """Wires loader, aggregator and store together for repeated ingestion.

    When built with an ``http`` client the pipeline owns it and closes it in
    ``close()``; use the pipeline as a context manager to do so.
    """

    def __init__(
        self,
        loader: TrackbackLoader,
        aggregator: TopicAggregator,
        store: TrackbackStore,
        per_page: int = 10,
        http: Optional[HttpClient] = None,
    ) -> None:
        self.loader = loader
        self.aggregator = aggregator
        self.store = store
        self.per_page = per_page
        self.http = http

    def ingest(self, site: str) -> IngestResult:
        """Load everything new for *site* since the stored watermark.

        The watermark is only persisted after aggregation succeeds, so a
        failed cycle is retried from the same point on the next call.

        Raises:
            ConfigurationError: If *site* is empty or the page size is not
                a positive integer. No request is made in either case.
            NetworkError: If the search backend or a topic page fails.
            ParseError: If a trackback or topic page is malformed.
        """
        if not site:
            raise ConfigurationError("cannot load trackbacks without a site defined")
        if self.per_page <= 0:
            raise ConfigurationError(
                f"page size must be a positive integer, got {self.per_page}"
            )

        state = LoaderState(
            site=site,
            per_page=self.per_page,
            watermark=self.store.get_watermark(self.loader.name, site),
        )
        messages, state = self.loader.load(state)
        self.aggregator.aggregate(messages)

        watermark = state.watermark
        if watermark is not None:
            watermark = self.store.save_watermark(self.loader.name, site, watermark)

        logger.info("Ingested %d trackbacks for site=%r", len(messages), site)
        return IngestResult(site=site, messages=messages, watermark=watermark)

    def close(self) -> None:
        """Release the pipeline's HTTP connections, if it owns any."""
        if self.http is not None:
            self.http.close()

    def __enter__(self) -> IngestPipeline:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def build_pipeline(settings: Settings) -> IngestPipeline:
    """Build a pipeline backed by the live Topsy API and the SQLite store.

    The returned pipeline owns one ``HttpClient`` shared by the search
    client and the page fetcher; close the pipeline when done.
    """
    http = HttpClient(timeout=settings.http_timeout, max_retries=settings.http_max_retries)
    store = TrackbackStore(settings.db_path)
    store.init_db()

    return IngestPipeline(
        loader=TrackbackLoader(TopsyClient.from_settings(settings, http=http)),
        aggregator=TopicAggregator(store, PageFetcher(http)),
        store=store,
        per_page=settings.per_page,
        http=http,
    )
