"""Trackback loading: walks search result pages and builds messages.

Results arrive newest-first. ``TrackbackLoader.load`` keeps fetching pages
until one of three things happens:

- the backend reports no more results (``last_offset >= total``),
- the page cap is reached (``PAGE_CAP`` pages per call),
- an item at or before the state's watermark is seen. That item and
  everything after it count as already ingested, and no further pages are
  requested.

The watermark returned with the new state is the creation time of the
first (most recent) trackback seen during the call.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional

from radar.errors import ConfigurationError, ParseError
from radar.models import LoaderState, Message, SearchItem
from radar.topsy import REALTIME, SearchClient

logger = logging.getLogger(__name__)

#: Source name stamped on every message and topic produced by this loader.
SOURCE_NAME = "twitter-trackback"

#: Maximum number of result pages fetched by one ``load`` call.
PAGE_CAP = 9

_TRAILING_ID = re.compile(r"(\d+)$")


def create_message(item: SearchItem, source: str = SOURCE_NAME) -> Message:
    """Build a ``Message`` from one search item.

    The message identifier is the trailing run of digits in the item's
    permalink (the tweet id).

    Raises:
        ParseError: If the permalink does not end in digits.

    Examples:
        >>> create_message(item).source_id   # permalink ".../status/23909517578211328"
        '23909517578211328'
    """
    match = _TRAILING_ID.search(item.trackback_permalink)
    if match is None:
        raise ParseError(
            f"No trailing identifier in permalink {item.trackback_permalink!r}"
        )

    return Message(
        source=source,
        source_id=match.group(1),
        author=item.trackback_author_nick,
        url=item.url,
        created_at=item.created_at,
    )


class TrackbackLoader:
    """Loads trackbacks for a site from a ``SearchClient``.

    The loader itself is stateless; everything that changes between calls
    lives in the ``LoaderState`` passed to and returned from ``load``.
    """

    name = SOURCE_NAME

    def __init__(self, client: SearchClient, page_cap: int = PAGE_CAP) -> None:
        self.client = client
        self.page_cap = page_cap

    def load(self, state: LoaderState) -> tuple[list[Message], LoaderState]:
        """Load every trackback newer than ``state.watermark``.

        Args:
            state: Site, page size and watermark for this load.

        Returns:
            ``(messages, new_state)``. Messages are in the order they were
            encountered (page order, then in-page order).

        Raises:
            ConfigurationError: If ``state.site`` is not set. No request is
                made in that case.
            NetworkError: If the search backend fails.
            ParseError: If an item cannot be turned into a message.
        """
        if not state.site:
            raise ConfigurationError("cannot load trackbacks without a site defined")

        last_loaded_at = state.watermark
        newest: Optional[datetime] = None
        messages: list[Message] = []
        page = 1

        while True:
            results = self.client.search(
                state.site, window=REALTIME, page=page, per_page=state.per_page
            )

            caught_up = False
            for item in results.items:
                created_at = item.created_at
                if last_loaded_at is not None and created_at <= last_loaded_at:
                    caught_up = True
                    break
                if newest is None:
                    newest = created_at

                messages.append(create_message(item, source=self.name))

            logger.debug(
                "Loaded page %d for site=%r (offset %d of %d)",
                page, state.site, results.last_offset, results.total,
            )
            page += 1

            if caught_up or not results.has_more or page > self.page_cap:
                break

        logger.info(
            "Loaded %d trackbacks for site=%r across %d page(s)",
            len(messages), state.site, page - 1,
        )
        return messages, self._advance(state, newest)

    @staticmethod
    def _advance(state: LoaderState, newest: Optional[datetime]) -> LoaderState:
        """Return *state* with its watermark moved up to *newest*."""
        if newest is None:
            return state
        if state.watermark is not None and newest <= state.watermark:
            return state
        return state.model_copy(update={"watermark": newest})
