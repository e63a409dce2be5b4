"""Fetches raw HTML for topic naming."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from radar.http import HttpClient

logger = logging.getLogger(__name__)


class TitleFetcher(Protocol):
    def fetch(self, url: str) -> str: ...


class PageFetcher:
    """Retrieves a page over HTTP and returns its body unchanged."""

    def __init__(self, http: Optional[HttpClient] = None) -> None:
        self.http = http or HttpClient()

    def fetch(self, url: str) -> str:
        """Return the raw content at *url*.

        Raises:
            NetworkError: If the URL is unreachable or answers non-2xx.
        """
        logger.debug("Fetching page %s", url)
        return self.http.get_text(url)
