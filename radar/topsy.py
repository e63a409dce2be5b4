"""Client for the Topsy "otter" trackback search API.

The backend returns trackbacks newest-first, one page at a time::

    GET /search.json?q=github.com&window=realtime&page=1&perpage=10

    {"response": {"list": [...], "last_offset": 10, "total": 93, ...}}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Protocol

from pydantic import ValidationError

from radar.errors import ParseError
from radar.http import HttpClient
from radar.models import SearchPage

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

#: Search window used for trackback ingestion.
REALTIME = "realtime"


class SearchClient(Protocol):
    """Anything that can return a page of trackbacks for a site."""

    def search(
        self, site: str, *, window: str, page: int, per_page: int
    ) -> SearchPage: ...


class TopsyClient:
    """Paged trackback search against the Topsy API."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        http: Optional[HttpClient] = None,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self.http = http or HttpClient()

    @classmethod
    def from_settings(
        cls, settings: Settings, http: Optional[HttpClient] = None
    ) -> TopsyClient:
        """Build a client from *settings*, sharing *http* when given."""
        if http is None:
            http = HttpClient(
                timeout=settings.http_timeout,
                max_retries=settings.http_max_retries,
            )
        return cls(
            base_url=settings.topsy_api_url,
            api_key=settings.topsy_api_key,
            http=http,
        )

    def search(
        self, site: str, *, window: str = REALTIME, page: int = 1, per_page: int = 10
    ) -> SearchPage:
        """Fetch one page of trackbacks for *site*.

        Raises:
            NetworkError: If the backend cannot be reached.
            ParseError: If the body is not a recognisable search response.
        """
        params = {"q": site, "window": window, "page": page, "perpage": per_page}
        if self.api_key:
            params["apikey"] = self.api_key

        logger.debug("Topsy search site=%r page=%d perpage=%d", site, page, per_page)
        payload = self.http.get_json(self.base_url, params=params)

        body = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(body, dict):
            raise ParseError("Topsy response has no 'response' object")
        try:
            return SearchPage.model_validate(body)
        except ValidationError as exc:
            raise ParseError(f"Malformed Topsy search page: {exc}") from exc
