"""Shared HTTP client used by the search and title-fetching collaborators.

Wraps a ``requests.Session`` with a request timeout, a fixed User-Agent and
a small exponential backoff on throttling / server errors. Every transport
failure leaves this module as a ``NetworkError``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests

from radar.errors import NetworkError, ParseError

logger = logging.getLogger(__name__)

USER_AGENT = "mention-radar/0.1"

#: Status codes that are retried with backoff before giving up.
_RETRY_STATUSES: frozenset[int] = frozenset([429, 500, 502, 503, 504])
#: Upper bound on a single backoff sleep, in seconds.
_MAX_BACKOFF = 8.0


class HttpClient:
    """Blocking HTTP client with bounded retry.

    Args:
        timeout: Per-request timeout in seconds.
        max_retries: Total attempts per request (``1`` disables retrying).
        session: Optional pre-built session, mostly useful in tests.
    """

    def __init__(
        self,
        timeout: float = 15,
        max_retries: int = 3,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT

    def get(self, url: str, params: Optional[dict[str, Any]] = None) -> requests.Response:
        """GET *url* and return the response, raising on any non-2xx status.

        Raises:
            NetworkError: On connection errors, timeouts, or HTTP errors once
                retries are exhausted.
        """
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as exc:
                if last_attempt:
                    raise NetworkError(f"GET {url} failed: {exc}") from exc
                logger.warning("GET %s failed (%s), retrying", url, exc)
                time.sleep(self._backoff(None, attempt))
                continue

            if response.status_code in _RETRY_STATUSES and not last_attempt:
                logger.warning(
                    "GET %s returned %d, retrying", url, response.status_code
                )
                time.sleep(self._backoff(response, attempt))
                continue

            try:
                response.raise_for_status()
            except requests.HTTPError as exc:
                raise NetworkError(
                    f"GET {url} returned HTTP {response.status_code}"
                ) from exc
            return response

        # max_retries >= 1 guarantees the loop either returns or raises
        raise NetworkError(f"GET {url} failed")

    def get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET *url* and decode the body as JSON."""
        response = self.get(url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(f"GET {url} returned invalid JSON") from exc

    def get_text(self, url: str) -> str:
        """GET *url* and return the decoded body."""
        return self.get(url).text

    def _backoff(self, response: Optional[requests.Response], attempt: int) -> float:
        """Seconds to wait before the next attempt, honouring Retry-After."""
        if response is not None:
            retry_after = response.headers.get("Retry-After")
            if retry_after:
                try:
                    return min(_MAX_BACKOFF, max(float(retry_after), 1.0))
                except ValueError:
                    pass
        return min(_MAX_BACKOFF, 2.0 ** attempt)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
