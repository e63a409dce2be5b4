"""Topic aggregation: groups messages by the URL they mention.

Responsibilities:
- Find the topic for each message by ``(source, url)``
- Create the topic on first sighting, named from the target page's title
- Attach the topic to the message and persist both

Messages are processed one at a time in the order given, so a topic created
for an earlier message is found again for later messages in the same pass.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Optional, Protocol

from radar.errors import ParseError
from radar.fetcher import TitleFetcher
from radar.models import TOPIC_NAME_MAX_LENGTH, Message, Topic

logger = logging.getLogger(__name__)

_TITLE = re.compile(r"<title>(.*?)</title>", re.IGNORECASE | re.DOTALL)


class TopicRepository(Protocol):
    """Storage operations the aggregator relies on."""

    def find_topic(self, source: str, url: str) -> Optional[Topic]: ...

    def create_topic(self, topic: Topic) -> Topic: ...

    def save_message(self, message: Message) -> Message: ...


# ── Naming ─────────────────────────────────────────────────────────────────────


def extract_title(html: str) -> str:
    """Return the raw text of the first ``<title>`` element in *html*.

    The text is returned as-is: no whitespace trimming, no entity decoding.

    Raises:
        ParseError: If the document has no title element, or the first one
            is empty.

    Examples:
        >>> extract_title("<html><title>Hello</title></html>")
        'Hello'
    """
    match = _TITLE.search(html)
    if match is None:
        raise ParseError("No <title> tag found in page")
    if not match.group(1):
        raise ParseError("Empty <title> tag in page")
    return match.group(1)


def topic_name(url: str, fetcher: TitleFetcher) -> str:
    """Name a topic after the title of the page at *url*.

    Titles longer than ``TOPIC_NAME_MAX_LENGTH`` are cut to that length.
    """
    title = extract_title(fetcher.fetch(url))
    return title[:TOPIC_NAME_MAX_LENGTH]


# ── Aggregation ────────────────────────────────────────────────────────────────


class TopicAggregator:
    """Resolves or creates a topic per distinct target URL."""

    def __init__(self, repository: TopicRepository, fetcher: TitleFetcher) -> None:
        self.repository = repository
        self.fetcher = fetcher

    def aggregate(self, messages: Iterable[Optional[Message]]) -> None:
        """Attach every message to its topic and persist it.

        ``None`` entries are skipped. Calling this again with overlapping
        messages reuses the existing topics instead of creating duplicates.

        Raises:
            NetworkError: If a new topic's page cannot be fetched.
            ParseError: If a new topic's page has no title.
        """
        created = 0
        saved = 0
        for message in messages:
            if message is None:
                continue

            topic = self.repository.find_topic(message.source, message.url)
            if topic is None:
                topic = self._create_topic(message)
                created += 1

            message.topic = topic
            saved_message = self.repository.save_message(message)
            message.id = saved_message.id
            saved += 1

        logger.info("Aggregated %d messages (%d new topics)", saved, created)

    def _create_topic(self, message: Message) -> Topic:
        topic = Topic(source=message.source, url=message.url)
        topic.name = topic_name(topic.url, self.fetcher)
        logger.info("New topic %r for %s", topic.name, topic.url)
        return self.repository.create_topic(topic)
