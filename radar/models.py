"""
Pydantic models shared across the Mention Radar pipeline.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

#: Maximum length of a stored topic name.
TOPIC_NAME_MAX_LENGTH = 251


class Topic(BaseModel):
    """All messages that reference the same target URL for one source."""

    id: Optional[int] = None
    source: str
    url: str
    name: str = Field(default="", max_length=TOPIC_NAME_MAX_LENGTH)


class Message(BaseModel):
    """A single normalised mention of a target URL."""

    id: Optional[int] = None
    source: str
    source_id: str
    author: str
    url: str
    created_at: datetime
    topic: Optional[Topic] = None


class LoaderState(BaseModel):
    """Per-site ingestion state handed to and returned from ``load``.

    ``watermark`` is the creation time of the newest trackback already
    ingested; anything at or before it is skipped on the next load.
    """

    model_config = ConfigDict(frozen=True)

    site: Optional[str] = None
    per_page: int = Field(default=10, gt=0)
    watermark: Optional[datetime] = None

    @field_validator("watermark")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Naive timestamps are treated as UTC so they compare with item times
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class SearchItem(BaseModel):
    """One trackback as returned by the search backend."""

    trackback_permalink: str
    trackback_author_nick: str
    url: str
    trackback_date: int

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.trackback_date, tz=timezone.utc)


class SearchPage(BaseModel):
    """A single page of search results plus the backend's paging metadata."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[SearchItem] = Field(default_factory=list, alias="list")
    last_offset: int = 0
    total: int = 0

    @property
    def has_more(self) -> bool:
        return self.last_offset < self.total
