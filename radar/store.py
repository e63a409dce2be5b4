"""
SQLite-backed storage for topics, messages and loader watermarks.

Schema
──────
table: topics
  id      INTEGER PRIMARY KEY AUTOINCREMENT
  source  TEXT NOT NULL
  url     TEXT NOT NULL
  name    TEXT NOT NULL
  UNIQUE (source, url)

table: messages
  id         INTEGER PRIMARY KEY AUTOINCREMENT
  source     TEXT NOT NULL
  source_id  TEXT NOT NULL
  author     TEXT NOT NULL
  url        TEXT NOT NULL
  created_at TEXT NOT NULL  (ISO-8601 UTC)
  topic_id   INTEGER REFERENCES topics(id)
  UNIQUE (source, source_id)

table: watermarks
  source     TEXT NOT NULL
  site       TEXT NOT NULL
  watermark  TEXT NOT NULL  (ISO-8601 UTC)
  PRIMARY KEY (source, site)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from radar.models import Message, Topic

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS topics (
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    source  TEXT NOT NULL,
    url     TEXT NOT NULL,
    name    TEXT NOT NULL,
    UNIQUE (source, url)
);
CREATE TABLE IF NOT EXISTS messages (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    source     TEXT NOT NULL,
    source_id  TEXT NOT NULL,
    author     TEXT NOT NULL,
    url        TEXT NOT NULL,
    created_at TEXT NOT NULL,
    topic_id   INTEGER REFERENCES topics(id),
    UNIQUE (source, source_id)
);
CREATE TABLE IF NOT EXISTS watermarks (
    source     TEXT NOT NULL,
    site       TEXT NOT NULL,
    watermark  TEXT NOT NULL,
    PRIMARY KEY (source, site)
);
"""


def _to_text(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_text(value: str) -> datetime:
    return datetime.fromisoformat(value)


class TrackbackStore:
    """Persists topics and messages; implements ``TopicRepository``."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @contextmanager
    def _connect(self):
        """Yield a connected sqlite3.Connection, creating the file/dir if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create the tables if they don't exist yet."""
        with self._connect() as conn:
            conn.executescript(_SCHEMA)
        logger.info("Trackback DB initialised at %s", self.path)

    # ── Topics ─────────────────────────────────────────────────────────────

    def find_topic(self, source: str, url: str) -> Optional[Topic]:
        """Return the topic for ``(source, url)``, or None if there is none."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, source, url, name FROM topics WHERE source = ? AND url = ?",
                (source, url),
            ).fetchone()
        return Topic(**dict(row)) if row else None

    def create_topic(self, topic: Topic) -> Topic:
        """Insert *topic* and return it with its row ID.

        If a topic for the same ``(source, url)`` already exists, the stored
        topic is returned unchanged.
        """
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO topics (source, url, name) VALUES (?, ?, ?) "
                "ON CONFLICT (source, url) DO NOTHING",
                (topic.source, topic.url, topic.name),
            )
            row = conn.execute(
                "SELECT id, source, url, name FROM topics WHERE source = ? AND url = ?",
                (topic.source, topic.url),
            ).fetchone()

        stored = Topic(**dict(row))
        logger.debug("Stored topic id=%d url=%s", stored.id, stored.url)
        return stored

    def get_topic(self, topic_id: int) -> Optional[Topic]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, source, url, name FROM topics WHERE id = ?", (topic_id,)
            ).fetchone()
        return Topic(**dict(row)) if row else None

    def list_topics(self, limit: int = 50) -> list[tuple[Topic, int]]:
        """Return the most recent *limit* topics with their message counts."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT t.id, t.source, t.url, t.name, COUNT(m.id) AS message_count "
                "FROM topics t LEFT JOIN messages m ON m.topic_id = t.id "
                "GROUP BY t.id ORDER BY t.id DESC LIMIT ?",
                (limit,),
            ).fetchall()

        return [
            (
                Topic(id=row["id"], source=row["source"], url=row["url"], name=row["name"]),
                row["message_count"],
            )
            for row in rows
        ]

    # ── Messages ───────────────────────────────────────────────────────────

    def save_message(self, message: Message) -> Message:
        """Insert or update *message* keyed by ``(source, source_id)``.

        Returns:
            A copy of the message carrying its row ID.
        """
        topic_id = message.topic.id if message.topic is not None else None

        with self._connect() as conn:
            conn.execute(
                "INSERT INTO messages (source, source_id, author, url, created_at, topic_id) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (source, source_id) DO UPDATE SET "
                "author = excluded.author, url = excluded.url, "
                "created_at = excluded.created_at, topic_id = excluded.topic_id",
                (
                    message.source,
                    message.source_id,
                    message.author,
                    message.url,
                    _to_text(message.created_at),
                    topic_id,
                ),
            )
            row = conn.execute(
                "SELECT id FROM messages WHERE source = ? AND source_id = ?",
                (message.source, message.source_id),
            ).fetchone()

        return message.model_copy(update={"id": row["id"]})

    def messages_for(self, topic_id: int) -> list[Message]:
        """Return every message of a topic, newest first."""
        topic = self.get_topic(topic_id)
        if topic is None:
            return []

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, source, source_id, author, url, created_at FROM messages "
                "WHERE topic_id = ? ORDER BY created_at DESC, id DESC",
                (topic_id,),
            ).fetchall()

        return [
            Message(
                id=row["id"],
                source=row["source"],
                source_id=row["source_id"],
                author=row["author"],
                url=row["url"],
                created_at=_from_text(row["created_at"]),
                topic=topic,
            )
            for row in rows
        ]

    # ── Watermarks ─────────────────────────────────────────────────────────

    def get_watermark(self, source: str, site: str) -> Optional[datetime]:
        """Return the stored watermark for a loader/site pair, if any."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT watermark FROM watermarks WHERE source = ? AND site = ?",
                (source, site),
            ).fetchone()
        return _from_text(row["watermark"]) if row else None

    def save_watermark(self, source: str, site: str, watermark: datetime) -> datetime:
        """Store *watermark* unless an equal or newer one is already stored.

        Returns:
            The watermark in effect after the call.
        """
        watermark = _from_text(_to_text(watermark))
        with self._connect() as conn:
            row = conn.execute(
                "SELECT watermark FROM watermarks WHERE source = ? AND site = ?",
                (source, site),
            ).fetchone()
            if row is not None:
                current = _from_text(row["watermark"])
                if current >= watermark:
                    return current

            conn.execute(
                "INSERT INTO watermarks (source, site, watermark) VALUES (?, ?, ?) "
                "ON CONFLICT (source, site) DO UPDATE SET watermark = excluded.watermark",
                (source, site, _to_text(watermark)),
            )

        logger.info("Watermark for site=%r advanced to %s", site, watermark.isoformat())
        return watermark
