"""
Flask web server for Mention Radar.

Routes
──────
GET  /api/topics            List recent topics with message counts (JSON)
GET  /api/topics/<id>       Fetch a topic and its messages (JSON)
POST /api/ingest?site=...   Run one ingestion cycle for a site (JSON)
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv
from flask import Flask, jsonify, request

# Allow running as `python web/app.py` from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

from config.settings import Settings
from radar.errors import ConfigurationError, NetworkError, ParseError
from radar.models import Message, Topic
from radar.pipeline import build_pipeline
from radar.store import TrackbackStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)


def _store() -> TrackbackStore:
    store = TrackbackStore(Settings().db_path)
    store.init_db()
    return store


def _topic_json(topic: Topic) -> dict:
    return topic.model_dump(mode="json")


def _message_json(message: Message) -> dict:
    return message.model_dump(mode="json", exclude={"topic"})


# ── Topics API ─────────────────────────────────────────────────────────────

@app.route("/api/topics")
def list_topics():
    """Return the 50 most recent topics as JSON."""
    limit = request.args.get("limit", 50, type=int)
    topics = _store().list_topics(limit=limit)
    return jsonify(
        [{**_topic_json(topic), "messages": count} for topic, count in topics]
    )


@app.route("/api/topics/<int:topic_id>")
def get_topic(topic_id: int):
    """Return a topic including every message attached to it."""
    store = _store()
    topic = store.get_topic(topic_id)
    if topic is None:
        return jsonify({"error": "Not found"}), 404
    return jsonify(
        {
            **_topic_json(topic),
            "messages": [_message_json(m) for m in store.messages_for(topic_id)],
        }
    )


# ── Ingestion ──────────────────────────────────────────────────────────────

@app.route("/api/ingest", methods=["POST"])
def ingest():
    """Load new trackbacks for a site and group them into topics.

    The site comes from the ``site`` query param or JSON object body,
    falling back to ``TRACKBACK_SITE``.
    """
    settings = Settings()
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    site = request.args.get("site") or body.get("site") or settings.site
    if not isinstance(site, str):
        return jsonify({"error": "site must be a string"}), 400
    site = site.strip()

    pipeline = build_pipeline(settings)
    try:
        result = pipeline.ingest(site)
    except ConfigurationError as exc:
        return jsonify({"error": str(exc)}), 400
    except (NetworkError, ParseError) as exc:
        logger.exception("Ingestion failed for site=%r", site)
        return jsonify({"error": str(exc)}), 502
    finally:
        pipeline.close()

    return jsonify(
        {
            "site": result.site,
            "loaded": result.loaded,
            "watermark": result.watermark.isoformat() if result.watermark else None,
        }
    )


# ── Entry point ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    settings = Settings()
    app.run(debug=settings.debug, host="0.0.0.0", port=settings.port)
