"""Exception hierarchy for Mention Radar.

Every error raised by the ingestion pipeline derives from ``RadarError`` so
callers (the Flask layer, scripts) can catch the whole family in one place.
"""

from __future__ import annotations


class RadarError(Exception):
    """Base class for all Mention Radar errors."""


class ConfigurationError(RadarError, ValueError):
    """A required setting (e.g. the tracked site) is missing or invalid."""


class NetworkError(RadarError):
    """The search backend or a fetched page could not be retrieved."""


class ParseError(RadarError):
    """A payload did not have the shape we expect.

    Raised for permalinks without a trailing identifier, pages without a
    ``<title>`` tag and malformed search responses.
    """
