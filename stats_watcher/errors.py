"""Exception hierarchy for the stats watcher."""
from __future__ import annotations


class StatsWatcherError(Exception):
    """Base class for all stats watcher errors."""


class ConfigurationError(StatsWatcherError):
    """Mandatory configuration is missing or invalid. Fatal at startup."""


class TransportError(StatsWatcherError):
    """A registry page or chain read could not be fetched."""


class SchemaError(StatsWatcherError):
    """A chain or registry response did not have the expected shape."""


class SinkError(StatsWatcherError):
    """A snapshot or metric could not be written to its sink."""
