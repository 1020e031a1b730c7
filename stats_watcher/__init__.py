"""Kolibri stats watcher — on-chain protocol stats aggregation."""

__version__ = "1.0.0"
