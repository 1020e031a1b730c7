"""Collaborator interfaces for the stats watcher."""
from .chain import ChainClient, ProtocolReader
from .error_reporter import ErrorReporter
from .metrics import MetricsSink
from .storage import BlobStorage

__all__ = ["BlobStorage", "ChainClient", "ErrorReporter", "MetricsSink", "ProtocolReader"]
