"""Metrics, storage and error-reporting sinks."""
from .console import LoggingBlobStorage, LoggingMetrics
from .prometheus import PrometheusMetrics
from .s3 import S3BlobStorage
from .sentry import SentryErrorReporter

__all__ = [
    "LoggingBlobStorage",
    "LoggingMetrics",
    "PrometheusMetrics",
    "S3BlobStorage",
    "SentryErrorReporter",
]
