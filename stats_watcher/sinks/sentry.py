"""Sentry error reporter."""
from __future__ import annotations

import logging

import sentry_sdk

from ..config import ErrorReportingConfig

logger = logging.getLogger(__name__)


class SentryErrorReporter:
    """Sends pass failures to Sentry. Without a DSN, reporting is a no-op."""

    def __init__(self, config: ErrorReportingConfig) -> None:
        self.enabled = bool(config.dsn)
        if self.enabled:
            sentry_sdk.init(dsn=config.dsn, environment=config.environment)
        else:
            logger.warning("No Sentry DSN configured, errors are only logged")

    def capture_exception(self, error: BaseException) -> None:
        if self.enabled:
            sentry_sdk.capture_exception(error)

    def flush(self, timeout: float = 2.0) -> None:
        if self.enabled:
            sentry_sdk.flush(timeout=timeout)
