"""Logging-only sinks used in test mode."""
from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class LoggingMetrics:
    def gauge(self, name: str, value: float, tags: list[str]) -> None:
        logger.info("[TEST_MODE] Writing Gauge: [%s, %s] %s", name, value, tags)

    def increment(self, name: str, amount: float, tags: list[str]) -> None:
        logger.info("[TEST_MODE] Incrementing: [%s, %s] %s", name, amount, tags)


class LoggingBlobStorage:
    """Serializes documents like the real sink would, but only logs them."""

    async def write_named_blob(self, payload: Any, name: str) -> None:
        body = json.dumps(payload, indent=4)
        logger.info("[TEST_MODE] Putbucket called for file %s (%d bytes)", name, len(body))
