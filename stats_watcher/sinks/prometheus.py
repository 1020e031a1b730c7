"""Prometheus metrics sink."""
from __future__ import annotations

import logging
import re

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

from ..errors import SinkError

logger = logging.getLogger(__name__)

_INVALID_CHARS_RE = re.compile(r"[^a-zA-Z0-9_]")


def metric_name(prefix: str, name: str) -> str:
    """Map a dotted metric name to a Prometheus one, e.g. ``tvl.ovens`` → ``kolibri_tvl_ovens``."""
    return _INVALID_CHARS_RE.sub("_", f"{prefix}_{name}" if prefix else name)


def parse_tags(tags: list[str]) -> dict[str, str]:
    """Split ``key:value`` tags into labels. Tags without a colon are dropped."""
    labels: dict[str, str] = {}
    for tag in tags:
        key, sep, value = tag.partition(":")
        if sep:
            labels[_INVALID_CHARS_RE.sub("_", key)] = value
    return labels


class PrometheusMetrics:
    """Gauges and counters registered lazily on first use.

    Each metric name must always be used with the same set of tag keys.
    """

    def __init__(self, prefix: str = "kolibri", registry: CollectorRegistry | None = None) -> None:
        self.prefix = prefix
        self.registry = registry or CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}
        self._counters: dict[str, Counter] = {}

    def serve(self, port: int) -> None:
        """Expose the registry over HTTP."""
        start_http_server(port, registry=self.registry)
        logger.info("Serving metrics on port %d", port)

    def gauge(self, name: str, value: float, tags: list[str]) -> None:
        labels = parse_tags(tags)
        full_name = metric_name(self.prefix, name)
        try:
            gauge = self._gauges.get(full_name)
            if gauge is None:
                gauge = Gauge(full_name, name, sorted(labels), registry=self.registry)
                self._gauges[full_name] = gauge
            (gauge.labels(**labels) if labels else gauge).set(value)
        except ValueError as e:
            raise SinkError(f"Cannot record gauge {full_name}: {e}") from e

    def increment(self, name: str, amount: float, tags: list[str]) -> None:
        labels = parse_tags(tags)
        full_name = metric_name(self.prefix, name)
        try:
            counter = self._counters.get(full_name)
            if counter is None:
                counter = Counter(full_name, name, sorted(labels), registry=self.registry)
                self._counters[full_name] = counter
            (counter.labels(**labels) if labels else counter).inc(amount)
        except ValueError as e:
            raise SinkError(f"Cannot increment counter {full_name}: {e}") from e
