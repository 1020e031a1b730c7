"""Metrics sink protocol."""
from typing import Protocol


class MetricsSink(Protocol):
    """Gauge/counter sink. Values arrive as floats, tags as ``key:value``."""

    def gauge(self, name: str, value: float, tags: list[str]) -> None: ...

    def increment(self, name: str, amount: float, tags: list[str]) -> None: ...
