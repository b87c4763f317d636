"""Counter/gauge facade used by the store and HTTP routers."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict

from .logging import get_logger

logger = get_logger(__name__)


class MetricsClient:  # pragma: no cover - simple helper
    """Basic counter/gauge interface."""

    def increment(self, metric: str, value: int = 1) -> None:
        raise NotImplementedError

    def gauge(self, metric: str, value: float) -> None:
        raise NotImplementedError


@dataclass
class InMemoryMetricsClient(MetricsClient):
    """Process-local metrics sink; values are also emitted as debug logs."""

    counters: DefaultDict[str, int] = field(default_factory=lambda: defaultdict(int))
    gauges: DefaultDict[str, float] = field(default_factory=lambda: defaultdict(float))

    def increment(self, metric: str, value: int = 1) -> None:
        self.counters[metric] += value
        logger.debug("metrics_increment", extra={"metric": metric, "value": value})

    def gauge(self, metric: str, value: float) -> None:
        self.gauges[metric] = value
        logger.debug("metrics_gauge", extra={"metric": metric, "value": value})

    def snapshot(self) -> dict[str, dict[str, float]]:
        return {"counters": dict(self.counters), "gauges": dict(self.gauges)}


_metrics_singleton: InMemoryMetricsClient | None = None


def get_metrics_client() -> MetricsClient:
    """Return the shared metrics client."""

    global _metrics_singleton
    if _metrics_singleton is None:
        _metrics_singleton = InMemoryMetricsClient()
    return _metrics_singleton
