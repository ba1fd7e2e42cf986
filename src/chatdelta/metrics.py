"""Per-provider request metrics for the status line."""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class ProviderMetrics:
    """Counters for one provider across the session."""

    requests_total: int = 0
    requests_successful: int = 0
    total_latency_ms: int = 0

    @property
    def success_rate(self) -> float:
        if not self.requests_total:
            return 0.0
        return self.requests_successful / self.requests_total * 100

    @property
    def average_latency_ms(self) -> int:
        if not self.requests_total:
            return 0
        return self.total_latency_ms // self.requests_total


class MetricsTracker:
    """Accumulates ProviderMetrics keyed by provider name."""

    def __init__(self):
        self._providers: dict[str, ProviderMetrics] = {}

    def record(self, provider: str, success: bool, latency_ms: int | None = None) -> None:
        metrics = self._providers.setdefault(provider, ProviderMetrics())
        metrics.requests_total += 1
        if success:
            metrics.requests_successful += 1
        metrics.total_latency_ms += latency_ms or 0

    def get(self, provider: str) -> ProviderMetrics:
        return self._providers.get(provider, ProviderMetrics())

    @property
    def providers(self) -> dict[str, ProviderMetrics]:
        return dict(self._providers)

    def summary(self) -> str:
        total = sum(m.requests_total for m in self._providers.values())
        if not total:
            return "Metrics: ready"
        success = sum(m.requests_successful for m in self._providers.values())
        return f"{total} requests | {success / total * 100:.0f}% success"
