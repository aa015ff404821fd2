"""Process-wide gateway counters shared by admission, routing and screening."""

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict

logger = logging.getLogger(__name__)


@dataclass
class GatewayStats:
    """Snapshot of gateway outcome counters."""

    total_requests: int = 0
    blocked_requests: int = 0
    rate_limited_requests: int = 0
    average_routing_time_ms: float = 0.0
    requests_per_provider: Dict[str, int] = field(default_factory=dict)


class StatsCollector:
    """Thread-safe owner of the live ``GatewayStats``.

    Every write site goes through one of the ``record_*`` methods; readers
    only ever receive copies.
    """

    def __init__(self) -> None:
        self._stats = GatewayStats()
        self._routing_samples = 0
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # ── recording ────────────────────────────────────────────────────

    def record_admitted(self, provider_id: str) -> None:
        with self._lock:
            self._stats.total_requests += 1
            per_provider = self._stats.requests_per_provider
            per_provider[provider_id] = per_provider.get(provider_id, 0) + 1

    def record_rate_limited(self) -> None:
        with self._lock:
            self._stats.rate_limited_requests += 1

    def record_blocked(self) -> None:
        with self._lock:
            self._stats.blocked_requests += 1

    def record_routing_time(self, duration_ms: float) -> None:
        """Fold one routing duration into the running mean."""
        with self._lock:
            self._routing_samples += 1
            mean = self._stats.average_routing_time_ms
            self._stats.average_routing_time_ms = mean + (duration_ms - mean) / self._routing_samples

    # ── queries ──────────────────────────────────────────────────────

    def snapshot(self) -> GatewayStats:
        with self._lock:
            return copy.deepcopy(self._stats)

    def requests_for(self, provider_id: str) -> int:
        with self._lock:
            return self._stats.requests_per_provider.get(provider_id, 0)

    def reset(self) -> None:
        with self._lock:
            self._stats = GatewayStats()
            self._routing_samples = 0
            logger.debug("Gateway stats reset")
