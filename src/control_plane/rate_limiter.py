"""Per-provider sliding-window admission control."""

import dataclasses
import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, Dict, List, Optional

from .config import (
    DAY_WINDOW_SECONDS,
    HOUR_WINDOW_SECONDS,
    MINUTE_WINDOW_SECONDS,
    UNLIMITED_RATE_LIMIT,
    RateLimitConfig,
)
from .stats import StatsCollector

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_MINUTE = timedelta(seconds=MINUTE_WINDOW_SECONDS)
_HOUR = timedelta(seconds=HOUR_WINDOW_SECONDS)
_DAY = timedelta(seconds=DAY_WINDOW_SECONDS)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclasses.dataclass
class RateLimitTracker:
    """Quota plus the admitted-request history of one provider.

    Timestamps are appended in clock order, so the oldest entry is always
    on the left. Trackers created by recording against a provider nobody
    configured carry ``configured=False``.
    """

    config: RateLimitConfig = dataclasses.field(default_factory=RateLimitConfig)
    configured: bool = True
    timestamps: Deque[datetime] = dataclasses.field(default_factory=deque)

    def prune(self, now: datetime, horizon: timedelta) -> None:
        cutoff = now - horizon
        while self.timestamps and self.timestamps[0] < cutoff:
            self.timestamps.popleft()

    def count_within(self, now: datetime, window: timedelta, inclusive: bool = True) -> int:
        cutoff = now - window
        if inclusive:
            return sum(1 for ts in self.timestamps if ts >= cutoff)
        return sum(1 for ts in self.timestamps if ts > cutoff)


class ProviderRateLimiter:
    """Sliding-window rate limiter keyed by provider id.

    Requests younger than one minute count against ``requests_per_minute``;
    everything retained (one hour by default) counts against
    ``requests_per_hour``. With ``enforce_daily_limit`` the history is kept
    for 24 hours and ``requests_per_day`` becomes a third bound.

    ``check_rate_limit`` and ``record_request`` are separate calls, so two
    concurrent callers may both pass the check before either records.
    ``try_acquire`` performs both under one lock for exact quotas.
    """

    def __init__(
        self,
        stats: StatsCollector,
        clock: Optional[Clock] = None,
        enforce_daily_limit: bool = False,
        default_config: RateLimitConfig = UNLIMITED_RATE_LIMIT,
    ) -> None:
        self._stats = stats
        self._clock = clock or utcnow
        self._enforce_daily_limit = enforce_daily_limit
        self._default_config = default_config
        self._horizon = _DAY if enforce_daily_limit else _HOUR
        self._trackers: Dict[str, RateLimitTracker] = {}
        self._lock = threading.Lock()

    # ── configuration ────────────────────────────────────────────────

    def configure_rate_limit(self, provider_id: str, config: RateLimitConfig) -> None:
        """Install or replace the quota for a provider."""
        with self._lock:
            own_config = dataclasses.replace(config)
            tracker = self._trackers.get(provider_id)
            if tracker is None:
                self._trackers[provider_id] = RateLimitTracker(config=own_config)
            else:
                tracker.config = own_config
                tracker.configured = True
        logger.info(
            "Rate limit configured for %s (rpm=%d, rph=%d, rpd=%d, enabled=%s)",
            provider_id,
            config.requests_per_minute,
            config.requests_per_hour,
            config.requests_per_day,
            config.enabled,
        )

    def get_config(self, provider_id: str) -> RateLimitConfig:
        with self._lock:
            tracker = self._trackers.get(provider_id)
            config = tracker.config if tracker else self._default_config
            return dataclasses.replace(config)

    def configured_providers(self) -> List[str]:
        with self._lock:
            return [pid for pid, tracker in self._trackers.items() if tracker.configured]

    # ── admission ────────────────────────────────────────────────────

    def check_rate_limit(self, provider_id: str, user_id: str = "") -> bool:
        """Return True if the provider may take one more request now."""
        with self._lock:
            denial = self._evaluate(provider_id, self._clock())
        if denial:
            self._on_denied(provider_id, user_id, denial)
            return False
        return True

    def record_request(self, provider_id: str, user_id: str = "") -> None:
        """Count one admitted request against the provider's quota."""
        with self._lock:
            self._append(provider_id, self._clock())
        self._stats.record_admitted(provider_id)
        logger.debug("Recorded request for %s (user=%s)", provider_id, user_id or "-")

    def try_acquire(self, provider_id: str, user_id: str = "") -> bool:
        """Check and record in one critical section."""
        with self._lock:
            now = self._clock()
            denial = self._evaluate(provider_id, now)
            if not denial:
                self._append(provider_id, now)
        if denial:
            self._on_denied(provider_id, user_id, denial)
            return False
        self._stats.record_admitted(provider_id)
        return True

    # ── queries ──────────────────────────────────────────────────────

    def get_rate_limit_status(self, provider_id: str) -> Dict:
        """Report current window usage without mutating history."""
        with self._lock:
            now = self._clock()
            tracker = self._trackers.get(provider_id)
            config = tracker.config if tracker else self._default_config
            last_minute = tracker.count_within(now, _MINUTE, inclusive=False) if tracker else 0
            last_hour = tracker.count_within(now, _HOUR) if tracker else 0
            return {
                "configured": tracker is not None and tracker.configured,
                "enabled": config.enabled,
                "requests_last_minute": last_minute,
                "requests_last_hour": last_hour,
                "retained_requests": len(tracker.timestamps) if tracker else 0,
                "requests_per_minute": config.requests_per_minute,
                "requests_per_hour": config.requests_per_hour,
                "requests_per_day": config.requests_per_day,
            }

    def clear(self) -> None:
        """Drop every tracker, configured quotas included."""
        with self._lock:
            self._trackers.clear()

    # ── internals ────────────────────────────────────────────────────

    def _tracker_for(self, provider_id: str) -> RateLimitTracker:
        tracker = self._trackers.get(provider_id)
        if tracker is None:
            tracker = RateLimitTracker(
                config=dataclasses.replace(self._default_config), configured=False,
            )
            self._trackers[provider_id] = tracker
        return tracker

    def _append(self, provider_id: str, now: datetime) -> None:
        tracker = self._tracker_for(provider_id)
        # history stays bounded even when no check ever prunes it
        tracker.prune(now, self._horizon)
        tracker.timestamps.append(now)

    def _evaluate(self, provider_id: str, now: datetime) -> Optional[str]:
        """Return the name of the exceeded bound, or None to admit.

        Must be called with the lock held.
        """
        tracker = self._trackers.get(provider_id)
        config = tracker.config if tracker else self._default_config
        if tracker is None or not config.enabled:
            return None

        tracker.prune(now, self._horizon)

        if tracker.count_within(now, _MINUTE, inclusive=False) >= config.requests_per_minute:
            return "minute"

        if self._enforce_daily_limit:
            if tracker.count_within(now, _HOUR) >= config.requests_per_hour:
                return "hour"
            if len(tracker.timestamps) >= config.requests_per_day:
                return "day"
        elif len(tracker.timestamps) >= config.requests_per_hour:
            return "hour"

        return None

    def _on_denied(self, provider_id: str, user_id: str, bound: str) -> None:
        self._stats.record_rate_limited()
        logger.warning(
            "Rate limit exceeded for %s (per-%s bound, user=%s)",
            provider_id, bound, user_id or "-",
            extra={"provider_id": provider_id},
        )
