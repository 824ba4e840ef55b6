"""Observability hook for the Riot request pipeline.

One instance is handed to the client and to the resource accessors. The default
implementation keeps in-process counters (exposed on ``/metrics``) and logs each
upstream attempt; swap it for another subclass to export elsewhere.
"""

import logging
from collections import Counter
from typing import Dict, Optional

log = logging.getLogger(__name__)

# Counter names
REQUESTS = "requests"
CACHE_HIT = "cache.hit"
CACHE_MISS = "cache.miss"
FETCH_RETRY = "fetch.retry"
RATE_LIMITED = "fetch.rate_limited"
RATE_LIMIT_NEAR = "ratelimit.near"
DEDUP_HIT = "dedup.hit"
FETCH_ERROR = "fetch.error"


class ClientMetrics:
    """In-process counters plus a log line per upstream attempt."""

    def __init__(self) -> None:
        self.counters: Counter = Counter()

    def incr(self, name: str, value: int = 1) -> None:
        self.counters[name] += value

    def observe_request(self, path: str, status: Optional[int], latency: float) -> None:
        """Record one upstream attempt. ``status`` is None for network failures."""
        self.incr(REQUESTS)
        self.incr(f"status.{status if status is not None else 'network_error'}")
        log.debug(f"{path} → {status} in {latency * 1000:.0f}ms")

    def snapshot(self) -> Dict[str, int]:
        return dict(self.counters)

    def reset(self) -> None:
        self.counters.clear()
