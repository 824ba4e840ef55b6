"""
Parsing of the Riot rate-limit response headers.

Riot sends two budgets per response, application-wide and per-method, each as
a ``limit:window`` list (``X-App-Rate-Limit: 20:1,100:120``) with a matching
``count:window`` list (``X-App-Rate-Limit-Count: 3:1,57:120``). They are read
for diagnostics only; the concurrency limiter is what gates requests.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional

APP_LIMIT = "X-App-Rate-Limit"
APP_COUNT = "X-App-Rate-Limit-Count"
METHOD_LIMIT = "X-Method-Rate-Limit"
METHOD_COUNT = "X-Method-Rate-Limit-Count"


@dataclass(frozen=True)
class RateLimitWindow:
    scope: str      # "app" ou "method"
    window: int     # secondes
    limit: int
    count: int

    @property
    def usage(self) -> float:
        return self.count / self.limit if self.limit else 0.0


def _parse_pairs(raw: Optional[str]) -> dict[int, int]:
    """``"20:1,100:120"`` → ``{1: 20, 120: 100}`` (window → value). Malformed parts are skipped."""
    pairs: dict[int, int] = {}
    if not raw:
        return pairs
    for part in raw.split(","):
        value, sep, window = part.strip().partition(":")
        if not sep:
            continue
        try:
            pairs[int(window)] = int(value)
        except ValueError:
            continue
    return pairs


def parse_windows(scope: str, limit_header: Optional[str], count_header: Optional[str]) -> List[RateLimitWindow]:
    limits = _parse_pairs(limit_header)
    counts = _parse_pairs(count_header)
    return [
        RateLimitWindow(scope=scope, window=w, limit=limits[w], count=counts[w])
        for w in sorted(limits)
        if w in counts
    ]


def parse_rate_limit_headers(headers: Mapping[str, str]) -> List[RateLimitWindow]:
    """All app and method windows present in ``headers``."""
    return (
        parse_windows("app", headers.get(APP_LIMIT), headers.get(APP_COUNT))
        + parse_windows("method", headers.get(METHOD_LIMIT), headers.get(METHOD_COUNT))
    )


def windows_near_limit(windows: List[RateLimitWindow], ratio: float = 0.9) -> List[RateLimitWindow]:
    return [w for w in windows if w.limit and w.usage >= ratio]
