"""
TTL cache for Riot API responses, backed by the ``riot_cache`` table.

Entries carry no TTL of their own: every read passes the TTL for its resource
type, and an entry older than that is deleted on the spot (lazy expiry, no
background sweep). Writes are insert-or-replace.
"""

import json
import logging
import time
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy import select, text
from sqlalchemy.orm import sessionmaker

from riftwatch.db.riot_cache import CacheEntry

log = logging.getLogger(__name__)


class TTLCache:
    """Durable key/value cache with per-read expiry."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], float] = time.time):
        self._session_factory = session_factory
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    def get(self, key: str, ttl_seconds: int) -> Optional[Any]:
        """
        Return the cached value for ``key`` if it is at most ``ttl_seconds`` old.

        An expired row is removed as a side effect and the call behaves as a miss.
        """
        with self._session_factory() as session:
            row = session.get(CacheEntry, key)
            if row is None:
                return None

            age = self._now() - row.cached_at
            if age > ttl_seconds:
                session.delete(row)
                session.commit()
                log.debug(f"Cache expired: {key} (age {age}s > ttl {ttl_seconds}s)")
                return None

            return json.loads(row.payload)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        data = json.dumps(value)
        with self._session_factory() as session:
            session.merge(CacheEntry(cache_key=key, payload=data, cached_at=self._now()))
            session.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            row = session.get(CacheEntry, key)
            if row is not None:
                session.delete(row)
                session.commit()

    def values_with_prefix(self, prefix: str) -> List[Tuple[str, Any]]:
        """``(key, value)`` pairs whose key starts with ``prefix``, without TTL check."""
        with self._session_factory() as session:
            stmt = (
                select(CacheEntry)
                .where(CacheEntry.cache_key.startswith(prefix, autoescape=True))
                .order_by(CacheEntry.cache_key)
            )
            return [(row.cache_key, json.loads(row.payload)) for row in session.scalars(stmt)]

    def ping(self) -> None:
        """Round-trip to the database; raises if it is unreachable."""
        with self._session_factory() as session:
            session.execute(text("SELECT 1"))
