# riot/dedup.py
# ============================================================================
# Déduplication des requêtes en vol : N appels concurrents sur la même clé
# → 1 seul appel Riot, tous reçoivent le même résultat (ou la même erreur)
# ============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from riftwatch.riot.metrics import DEDUP_HIT, ClientMetrics

log = logging.getLogger(__name__)


class InFlightDeduplicator:
    """Maps a cache key to the single pending fetch for it."""

    def __init__(self, metrics: Optional[ClientMetrics] = None):
        self._inflight: Dict[str, asyncio.Future] = {}
        self._metrics = metrics

    def get_or_create(self, key: str, factory: Callable[[], Awaitable[Any]]) -> asyncio.Future:
        """
        Return the pending future for ``key``, or start ``factory()`` and register it.

        The registration is dropped as soon as the future settles, whatever the
        outcome, so the next call after completion starts fresh.
        """
        fut = self._inflight.get(key)
        if fut is not None:
            if self._metrics is not None:
                self._metrics.incr(DEDUP_HIT)
            log.debug(f"Joining in-flight request for {key}")
            return fut

        fut = asyncio.ensure_future(factory())
        self._inflight[key] = fut
        fut.add_done_callback(lambda f, k=key: self._settle(k, f))
        return fut

    def _settle(self, key: str, fut: asyncio.Future) -> None:
        if self._inflight.get(key) is fut:
            del self._inflight[key]
        # Marque l'exception comme lue si plus personne n'attend
        if not fut.cancelled():
            fut.exception()

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Await the shared result. Cancelling one caller does not cancel the shared fetch."""
        return await asyncio.shield(self.get_or_create(key, factory))

    def pending(self) -> int:
        return len(self._inflight)

    def __contains__(self, key: str) -> bool:
        return key in self._inflight
