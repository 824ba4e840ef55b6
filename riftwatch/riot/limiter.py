# riot/limiter.py
# ============================================================================
# Sémaphore FIFO : borne le nombre d'appels Riot simultanés
# Le permis libéré est remis directement au plus ancien en attente
# ============================================================================

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True)
class LimiterStats:
    active: int
    queued: int
    max_concurrent: int

    def as_dict(self) -> dict:
        return {"active": self.active, "queued": self.queued, "max": self.max_concurrent}


class ConcurrencyLimiter:
    """
    Counting semaphore with strict FIFO hand-off.

    Unlike ``asyncio.Semaphore``, a released permit goes to the longest-waiting
    caller even if another coroutine calls ``acquire()`` in between.
    All state changes happen between suspension points, so ``stats()`` is
    always consistent.
    """

    def __init__(self, max_concurrent: int = 5):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self._active = 0
        self._waiters: deque[asyncio.Future] = deque()

    async def acquire(self) -> None:
        if self._active < self.max_concurrent and not self._waiters:
            self._active += 1
            return

        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Permis déjà remis avant l'annulation → on le repasse
                self.release()
            else:
                try:
                    self._waiters.remove(fut)
                except ValueError:
                    pass
            raise

    def release(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # Hand-off : _active ne bouge pas
                fut.set_result(None)
                return
        if self._active <= 0:
            raise RuntimeError("release() called more times than acquire()")
        self._active -= 1

    @property
    def active(self) -> int:
        return self._active

    @property
    def queued(self) -> int:
        return sum(1 for f in self._waiters if not f.done())

    def stats(self) -> LimiterStats:
        return LimiterStats(active=self._active, queued=self.queued, max_concurrent=self.max_concurrent)

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
