# app.py – Assemblage : un seul RiotResources par process
# -----------------------------------------------------------------------------
#  • Le sémaphore et la map des requêtes en vol vivent dans des objets créés
#    ici puis injectés, jamais dans des globals de module.
#  • Deux appels à build_resources() donnent deux clients indépendants.
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from riftwatch.config import Settings, settings as default_settings
from riftwatch.database import SessionLocal, init_db
from riftwatch.db.cache_store import TTLCache
from riftwatch.db.snapshots import SnapshotStore
from riftwatch.riot.client import RiotClient
from riftwatch.riot.dedup import InFlightDeduplicator
from riftwatch.riot.limiter import ConcurrencyLimiter
from riftwatch.riot.metrics import ClientMetrics
from riftwatch.riot.resources import RiotResources


def build_resources(
    cfg: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    client: Optional[RiotClient] = None,
    metrics: Optional[ClientMetrics] = None,
    clock: Optional[Callable[[], float]] = None,
) -> RiotResources:
    """Wire cache, snapshot store, limiter, in-flight map and client together."""
    cfg = cfg or default_settings
    metrics = metrics or (client.metrics if client is not None else ClientMetrics())

    if session_factory is None:
        init_db()
        session_factory = SessionLocal

    clock_kwargs = {"clock": clock} if clock is not None else {}

    client = client or RiotClient(
        cfg.RIOT_API_KEY,
        region=cfg.DEFAULT_REGION,
        metrics=metrics,
        max_retries=cfg.MAX_RETRIES,
        max_rate_limit_retries=cfg.MAX_RATE_LIMIT_RETRIES,
        retry_base_delay=cfg.RETRY_BASE_DELAY,
        default_retry_after=cfg.DEFAULT_RETRY_AFTER,
        timeout=cfg.REQUEST_TIMEOUT,
        rate_limit_warn_ratio=cfg.RATE_LIMIT_WARN_RATIO,
    )

    return RiotResources(
        client=client,
        cache=TTLCache(session_factory, **clock_kwargs),
        limiter=ConcurrencyLimiter(cfg.MAX_CONCURRENT_REQUESTS),
        dedup=InFlightDeduplicator(metrics),
        snapshots=SnapshotStore(session_factory, **clock_kwargs),
        metrics=metrics,
    )
