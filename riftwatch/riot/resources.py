# riot/resources.py
# ============================================================================
# Accès typés aux ressources Riot : cache TTL → dédup en vol → sémaphore →
# pipeline. Un seul objet RiotResources par process, construit dans app.py.
# ============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import quote

from riftwatch.db.cache_store import TTLCache
from riftwatch.db.snapshots import SnapshotStore
from riftwatch.riot import metrics as m
from riftwatch.riot.client import RiotClient
from riftwatch.riot.dedup import InFlightDeduplicator
from riftwatch.riot.errors import DecodeError, NotFoundError, RiotAPIError
from riftwatch.riot.limiter import ConcurrencyLimiter
from riftwatch.riot.metrics import ClientMetrics
from riftwatch.riot.schemas import (
    ActiveGame,
    MatchDetail,
    RiotAccount,
    Summoner,
    decode,
    decode_league_entries,
    decode_match_ids,
)
from riftwatch.services.lp import attach_lp_changes
from riftwatch.services.performance import MatchRecord, build_match_record

log = logging.getLogger(__name__)

# TTL par type de ressource (secondes)
TTL_POLICY: Dict[str, int] = {
    "account":  24 * 60 * 60,
    "summoner": 24 * 60 * 60,
    "ranked":   30 * 60,
    "matches":  5 * 60,
    "match":    7 * 24 * 60 * 60,
    "version":  6 * 60 * 60,
    "sprites":  24 * 60 * 60,   # métadonnées DDragon, chargées hors de ce module
}

DDRAGON_VERSIONS_URL = "https://ddragon.leagueoflegends.com/api/versions.json"
RANKED_SOLO = "RANKED_SOLO_5x5"
DEFAULT_MATCH_COUNT = 10


@dataclass(frozen=True)
class RankedInfo:
    tier: str
    division: str
    lp: int
    wins: int
    losses: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MatchHistory:
    puuid: str
    matches: List[MatchRecord] = field(default_factory=list)
    page_size: int = DEFAULT_MATCH_COUNT
    requested: int = 0
    failed: int = 0
    warning: Optional[str] = None
    error: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.page_size > 0 and self.requested == self.page_size

    def to_dict(self) -> dict:
        return {
            "puuid": self.puuid,
            "matches": [r.to_dict() for r in self.matches],
            "requested": self.requested,
            "failed": self.failed,
            "has_more": self.has_more,
            "warning": self.warning,
            "error": self.error,
        }


@dataclass
class MemberHistory:
    game_name: str
    tag_line: str
    puuid: Optional[str] = None
    matches: List[MatchRecord] = field(default_factory=list)
    ranked: Optional[RankedInfo] = None
    failed: int = 0
    warning: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "game_name": self.game_name,
            "tag_line": self.tag_line,
            "puuid": self.puuid,
            "matches": [r.to_dict() for r in self.matches],
            "ranked": self.ranked.to_dict() if self.ranked else None,
            "failed": self.failed,
            "warning": self.warning,
            "error": self.error,
        }


def _validated(model) -> Callable[[Any], Any]:
    """Transform that checks the payload against ``model`` but caches it raw."""
    def check(data: Any) -> Any:
        decode(model, data)
        return data
    return check


def _solo_queue_entry(data: Any) -> dict:
    entries = decode_league_entries(data)
    solo = next((e for e in entries if e.queue_type == RANKED_SOLO), None)
    if solo is None:
        return {"entry": None}
    return {"entry": RankedInfo(
        tier=solo.tier, division=solo.rank, lp=solo.league_points,
        wins=solo.wins, losses=solo.losses,
    ).to_dict()}


def _latest_version(data: Any) -> str:
    versions = decode_match_ids(data)
    if not versions:
        raise DecodeError("Empty Data Dragon version list")
    return versions[0]


class RiotResources:
    """Typed Riot lookups sharing one cache, one limiter and one in-flight map."""

    def __init__(
        self,
        client: RiotClient,
        cache: TTLCache,
        limiter: ConcurrencyLimiter,
        dedup: InFlightDeduplicator,
        snapshots: SnapshotStore,
        metrics: Optional[ClientMetrics] = None,
    ):
        self.client = client
        self.cache = cache
        self.limiter = limiter
        self.dedup = dedup
        self.snapshots = snapshots
        self.metrics = metrics or client.metrics

    # ─── Cœur : cache → dédup → permis → pipeline ────────────────────────
    async def _load(
        self,
        key: str,
        ttl: int,
        url: str,
        *,
        transform: Optional[Callable[[Any], Any]] = None,
        on_fresh: Optional[Callable[[Any], None]] = None,
        authenticated: bool = True,
        cancel: Optional[asyncio.Event] = None,
    ) -> Any:
        cached = self.cache.get(key, ttl)
        if cached is not None:
            self.metrics.incr(m.CACHE_HIT)
            return cached
        self.metrics.incr(m.CACHE_MISS)

        async def fetch_and_store() -> Any:
            async with self.limiter:
                resp = await self.client.fetch(url, authenticated=authenticated, cancel=cancel)
                data = resp.json()
                if transform is not None:
                    data = transform(data)
                self.cache.set(key, data)
            if on_fresh is not None:
                on_fresh(data)
            return data

        return await self.dedup.run(key, fetch_and_store)

    def _decode_cached(self, key: str, model, data: Any):
        """Decode a cached payload; a row that no longer matches ``model`` is evicted."""
        try:
            return decode(model, data)
        except DecodeError:
            log.warning(f"Evicting undecodable cache entry {key}")
            self.cache.delete(key)
            raise

    # ─── Account / Summoner ──────────────────────────────────────────────
    async def get_account_by_riot_id(self, game_name: str, tag_line: str, cancel: Optional[asyncio.Event] = None) -> RiotAccount:
        """Account-V1 by Riot ID (routed via the regional host)."""
        key = f"account:{game_name.lower()}:{tag_line.lower()}"
        url = (
            f"{self.client.regional_base}"
            f"/riot/account/v1/accounts/by-riot-id/{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
        )
        data = await self._load(key, TTL_POLICY["account"], url, transform=_validated(RiotAccount), cancel=cancel)
        return self._decode_cached(key, RiotAccount, data)

    async def get_summoner_by_puuid(self, puuid: str, cancel: Optional[asyncio.Event] = None) -> Summoner:
        key = f"summoner:{puuid}"
        url = f"{self.client.platform_base}/lol/summoner/v4/summoners/by-puuid/{puuid}"
        data = await self._load(key, TTL_POLICY["summoner"], url, transform=_validated(Summoner), cancel=cancel)
        return self._decode_cached(key, Summoner, data)

    # ─── Ranked ──────────────────────────────────────────────────────────
    async def get_ranked_data(self, puuid: str, cancel: Optional[asyncio.Event] = None) -> Optional[RankedInfo]:
        """
        Solo/duo standing for ``puuid``, None if unranked.

        A snapshot is recorded only when the data comes fresh from Riot, never
        on a cache hit.
        """
        def record(data: dict) -> None:
            entry = data.get("entry")
            if entry:
                self.snapshots.record_snapshot(
                    puuid, entry["tier"], entry["division"], entry["lp"], entry["wins"], entry["losses"]
                )

        key = f"ranked:{puuid}"
        url = f"{self.client.platform_base}/lol/league/v4/entries/by-puuid/{puuid}"
        data = await self._load(
            key, TTL_POLICY["ranked"], url, transform=_solo_queue_entry, on_fresh=record, cancel=cancel
        )
        entry = data.get("entry") if isinstance(data, dict) else None
        return RankedInfo(**entry) if entry else None

    async def get_ranked_by_puuid(self, puuid: str) -> Optional[RankedInfo]:
        """Like ``get_ranked_data`` but never raises: a failure reads as unranked."""
        try:
            return await self.get_ranked_data(puuid)
        except RiotAPIError as e:
            log.warning(f"Failed to fetch ranked data for {puuid}: {e}")
            return None

    async def get_ranked_for_participants(self, puuids: Iterable[str]) -> Dict[str, Optional[RankedInfo]]:
        puuids = list(puuids)
        results = await asyncio.gather(*(self.get_ranked_by_puuid(p) for p in puuids))
        return dict(zip(puuids, results))

    # ─── Matches ─────────────────────────────────────────────────────────
    async def get_match_ids(
        self, puuid: str, count: int = DEFAULT_MATCH_COUNT, start: int = 0, cancel: Optional[asyncio.Event] = None
    ) -> List[str]:
        key = f"matches:{puuid}:{start}:{count}"
        url = (
            f"{self.client.regional_base}"
            f"/lol/match/v5/matches/by-puuid/{puuid}/ids?start={start}&count={count}"
        )
        data = await self._load(key, TTL_POLICY["matches"], url, transform=decode_match_ids, cancel=cancel)
        return decode_match_ids(data)

    async def get_match_detail(self, match_id: str, cancel: Optional[asyncio.Event] = None) -> MatchDetail:
        """Match-V5 detail. Immutable once the game is over, hence the long TTL."""
        key = f"match:{match_id}"
        url = f"{self.client.regional_base}/lol/match/v5/matches/{match_id}"
        data = await self._load(key, TTL_POLICY["match"], url, transform=_validated(MatchDetail), cancel=cancel)
        return self._decode_cached(key, MatchDetail, data)

    async def get_processed_match(self, match_id: str, puuid: str) -> Optional[MatchRecord]:
        """Per-player record of ``match_id``; None if ``puuid`` did not play it."""
        match = await self.get_match_detail(match_id)
        return build_match_record(match, puuid)

    async def get_match_history(self, puuid: str, count: int = DEFAULT_MATCH_COUNT, start: int = 0) -> MatchHistory:
        """
        Load a page of matches, tolerating partial failure.

        Returns whatever loaded plus the number of failures; ``warning`` is set
        when some matches failed, ``error`` when all of them failed or the id
        listing itself failed.
        """
        history = MatchHistory(puuid=puuid, page_size=count)
        try:
            match_ids = await self.get_match_ids(puuid, count, start)
        except RiotAPIError as e:
            log.warning(f"Failed to list matches for {puuid}: {e}")
            history.error = "Failed to load match history"
            return history

        history.requested = len(match_ids)
        results = await asyncio.gather(
            *(self.get_processed_match(mid, puuid) for mid in match_ids),
            return_exceptions=True,
        )

        records: List[MatchRecord] = []
        for mid, res in zip(match_ids, results):
            if isinstance(res, RiotAPIError):
                history.failed += 1
                log.warning(f"Match {mid} failed to load: {res}")
            elif isinstance(res, BaseException):
                raise res
            elif res is not None:
                records.append(res)

        history.matches = attach_lp_changes(self.snapshots, puuid, records)

        if history.failed and history.matches:
            history.warning = (
                f"Loaded {len(history.matches)} of {history.requested} matches "
                f"({history.failed} failed)"
            )
        elif history.failed:
            history.error = "All matches failed to load, try again shortly"
        return history

    async def get_member_history(
        self, game_name: str, tag_line: str, puuid: Optional[str] = None, count: int = DEFAULT_MATCH_COUNT
    ) -> MemberHistory:
        """Ranked standing + recent matches for one roster member."""
        member = MemberHistory(game_name=game_name, tag_line=tag_line, puuid=puuid)
        try:
            if not member.puuid:
                member.puuid = (await self.get_account_by_riot_id(game_name, tag_line)).puuid
            history, ranked = await asyncio.gather(
                self.get_match_history(member.puuid, count),
                self.get_ranked_by_puuid(member.puuid),
            )
        except RiotAPIError as e:
            member.error = str(e)
            return member

        member.matches = history.matches
        member.ranked = ranked
        member.failed = history.failed
        member.warning = history.warning
        member.error = history.error
        return member

    # ─── Live game (jamais en cache) ─────────────────────────────────────
    async def get_active_game(self, puuid: str, cancel: Optional[asyncio.Event] = None) -> Optional[ActiveGame]:
        url = f"{self.client.platform_base}/lol/spectator/v5/active-games/by-summoner/{puuid}"
        try:
            async with self.limiter:
                resp = await self.client.fetch(url, cancel=cancel)
        except NotFoundError:
            return None
        return decode(ActiveGame, resp.json())

    async def get_active_games(self, puuids: Iterable[str]) -> Dict[str, ActiveGame]:
        """Live games of a roster; members not in game (or failing) are left out."""
        puuids = list(puuids)

        async def one(p: str) -> Optional[ActiveGame]:
            try:
                return await self.get_active_game(p)
            except RiotAPIError as e:
                log.warning(f"Live game lookup failed for {p}: {e}")
                return None

        results = await asyncio.gather(*(one(p) for p in puuids))
        return {p: g for p, g in zip(puuids, results) if g is not None}

    # ─── Data Dragon ─────────────────────────────────────────────────────
    async def get_current_version(self) -> str:
        data = await self._load(
            "version", TTL_POLICY["version"], DDRAGON_VERSIONS_URL,
            transform=_latest_version, authenticated=False,
        )
        return str(data)

    # ─── Recherche dans le cache ─────────────────────────────────────────
    def search_cached_accounts(self, query: str, limit: int = 8) -> List[RiotAccount]:
        """Accounts already resolved once whose name or tag contains ``query``."""
        q = query.lower()
        found: List[RiotAccount] = []
        for _, data in self.cache.values_with_prefix("account:"):
            try:
                account = decode(RiotAccount, data)
            except DecodeError:
                continue
            if q in account.game_name.lower() or q in account.tag_line.lower():
                found.append(account)
                if len(found) >= limit:
                    break
        return found
