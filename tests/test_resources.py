"""Tests for the typed resource accessors (cache, dedup, limiter, snapshots)."""

import asyncio
import json
from unittest.mock import MagicMock

import pytest

from riftwatch.app import build_resources
from riftwatch.config import Settings
from riftwatch.riot import metrics as m
from riftwatch.riot.client import RiotResponse
from riftwatch.riot.dedup import InFlightDeduplicator
from riftwatch.riot.errors import DecodeError, NetworkError, NotFoundError
from riftwatch.riot.limiter import ConcurrencyLimiter
from riftwatch.riot.metrics import ClientMetrics
from riftwatch.riot.resources import TTL_POLICY, RiotResources

from conftest import make_match, make_participant

GAME_END = 1_700_000_000


class StubClient:
    """Answers by URL fragment and counts calls; tracks peak concurrency."""

    platform_base = "https://na1.api.riotgames.com"
    regional_base = "https://americas.api.riotgames.com"

    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.metrics = ClientMetrics()
        self.running = 0
        self.peak = 0

    async def fetch(self, url, *, authenticated=True, cancel=None):
        self.calls.append((url, authenticated))
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            await asyncio.sleep(0.01)
            for fragment, result in self.routes.items():
                if fragment in url:
                    if isinstance(result, Exception):
                        raise result
                    return RiotResponse(url=url, status=200, body=json.dumps(result).encode())
            raise NotFoundError()
        finally:
            self.running -= 1

    def count(self, fragment):
        return sum(1 for url, _ in self.calls if fragment in url)


def ranked_match(match_id, end_s=GAME_END, queue_id=420):
    return make_match(match_id, queue_id=queue_id, game_creation=(end_s - 1800) * 1000, game_duration=1800)


@pytest.fixture
def make_resources(cache, snapshots):
    def build(routes, max_concurrent=5):
        client = StubClient(routes)
        return RiotResources(
            client=client,
            cache=cache,
            limiter=ConcurrencyLimiter(max_concurrent),
            dedup=InFlightDeduplicator(client.metrics),
            snapshots=snapshots,
        )
    return build


@pytest.mark.asyncio
class TestLoading:

    async def test_concurrent_requests_share_one_fetch(self, make_resources):
        res = make_resources({"matches/NA1_2": make_match("NA1_2")})

        results = await asyncio.gather(*(res.get_match_detail("NA1_2") for _ in range(5)))

        assert res.client.count("NA1_2") == 1
        assert all(r.metadata.match_id == "NA1_2" for r in results)
        assert res.dedup.pending() == 0
        assert res.limiter.active == 0

    async def test_cache_hit_skips_upstream(self, make_resources):
        res = make_resources({"matches/NA1_2": make_match("NA1_2")})

        await res.get_match_detail("NA1_2")
        await res.get_match_detail("NA1_2")

        assert res.client.count("NA1_2") == 1
        assert res.metrics.counters[m.CACHE_HIT] == 1
        assert res.metrics.counters[m.CACHE_MISS] == 1

    async def test_expired_entry_is_refetched(self, make_resources, clock):
        res = make_resources({"/ids?": ["NA1_1"]})

        await res.get_match_ids("me")
        clock.advance(TTL_POLICY["matches"] + 1)
        await res.get_match_ids("me")

        assert res.client.count("/ids?") == 2

    async def test_limiter_caps_upstream_concurrency(self, make_resources):
        routes = {f"matches/NA1_{i}": make_match(f"NA1_{i}") for i in range(6)}
        res = make_resources(routes, max_concurrent=2)

        await asyncio.gather(*(res.get_match_detail(f"NA1_{i}") for i in range(6)))

        assert res.client.peak == 2
        assert len(res.client.calls) == 6

    async def test_malformed_payload_is_not_cached(self, make_resources, cache):
        res = make_resources({"matches/NA1_2": {"metadata": {}}})

        with pytest.raises(DecodeError):
            await res.get_match_detail("NA1_2")

        assert cache.get("match:NA1_2", 3600) is None

    async def test_undecodable_cached_entry_is_evicted(self, make_resources, cache):
        res = make_resources({"matches/NA1_2": make_match("NA1_2")})
        cache.set("match:NA1_2", {"metadata": {}})

        with pytest.raises(DecodeError):
            await res.get_match_detail("NA1_2")
        assert cache.get("match:NA1_2", 3600) is None
        assert res.client.count("NA1_2") == 0

        match = await res.get_match_detail("NA1_2")

        assert match.metadata.match_id == "NA1_2"
        assert res.client.count("NA1_2") == 1

    async def test_account_lookup_and_search(self, make_resources):
        res = make_resources({
            "by-riot-id/Faker/KR1": {"puuid": "p-faker", "gameName": "Faker", "tagLine": "KR1"},
        })

        account = await res.get_account_by_riot_id("Faker", "KR1")
        again = await res.get_account_by_riot_id("faker", "kr1")

        assert account.puuid == again.puuid == "p-faker"
        assert res.client.count("by-riot-id") == 1
        assert [a.game_name for a in res.search_cached_accounts("fak")] == ["Faker"]
        assert res.search_cached_accounts("zzz") == []

    async def test_current_version_is_unauthenticated(self, make_resources):
        res = make_resources({"versions.json": ["15.2.1", "15.1.1"]})

        assert await res.get_current_version() == "15.2.1"
        assert res.client.calls[0][1] is False


@pytest.mark.asyncio
class TestRanked:

    ENTRIES = [
        {"queueType": "RANKED_FLEX_SR", "tier": "SILVER", "rank": "I", "leaguePoints": 5, "wins": 1, "losses": 1},
        {"queueType": "RANKED_SOLO_5x5", "tier": "GOLD", "rank": "II", "leaguePoints": 45, "wins": 10, "losses": 8},
    ]

    async def test_solo_queue_entry_and_snapshot(self, make_resources, snapshots):
        res = make_resources({"entries/by-puuid/me": self.ENTRIES})

        ranked = await res.get_ranked_data("me")

        assert (ranked.tier, ranked.division, ranked.lp) == ("GOLD", "II", 45)
        assert len(snapshots.get_snapshots("me")) == 1

    async def test_cache_hit_records_no_snapshot(self, make_resources, snapshots):
        res = make_resources({"entries/by-puuid/me": self.ENTRIES})
        await res.get_ranked_data("me")

        res.snapshots = MagicMock(wraps=snapshots)
        await res.get_ranked_data("me")

        res.snapshots.record_snapshot.assert_not_called()

    async def test_unranked(self, make_resources, snapshots):
        res = make_resources({"entries/by-puuid/me": []})

        assert await res.get_ranked_data("me") is None
        assert await res.get_ranked_data("me") is None
        assert res.client.count("entries") == 1
        assert snapshots.get_snapshots("me") == []

    async def test_ranked_by_puuid_soft_fails(self, make_resources):
        res = make_resources({"entries/by-puuid/me": NetworkError()})

        assert await res.get_ranked_by_puuid("me") is None

    async def test_ranked_for_participants(self, make_resources):
        res = make_resources({"entries/by-puuid/a": self.ENTRIES, "entries/by-puuid/b": NetworkError()})

        ranked = await res.get_ranked_for_participants(["a", "b"])

        assert ranked["a"].tier == "GOLD"
        assert ranked["b"] is None


@pytest.mark.asyncio
class TestMatchHistory:

    async def test_partial_failure(self, make_resources):
        res = make_resources({
            "/ids?": ["NA1_1", "NA1_2", "NA1_3"],
            "matches/NA1_1": ranked_match("NA1_1"),
            "matches/NA1_2": NetworkError(),
            "matches/NA1_3": ranked_match("NA1_3"),
        })

        history = await res.get_match_history("me", count=3)

        assert [r.match_id for r in history.matches] == ["NA1_1", "NA1_3"]
        assert history.failed == 1
        assert history.warning == "Loaded 2 of 3 matches (1 failed)"
        assert history.error is None
        assert history.has_more is True

    async def test_all_matches_fail(self, make_resources):
        res = make_resources({"/ids?": ["NA1_1", "NA1_2"], "matches/": NetworkError()})

        history = await res.get_match_history("me")

        assert history.matches == []
        assert history.failed == 2
        assert history.error == "All matches failed to load, try again shortly"
        assert history.warning is None
        assert history.has_more is False

    async def test_listing_failure(self, make_resources):
        res = make_resources({"/ids?": NetworkError()})

        history = await res.get_match_history("me")

        assert history.error == "Failed to load match history"
        assert history.matches == []

    async def test_lp_change_attached(self, make_resources, snapshots):
        snapshots.record_snapshot("me", "GOLD", "II", 45, 10, 8, recorded_at=GAME_END - 100)
        snapshots.record_snapshot("me", "GOLD", "II", 67, 11, 8, recorded_at=GAME_END + 100)
        res = make_resources({"/ids?": ["NA1_1"], "matches/NA1_1": ranked_match("NA1_1")})

        history = await res.get_match_history("me")

        assert history.matches[0].lp_change == 22
        assert history.to_dict()["matches"][0]["lp_change"] == 22

    async def test_member_history(self, make_resources):
        res = make_resources({
            "by-riot-id/Player/NA1": {"puuid": "me", "gameName": "Player", "tagLine": "NA1"},
            "/ids?": ["NA1_1"],
            "matches/NA1_1": ranked_match("NA1_1"),
            "entries/by-puuid/me": TestRanked.ENTRIES,
        })

        member = await res.get_member_history("Player", "NA1")

        assert member.puuid == "me"
        assert member.ranked.tier == "GOLD"
        assert len(member.matches) == 1
        assert member.error is None

    async def test_member_history_keeps_failure_count(self, make_resources):
        res = make_resources({
            "by-riot-id/Player/NA1": {"puuid": "me", "gameName": "Player", "tagLine": "NA1"},
            "/ids?": ["NA1_1", "NA1_2"],
            "matches/NA1_1": ranked_match("NA1_1"),
            "matches/NA1_2": NetworkError(),
            "entries/by-puuid/me": [],
        })

        member = await res.get_member_history("Player", "NA1")

        assert member.failed == 1
        assert len(member.matches) == 1
        assert member.to_dict()["failed"] == 1
        assert member.warning == "Loaded 1 of 2 matches (1 failed)"

    async def test_member_history_unknown_account(self, make_resources):
        res = make_resources({})

        member = await res.get_member_history("Ghost", "NA1")

        assert member.puuid is None
        assert member.error == "Not found"


@pytest.mark.asyncio
class TestActiveGame:

    GAME = {
        "gameId": 42,
        "gameMode": "CLASSIC",
        "gameStartTime": 1_700_000_000_000,
        "participants": [{"puuid": "a", "championId": 103, "teamId": 100}],
    }

    async def test_not_in_game(self, make_resources):
        res = make_resources({})

        assert await res.get_active_game("a") is None

    async def test_active_games_are_never_cached(self, make_resources):
        res = make_resources({"active-games/by-summoner/a": self.GAME})

        games = await res.get_active_games(["a", "b"])
        await res.get_active_game("a")

        assert list(games) == ["a"]
        assert games["a"].game_id == 42
        assert res.client.count("by-summoner/a") == 2


class TestBuildResources:

    def test_wiring_follows_settings(self, session_factory):
        cfg = Settings(RIOT_API_KEY="k", MAX_CONCURRENT_REQUESTS=3)

        res = build_resources(cfg=cfg, session_factory=session_factory)

        assert res.client.api_key == "k"
        assert res.limiter.max_concurrent == 3
        assert res.metrics is res.client.metrics
        assert res.dedup.pending() == 0
