"""Shared fixtures: in-memory database, stores and sample Riot payloads."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from riftwatch.database import init_db, make_session_factory
from riftwatch.db.cache_store import TTLCache
from riftwatch.db.snapshots import SnapshotStore


class FakeClock:
    """Settable clock for TTL and snapshot timestamps."""

    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(session_factory, clock):
    return TTLCache(session_factory, clock=clock)


@pytest.fixture
def snapshots(session_factory, clock):
    return SnapshotStore(session_factory, clock=clock)


def make_participant(puuid, **overrides):
    data = {
        "puuid": puuid,
        "riotIdGameName": puuid.title(),
        "riotIdTagline": "NA1",
        "championName": "Ahri",
        "champLevel": 16,
        "teamId": 100,
        "teamPosition": "MIDDLE",
        "win": True,
        "kills": 5,
        "deaths": 3,
        "assists": 7,
        "totalMinionsKilled": 180,
        "neutralMinionsKilled": 12,
        "visionScore": 20,
        "item0": 3089, "item1": 3020, "item2": 4645,
        "item3": 0, "item4": 0, "item5": 0, "item6": 3364,
        "summoner1Id": 4,
        "summoner2Id": 14,
        "totalDamageDealtToChampions": 20000,
        "totalDamageTaken": 15000,
        "goldEarned": 11000,
    }
    data.update(overrides)
    return data


def make_match(match_id="NA1_1", participants=None, queue_id=420,
               game_creation=1_700_000_000_000, game_duration=1800):
    participants = participants or [make_participant("me")]
    return {
        "metadata": {
            "matchId": match_id,
            "participants": [p["puuid"] for p in participants],
        },
        "info": {
            "gameCreation": game_creation,
            "gameDuration": game_duration,
            "gameMode": "CLASSIC",
            "queueId": queue_id,
            "participants": participants,
        },
    }
