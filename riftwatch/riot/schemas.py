"""Pydantic schemas for the Riot payloads we consume.

Fields are snake_case in Python and camelCase on the wire. Unknown fields are
ignored; missing or mistyped required fields make ``decode`` raise
``DecodeError`` instead of failing later on a dict lookup.
"""

from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from riftwatch.riot.errors import DecodeError

M = TypeVar("M", bound=BaseModel)


class RiotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RiotAccount(RiotModel):
    puuid: str
    game_name: str
    tag_line: str


class Summoner(RiotModel):
    puuid: Optional[str] = None
    id: Optional[str] = None  # encrypted summoner id, dropped by Riot on newer payloads
    profile_icon_id: int
    summoner_level: int


class LeagueEntry(RiotModel):
    queue_type: str
    tier: str
    rank: str
    league_points: int
    wins: int
    losses: int


class MatchParticipant(RiotModel):
    puuid: str
    riot_id_game_name: str = ""
    riot_id_tagline: str = ""
    champion_id: int = 0
    champion_name: str
    champ_level: int = 0
    team_id: int = 0
    team_position: str = ""
    win: bool
    kills: int
    deaths: int
    assists: int
    total_minions_killed: int = 0
    neutral_minions_killed: int = 0
    vision_score: int = 0
    item0: int = 0
    item1: int = 0
    item2: int = 0
    item3: int = 0
    item4: int = 0
    item5: int = 0
    item6: int = 0
    summoner1_id: int = 0
    summoner2_id: int = 0
    total_damage_dealt_to_champions: int = 0
    total_damage_taken: int = 0
    gold_earned: int = 0

    @property
    def cs(self) -> int:
        return self.total_minions_killed + self.neutral_minions_killed

    @property
    def items(self) -> List[int]:
        return [self.item0, self.item1, self.item2, self.item3, self.item4, self.item5]


class MatchMetadata(RiotModel):
    match_id: str
    participants: List[str] = Field(default_factory=list)


class MatchInfo(RiotModel):
    game_creation: int        # epoch millisecondes
    game_duration: int        # secondes
    game_end_timestamp: Optional[int] = None
    game_mode: str = ""
    queue_id: int
    participants: List[MatchParticipant]


class MatchDetail(RiotModel):
    metadata: MatchMetadata
    info: MatchInfo

    def participant(self, puuid: str) -> Optional[MatchParticipant]:
        return next((p for p in self.info.participants if p.puuid == puuid), None)


class ActiveGameParticipant(RiotModel):
    puuid: Optional[str] = None
    riot_id: Optional[str] = None
    champion_id: int
    team_id: int
    spell1_id: int = 0
    spell2_id: int = 0


class ActiveGame(RiotModel):
    game_id: int
    game_mode: str = ""
    game_queue_config_id: Optional[int] = None
    game_start_time: int      # epoch millisecondes
    game_length: int = 0
    participants: List[ActiveGameParticipant] = Field(default_factory=list)


def decode(model: Type[M], data: Any) -> M:
    """Validate ``data`` against ``model``; fail closed with ``DecodeError``."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Malformed {model.__name__} payload: {e.error_count()} error(s)") from e


_STR_LIST = TypeAdapter(List[str])
_ENTRY_LIST = TypeAdapter(List[LeagueEntry])


def decode_match_ids(data: Any) -> List[str]:
    try:
        return _STR_LIST.validate_python(data)
    except ValidationError as e:
        raise DecodeError("Malformed match id list") from e


def decode_league_entries(data: Any) -> List[LeagueEntry]:
    try:
        return _ENTRY_LIST.validate_python(data)
    except ValidationError as e:
        raise DecodeError("Malformed league entries payload") from e
