# riftwatch/services/performance.py
# ============================================================================
# Score de performance par joueur et classement dans la partie (1 = meilleur)
# Fonctions pures : aucun appel Riot, aucune écriture en base
# ============================================================================

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from riftwatch.riot.schemas import MatchDetail, MatchParticipant

# Pondérations par rôle (KDA / dégâts / économie / vision), somme = 1
ROLE_WEIGHTS: Dict[str, Dict[str, float]] = {
    "TOP":     dict(KDA=.30, DMG=.35, ECO=.25, VIS=.10),
    "JUNGLE":  dict(KDA=.30, DMG=.30, ECO=.20, VIS=.20),
    "MIDDLE":  dict(KDA=.30, DMG=.35, ECO=.25, VIS=.10),
    "BOTTOM":  dict(KDA=.30, DMG=.35, ECO=.25, VIS=.10),
    "UTILITY": dict(KDA=.35, DMG=.15, ECO=.10, VIS=.40),
    "UNKNOWN": dict(KDA=.30, DMG=.30, ECO=.25, VIS=.15),
}
PERFECT_KDA_BONUS = 1000  # départage : 0 mort passe devant tout KDA fini
STD_EPSILON = 1e-9        # en dessous : colonne constante (bruit flottant)


@dataclass(frozen=True)
class MatchRecord:
    """Ligne d'historique d'un joueur pour une partie. Immuable."""
    match_id: str
    puuid: str
    win: bool
    champion_name: str
    champ_level: int
    kills: int
    deaths: int
    assists: int
    cs: int
    cs_per_min: float
    vision_score: int
    items: Tuple[int, ...]
    trinket: int
    summoner1_id: int
    summoner2_id: int
    game_duration: int
    queue_id: int
    game_creation: int
    total_damage_dealt_to_champions: int
    total_damage_taken: int
    gold_earned: int
    team_position: str
    performance_score: float
    performance_rank: int
    lp_change: Optional[int] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["items"] = list(self.items)
        return data


def cs_per_min(cs: int, game_duration_seconds: int) -> float:
    minutes = game_duration_seconds / 60
    if minutes == 0:
        return 0.0
    return round(cs / minutes, 1)


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def norm(v: float, mean: float, std: float) -> float:
    if std < STD_EPSILON:
        return 0.5
    return clamp01(0.5 + (v - mean) / (2 * std))


def kda_ratio(p: MatchParticipant) -> float:
    return (p.kills + p.assists) / max(1, p.deaths)


def kda_tiebreak(p: MatchParticipant) -> float:
    if p.deaths == 0:
        return p.kills + p.assists + PERFECT_KDA_BONUS
    return (p.kills + p.assists) / p.deaths


def _mean_std(values: Sequence[float]) -> Tuple[float, float]:
    if not values:
        return 0.0, 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return mean, math.sqrt(variance)


def participant_scores(match: MatchDetail) -> Dict[str, float]:
    """
    Score 0-100 de chaque participant, normalisé sur les dix joueurs de la partie.

    Chaque stat est ramenée à [0, 1] par rapport à la moyenne/écart-type de la
    partie, puis pondérée selon le rôle (``ROLE_WEIGHTS``).
    """
    parts = match.info.participants
    minutes = max(match.info.game_duration / 60, 1.0)

    features = {
        "kda": [kda_ratio(p) for p in parts],
        "dmg": [p.total_damage_dealt_to_champions for p in parts],
        "taken": [p.total_damage_taken for p in parts],
        "gold": [p.gold_earned for p in parts],
        "cs": [p.cs / minutes for p in parts],
        "vis": [p.vision_score / minutes for p in parts],
    }
    stats = {k: _mean_std(v) for k, v in features.items()}

    scores: Dict[str, float] = {}
    for i, p in enumerate(parts):
        n = {k: norm(features[k][i], *stats[k]) for k in features}
        w = ROLE_WEIGHTS.get(p.team_position or "UNKNOWN", ROLE_WEIGHTS["UNKNOWN"])
        total = (
            w["KDA"] * n["kda"]
            + w["DMG"] * (0.6 * n["dmg"] + 0.4 * n["taken"])
            + w["ECO"] * (0.5 * n["gold"] + 0.5 * n["cs"])
            + w["VIS"] * n["vis"]
        )
        scores[p.puuid] = round(min(100.0, total * 100), 1)
    return scores


def rank_participants(match: MatchDetail, scores: Optional[Dict[str, float]] = None) -> Dict[str, int]:
    """Rang de chaque participant (1 = meilleur score, égalité départagée au KDA)."""
    scores = scores if scores is not None else participant_scores(match)
    keyed = [(p.puuid, scores.get(p.puuid, 0.0), kda_tiebreak(p)) for p in match.info.participants]
    ranks: Dict[str, int] = {}
    for puuid, score, kda in keyed:
        higher = sum(1 for _, s, k in keyed if s > score or (s == score and k > kda))
        ranks[puuid] = higher + 1
    return ranks


def build_match_record(
    match: MatchDetail,
    puuid: str,
    scores: Optional[Dict[str, float]] = None,
    ranks: Optional[Dict[str, int]] = None,
) -> Optional[MatchRecord]:
    """Extrait la ligne de ``puuid``; None s'il n'a pas joué cette partie."""
    p = match.participant(puuid)
    if p is None:
        return None

    scores = scores if scores is not None else participant_scores(match)
    ranks = ranks if ranks is not None else rank_participants(match, scores)
    info = match.info

    return MatchRecord(
        match_id=match.metadata.match_id,
        puuid=puuid,
        win=p.win,
        champion_name=p.champion_name,
        champ_level=p.champ_level,
        kills=p.kills,
        deaths=p.deaths,
        assists=p.assists,
        cs=p.cs,
        cs_per_min=cs_per_min(p.cs, info.game_duration),
        vision_score=p.vision_score,
        items=tuple(p.items),
        trinket=p.item6,
        summoner1_id=p.summoner1_id,
        summoner2_id=p.summoner2_id,
        game_duration=info.game_duration,
        queue_id=info.queue_id,
        game_creation=info.game_creation,
        total_damage_dealt_to_champions=p.total_damage_dealt_to_champions,
        total_damage_taken=p.total_damage_taken,
        gold_earned=p.gold_earned,
        team_position=p.team_position,
        performance_score=scores.get(puuid, 0.0),
        performance_rank=ranks.get(puuid, len(info.participants)),
    )


def rank_match_participants(match: MatchDetail) -> List[Tuple[MatchParticipant, float, int]]:
    """Tous les participants triés du meilleur au moins bon : ``(participant, score, rang)``."""
    scores = participant_scores(match)
    ranks = rank_participants(match, scores)
    rows = [(p, scores[p.puuid], ranks[p.puuid]) for p in match.info.participants]
    return sorted(rows, key=lambda r: r[2])
