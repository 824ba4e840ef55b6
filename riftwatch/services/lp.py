# riftwatch/services/lp.py
# ============================================================================
# Reconstitution du gain/perte de LP par partie à partir de l'historique
# de rang (snapshots). Aucun accès réseau.
# ============================================================================

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Protocol, Sequence, Tuple, TypeVar

from riftwatch.db.snapshots import SnapshotStore

log = logging.getLogger(__name__)

RANKED_SOLO_QUEUE_ID = 420   # seule file suivie par les snapshots (RANKED_SOLO_5x5)

TIERS = [
    "IRON", "BRONZE", "SILVER", "GOLD",
    "PLATINUM", "EMERALD", "DIAMOND", "MASTER",
    "GRANDMASTER", "CHALLENGER",
]
TIER_INDEX = {t: i for i, t in enumerate(TIERS)}
APEX_TIERS = frozenset({"MASTER", "GRANDMASTER", "CHALLENGER"})
DIVISION_OFFSET = {"IV": 0, "III": 100, "II": 200, "I": 300}
TIER_BLOCK = 400
APEX_BASE = TIER_INDEX["MASTER"] * TIER_BLOCK


class Snapshot(Protocol):
    tier: str
    division: str
    lp: int
    wins: int
    losses: int
    recorded_at: int


class RankedGame(Protocol):
    queue_id: int
    game_creation: int   # ms
    game_duration: int   # s
    lp_change: Optional[int]


G = TypeVar("G", bound=RankedGame)


def flatten(tier: str, division: str, lp: int) -> int:
    """
    Map a rank onto a single LP scale so that subtraction crosses tier/division boundaries.

    Each divisioned tier spans 400 points (IV=0 … I=300); MASTER, GRANDMASTER and
    CHALLENGER share one open band starting at 2800, where only LP counts.
    """
    tier = tier.upper()
    if tier not in TIER_INDEX:
        raise ValueError(f"Unknown tier: {tier}")
    if tier in APEX_TIERS:
        return APEX_BASE + lp
    division = division.upper()
    if division not in DIVISION_OFFSET:
        raise ValueError(f"Unknown division: {division}")
    return TIER_INDEX[tier] * TIER_BLOCK + DIVISION_OFFSET[division] + lp


def game_end_time(game: RankedGame) -> int:
    """Epoch seconds at which the game ended."""
    return game.game_creation // 1000 + game.game_duration


def find_bracket(snapshots: Sequence[Snapshot], t: int) -> Optional[Tuple[Snapshot, Snapshot]]:
    """
    Latest snapshot at or before ``t`` and earliest strictly after it.

    ``snapshots`` must be sorted by ``recorded_at`` ascending.
    """
    before: Optional[Snapshot] = None
    for snap in snapshots:
        if snap.recorded_at <= t:
            before = snap
        else:
            return (before, snap) if before is not None else None
    return None


def lp_change_for(snapshots: Sequence[Snapshot], game: RankedGame) -> Optional[int]:
    """LP delta of ``game`` or None when no bracket exists or it holds more/less than one game."""
    bracket = find_bracket(snapshots, game_end_time(game))
    if bracket is None:
        return None
    before, after = bracket
    games_between = (after.wins + after.losses) - (before.wins + before.losses)
    if games_between != 1:
        # Plusieurs parties (ou aucune) entre deux observations → on ne devine pas
        log.debug(f"{games_between} games between snapshots {before.recorded_at}/{after.recorded_at}, skipping")
        return None
    return flatten(after.tier, after.division, after.lp) - flatten(before.tier, before.division, before.lp)


def attribute_lp_changes(snapshots: Sequence[Snapshot], games: Sequence[G]) -> List[G]:
    """
    Return ``games`` with ``lp_change`` set where it can be attributed exactly.

    Only solo/duo ranked games are considered. Records are replaced, never
    mutated, so shared cached objects stay untouched.
    """
    ordered = sorted(snapshots, key=lambda s: s.recorded_at)
    out: List[G] = []
    for game in games:
        if game.queue_id != RANKED_SOLO_QUEUE_ID or len(ordered) < 2:
            out.append(game)
            continue
        change = lp_change_for(ordered, game)
        out.append(dataclasses.replace(game, lp_change=change) if change is not None else game)
    return out


def attach_lp_changes(store: SnapshotStore, subject_id: str, games: Sequence[G]) -> List[G]:
    """``attribute_lp_changes`` against the stored history of ``subject_id``."""
    snapshots = store.get_snapshots(subject_id)
    return attribute_lp_changes(snapshots, games)
