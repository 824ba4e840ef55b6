# db/snapshots.py – Historique LP (table lp_history, append-only)

import logging
import time
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from riftwatch.db.riot_cache import RankSnapshot

log = logging.getLogger(__name__)


class SnapshotStore:
    """Persists rank observations per subject (puuid)."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], float] = time.time):
        self._session_factory = session_factory
        self._clock = clock

    def record_snapshot(
        self,
        subject_id: str,
        tier: str,
        division: str,
        lp: int,
        wins: int,
        losses: int,
        recorded_at: Optional[int] = None,
    ) -> bool:
        """
        Append a snapshot unless wins/losses are unchanged since the latest one.

        Returns:
            True if a row was written.
        """
        with self._session_factory() as session:
            last = session.scalars(
                select(RankSnapshot)
                .where(RankSnapshot.subject_id == subject_id)
                .order_by(RankSnapshot.recorded_at.desc(), RankSnapshot.id.desc())
                .limit(1)
            ).first()

            # Pas de nouvelle partie jouée → rien à enregistrer
            if last is not None and last.wins == wins and last.losses == losses:
                return False

            if last is not None and wins + losses < last.games_played:
                log.warning(
                    f"Games played went down for {subject_id} "
                    f"({last.games_played} → {wins + losses}), recording anyway"
                )

            session.add(RankSnapshot(
                subject_id=subject_id,
                tier=tier,
                division=division,
                lp=lp,
                wins=wins,
                losses=losses,
                recorded_at=recorded_at if recorded_at is not None else int(self._clock()),
            ))
            session.commit()
            return True

    def get_snapshots(self, subject_id: str, limit: int = 100) -> List[RankSnapshot]:
        """The ``limit`` most recent snapshots for ``subject_id``, oldest first."""
        with self._session_factory() as session:
            stmt = (
                select(RankSnapshot)
                .where(RankSnapshot.subject_id == subject_id)
                .order_by(RankSnapshot.recorded_at.desc(), RankSnapshot.id.desc())
                .limit(limit)
            )
            rows = list(session.scalars(stmt))
        rows.reverse()
        return rows

    def latest_snapshot(self, subject_id: str) -> Optional[RankSnapshot]:
        with self._session_factory() as session:
            return session.scalars(
                select(RankSnapshot)
                .where(RankSnapshot.subject_id == subject_id)
                .order_by(RankSnapshot.recorded_at.desc(), RankSnapshot.id.desc())
                .limit(1)
            ).first()
