# riot_cache.py – tables persistantes : cache Riot API + historique LP (SQLAlchemy)

from sqlalchemy import Column, Index, Integer, String, Text
from riftwatch.database import Base

class CacheEntry(Base):
    """Réponse brute Riot (JSON sérialisé). 1 ligne par clé; le TTL est donné à la lecture."""
    __tablename__ = "riot_cache"
    cache_key = Column(String, primary_key=True)   # account:…, match:NA1_…
    payload   = Column(Text, nullable=False)
    cached_at = Column(Integer, nullable=False)    # epoch secondes

class RankSnapshot(Base):
    """Observation du rang solo/duo. Append-only, jamais modifiée."""
    __tablename__ = "lp_history"
    id          = Column(Integer, primary_key=True, autoincrement=True)
    subject_id  = Column(String, nullable=False)   # puuid
    tier        = Column(String, nullable=False)   # GOLD …
    division    = Column(String, nullable=False)   # I … IV
    lp          = Column(Integer, nullable=False)
    wins        = Column(Integer, nullable=False)
    losses      = Column(Integer, nullable=False)
    recorded_at = Column(Integer, nullable=False)  # epoch secondes

    __table_args__ = (
        Index("ix_lp_history_subject_time", "subject_id", "recorded_at"),
    )

    @property
    def games_played(self) -> int:
        return self.wins + self.losses

# appelé dans database.init_db()
