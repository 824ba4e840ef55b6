# database.py – SQLAlchemy setup (cache Riot + historique LP)

from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from riftwatch.config import settings


def create_db_engine(url: str) -> Engine:
    """Crée l'engine; pour SQLite, crée aussi le dossier parent du fichier .db."""
    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        # Extrait le chemin local (après sqlite:///)
        db_file = url.replace("sqlite:///", "")
        Path(db_file).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, future=True)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


# Engine & session
engine = create_db_engine(settings.DB_URL)
SessionLocal = make_session_factory(engine)

# Base pour les modèles
Base = declarative_base()


def init_db(bind: Optional[Engine] = None) -> None:
    """Créer les tables si elles n'existent pas encore."""
    # Import local pour éviter le cycle d'import
    from riftwatch.db import riot_cache  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
