"""Engine and session factory bound to the configured database."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from capacity_planner.core.config import get_settings

settings = get_settings()

engine = create_engine(settings.database_url, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db() -> None:
    """Create missing tables on the configured engine."""

    from capacity_planner.db.base import Base
    import capacity_planner.models.entities  # noqa: F401

    Base.metadata.create_all(bind=engine)
