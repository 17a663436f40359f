from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from planner.config import settings


def _connect_args(url: str) -> dict:
    # CLI and test threads may share the SQLite file
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()


def init_db():
    """Create all tables"""
    # Import models so they register on Base.metadata
    import planner.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
