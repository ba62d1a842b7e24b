import logging
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .settings import settings


def build_engine(url: str):
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
logger = logging.getLogger(__name__)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Initialize store tables"""
    # Import models so they register on Base.metadata
    import models.database  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Entity store initialized (%s)", (bind or engine).url)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
