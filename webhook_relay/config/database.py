"""Database configuration and connection setup"""
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from webhook_relay.config.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
    }


# Create database engine with connection pooling
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=False,
    **_engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create missing tables. Existing tables are left untouched."""
    from webhook_relay.models import Base

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ready")


def ping_db(db) -> bool:
    """Run a trivial query against the database."""
    db.execute(text("SELECT 1"))
    return True


if __name__ == "__main__":
    init_db()
