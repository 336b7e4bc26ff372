"""
Database engine and session management
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from pharmacy_app.config import settings

logger = logging.getLogger(__name__)

# Sessions are opened on executor threads; SQLite waits on a locked database
# no longer than a store call may take
connect_args = (
    {"check_same_thread": False, "timeout": settings.STORE_TIMEOUT_SECONDS}
    if settings.DATABASE_URL.startswith("sqlite")
    else {}
)

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_session_factory():
    """FastAPI dependency; repositories open one session per store call"""
    return SessionLocal


def init_db():
    """Create tables for every registered model"""
    # Register models on Base.metadata
    from pharmacy_app.models import order  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")


def close_db():
    engine.dispose()
    logger.info("Database connections closed")
