"""
Engine, session factory and declarative base.

In-memory SQLite shares a single connection (StaticPool) so every session,
including those used from the threadpool by sync routes, sees the same data.
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from api.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///") or ":memory:" in url


def build_engine(url: str, echo: bool = False):
    if url.startswith("sqlite"):
        extra = {"connect_args": {"check_same_thread": False}}
        if _is_memory_sqlite(url):
            extra["poolclass"] = StaticPool
    else:
        extra = {
            "pool_pre_ping": True,
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
        }
    return create_engine(url, echo=echo, **extra)


engine = build_engine(settings.database_url, echo=settings.db_echo)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI routes. Routes here only read."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session that commits on success, for scripts and the CLI.

    Usage:
        with get_db_context() as db:
            db.add(journey)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as e:
        logger.error(f"Rolling back database session: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create every table. Alembic is the path for PostgreSQL deployments."""
    import api.models  # noqa: F401  registers models on Base.metadata

    Base.metadata.create_all(bind=engine)
    logger.info(f"Created tables on {engine.url.get_backend_name()}")
