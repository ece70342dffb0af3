"""SQLAlchemy engine, session factory and declarative base."""
from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True}
    if make_url(database_url).get_backend_name() == "sqlite":
        # Sync dependencies run in the threadpool, so a connection may change threads.
        options["connect_args"] = {"check_same_thread": False}
    return options


_database_url = get_settings().database_url

engine: Engine = create_engine(_database_url, **_engine_options(_database_url))

# Feed payloads are built after commit; loaded attributes must survive it.
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_session() -> Generator[Session, None, None]:
    """Request-scoped session. Pending work is rolled back if the handler fails."""
    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create missing tables. Schema changes go through Alembic revisions."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Schema ready (%s)", ", ".join(sorted(Base.metadata.tables)))


__all__ = ["Base", "SessionLocal", "engine", "get_session", "init_db"]
