"""Engine, session factory and declarative base for ERMS.

Request handlers receive a session through the ``get_db`` dependency. Scripts
and the CLI use ``get_db_session``, which commits when the block finishes.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, UTC
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from .config import DATABASE_URL, SQL_DEBUG

logger = logging.getLogger(__name__)

_IS_SQLITE = DATABASE_URL.startswith("sqlite")


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # Server databases get a pooled engine; stale connections are recycled hourly
    return dict(pool_pre_ping=True, pool_recycle=3600, pool_size=10, max_overflow=20)


engine = create_engine(DATABASE_URL, echo=SQL_DEBUG, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form every column stores."""
    return datetime.now(UTC).replace(tzinfo=None)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    session = SessionLocal()
    try:
        yield session
    except SQLAlchemyError as exc:
        logger.error("Rolling back request session: %s", exc)
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Session scope for work outside a request; commits on a clean exit."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        logger.error("Rolling back session: %s", exc)
        session.rollback()
        raise
    finally:
        session.close()


def _run_metadata(operation: str) -> None:
    method = getattr(Base.metadata, f"{operation}_all")
    try:
        method(bind=engine)
    except SQLAlchemyError as exc:
        logger.error("Schema %s failed: %s", operation, exc)
        raise
    logger.info("Schema %s finished for %s", operation, engine.url.render_as_string(hide_password=True))


def create_tables():
    """Create every mapped table that does not exist yet."""
    # Importing the model modules registers them on Base.metadata
    from . import models  # noqa: F401
    from .auth import models as auth_models  # noqa: F401

    _run_metadata("create")


def drop_tables():
    _run_metadata("drop")


def check_database_connection() -> bool:
    """Return True when a trivial query succeeds against the engine."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database unreachable: %s", exc)
        return False
    logger.info("Database reachable")
    return True


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if _IS_SQLITE:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@event.listens_for(engine, "checkout")
def _log_checkout(dbapi_connection, connection_record, connection_proxy):
    logger.debug("Pool checkout")


@event.listens_for(engine, "checkin")
def _log_checkin(dbapi_connection, connection_record):
    logger.debug("Pool checkin")
