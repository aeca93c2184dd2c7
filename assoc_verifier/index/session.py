"""Database engine and session management for the association index.

- create_index_engine(): engine with SQLite or PostgreSQL pool settings
- create_session_factory(): sessionmaker bound to an engine
- session_scope(): commit-or-rollback context manager
- init_index(): create tables (and the SQLite directory)

SQLite is for local development and tests; use PostgreSQL in production.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from assoc_verifier.core.config import DATABASE_URL
from .models import Base

log = logging.getLogger(__name__)


def _redact(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


def create_index_engine(url: Optional[str] = None) -> Engine:
    """Create an engine configured for the database type.

    Args:
        url: SQLAlchemy URL; defaults to AAV_DATABASE_URL.
    """
    url = url or DATABASE_URL

    if url.startswith("sqlite"):
        engine_kwargs = {
            "echo": False,
            "pool_pre_ping": True,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
        log.info("Using SQLite association index (local development mode)")
    else:
        engine_kwargs = {
            "echo": False,
            "pool_pre_ping": True,      # Verify connections before use
            "pool_size": 5,
            "max_overflow": 10,
            "pool_recycle": 1800,       # Recycle connections every 30 min
        }
        log.info("Using PostgreSQL association index (production mode)")

    engine = create_engine(url, **engine_kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Session committed on success and rolled back on exception.

    Usage:
        with session_scope(factory) as db:
            row = db.query(AssociationRow).filter(...).first()
    """
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_index(engine: Engine) -> None:
    """Create index tables idempotently."""
    url = str(engine.url)
    log.info(f"Initializing association index at {_redact(url)}")

    if url.startswith("sqlite:///"):
        db_path = url.replace("sqlite:///", "")
        if db_path and db_path != ":memory:":
            db_dir = Path(db_path).parent
            db_dir.mkdir(parents=True, exist_ok=True)

    Base.metadata.create_all(bind=engine)
