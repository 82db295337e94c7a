# db.py
"""
Database engine and sessions.

All ledger data lives in the single ``storage_entries`` table, so the engine
only needs to be a reliable place to keep JSON strings. SQLite is the
default; any SQLAlchemy URL in ``DB_URL`` works.
"""

import os
from contextlib import contextmanager

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from logger import log_error

load_dotenv()

DB_URL = os.getenv("DB_URL", "sqlite:///miller_mitra.db")
IS_SQLITE = DB_URL.startswith("sqlite")

engine = create_engine(
    DB_URL,
    echo=os.getenv("DB_ECHO", "").strip().lower() in ("1", "true", "yes"),
    future=True,
    pool_pre_ping=not IS_SQLITE,
    connect_args={"check_same_thread": False} if IS_SQLITE else {},
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

if IS_SQLITE:
    @event.listens_for(engine, "connect")
    def _sqlite_wal(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

# Models bind to Base's metadata; imported after the engine is configured
from models import Base  # noqa: E402


@contextmanager
def session_scope(session_factory=None):
    """Session that commits when the block succeeds and rolls back otherwise."""
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        log_error(f"Database transaction rolled back: {e}", exc_info=True)
        raise
    finally:
        session.close()


def init_db():
    Base.metadata.create_all(bind=engine)
