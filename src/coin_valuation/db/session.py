"""SQLite engine and session handling for price history, runs and snapshots."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
import os
import sqlite3

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

load_dotenv()

# Analysis fans out reads across threads; writers wait instead of failing.
BUSY_TIMEOUT_MS = 5000


def _engine_for(db_path: Path) -> Engine:
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.close()

    return engine


DB_PATH = Path(os.getenv("COIN_VALUATION_DB_PATH", "coin_valuation.db"))
_engine = _engine_for(DB_PATH)
_Session = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)


def configure_engine(path: str | Path) -> None:
    """Point the module-level engine at another database file."""
    global DB_PATH, _engine, _Session
    _engine.dispose()
    DB_PATH = Path(path)
    _engine = _engine_for(DB_PATH)
    _Session = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)


def get_engine() -> Engine:
    return _engine


def get_db_path() -> Path:
    return DB_PATH


def get_session() -> Session:
    return _Session()


@contextmanager
def session_scope() -> Iterator[Session]:
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def backup_database(dest: str | Path) -> Path:
    """Copy the live database, including pages still in the WAL, to ``dest``."""
    dest = Path(dest)
    source = _engine.raw_connection()
    try:
        target = sqlite3.connect(dest)
        try:
            source.driver_connection.backup(target)
        finally:
            target.close()
    finally:
        source.close()
    return dest


def init_db(base=None) -> None:
    """Create every table; ``base`` defaults to the package's declarative base."""
    from .models import Base

    (base or Base).metadata.create_all(_engine)
