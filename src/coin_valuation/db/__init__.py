"""Database helpers and ORM models."""

from .session import DB_PATH, configure_engine, get_engine, get_session, init_db
from .models import Base

__all__ = ["Base", "configure_engine", "get_engine", "get_session", "init_db", "DB_PATH"]
