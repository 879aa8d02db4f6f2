"""Engine and session factories for the lottery database."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .utils import resolve_sqlite_url

load_dotenv()
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DB_URL = "sqlite:///./dev.db"
IN_MEMORY_URL = "sqlite+pysqlite:///:memory:"


def database_url_from_env() -> str:
    """Return ``DB_URL`` with relative SQLite paths anchored at the repo root."""
    return resolve_sqlite_url(os.getenv("DB_URL", DEFAULT_DB_URL), ROOT_DIR)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(database_url: Optional[str] = None, *, echo: bool = False) -> Engine:
    url = database_url or database_url_from_env()
    kwargs = {}
    if url == IN_MEMORY_URL:
        # every connection must see the same in-memory database
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    engine = create_engine(url, echo=echo, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


__all__ = [
    "DEFAULT_DB_URL",
    "IN_MEMORY_URL",
    "ROOT_DIR",
    "database_url_from_env",
    "get_sessionmaker",
    "make_engine",
]
