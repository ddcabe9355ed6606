from __future__ import annotations

from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from .config import load_config


class Base(DeclarativeBase):
    pass


# Created on first use so the core (fetch, discovery, verification) imports without a database.
_engine: Optional[Engine] = None
SessionLocal: Optional[sessionmaker] = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        database_url = load_config().database_url
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set")
        _engine = create_engine(
            database_url,
            pool_pre_ping=True,
            pool_recycle=3600,  # Recycle connections after 1 hour to prevent stale connections
            pool_timeout=30,  # Timeout after 30 seconds waiting for a connection from the pool
        )
    return _engine


def get_sessionmaker() -> sessionmaker:
    global SessionLocal
    if SessionLocal is None:
        SessionLocal = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return SessionLocal


@contextmanager
def session_scope():
    session = get_sessionmaker()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
