"""Engine and session helpers for the quality database."""

import logging
import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from dashboard.adapters.outbound.sqlalchemy_models import Base

logger = logging.getLogger(__name__)

_DASHBOARD_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_URL = f"sqlite:///{os.path.join(_DASHBOARD_DIR, 'data', 'qualite.db')}"


def resolve_url(url: str | None = None) -> str:
    """Pick the database URL and anchor relative SQLite paths on dashboard/."""
    db_url = url or os.environ.get("DATABASE_URL") or DEFAULT_URL
    if not db_url.startswith("sqlite:///") or db_url.startswith("sqlite:////"):
        return db_url
    path = db_url[len("sqlite:///"):]
    if path == ":memory:" or os.path.isabs(path):
        return db_url
    path = os.path.join(_DASHBOARD_DIR, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return f"sqlite:///{path}"


def get_engine(url: str | None = None):
    return create_engine(resolve_url(url), echo=False)


def init_db(engine=None):
    """Create missing tables and return the engine."""
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.debug("Schema pret sur %s", engine.url)
    return engine


def get_session(engine=None) -> Session:
    return sessionmaker(bind=engine or get_engine())()


@contextmanager
def session_scope(engine=None):
    """Session committed on success and rolled back on any exception."""
    session = get_session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
