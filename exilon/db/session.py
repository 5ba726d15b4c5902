"""Database session management."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
from pathlib import Path

from .models import Base

_engine = None
_SessionLocal = None
_db_path = None


def init_db(db_path: str):
    """Initialize the database."""
    global _engine, _SessionLocal, _db_path

    # Ensure directory exists
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    if _engine is not None:
        _engine.dispose()

    _db_path = str(db_path)
    _engine = create_engine(f"sqlite:///{db_path}", echo=False)
    _SessionLocal = sessionmaker(bind=_engine)

    # Create tables
    Base.metadata.create_all(_engine)

    return _engine


def get_db_path() -> str:
    """Path of the SQLite file behind the current engine."""
    if _db_path is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _db_path


def get_engine():
    """The engine created by init_db()."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def dispose_engine():
    """Close pooled connections, e.g. before the database file is replaced."""
    if _engine is not None:
        _engine.dispose()


@contextmanager
def get_session():
    """Get a database session as a context manager."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
