from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .schema import create_all


def get_engine(sqlite_path: str):
    engine_url = f"sqlite:///{sqlite_path}"
    engine = create_engine(engine_url, future=True)
    create_all(engine_url)
    return engine


def get_session(sqlite_path: str) -> Session:
    """Get a SQLAlchemy session (caller must close it)."""
    engine = get_engine(sqlite_path)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


@contextmanager
def session_context(sqlite_path: str) -> Generator[Session, None, None]:
    """
    Context manager for SQLAlchemy sessions.

    Rolls back on error and always closes the session. Commits stay explicit:
    the API layer commits after each successful mutation.

    Usage:
        with session_context(sqlite_path) as session:
            create_client(session, fields)
    """
    session = get_session(sqlite_path)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class StoreError(Exception):
    """A read or write hit a database error; the session has been rolled back."""


def commit_or_rollback(session: Session) -> None:
    """Commit the session, translating database errors into StoreError."""
    with store_errors(session):
        session.commit()


@contextmanager
def store_errors(session: Session) -> Generator[None, None, None]:
    """Translate database errors raised inside the block into StoreError, rolling back."""
    try:
        yield
    except SQLAlchemyError as exc:
        session.rollback()
        raise StoreError(str(getattr(exc, "orig", None) or exc)) from exc
