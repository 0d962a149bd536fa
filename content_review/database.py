"""
Database engine, session factory and declarative base.
"""
import sqlite3
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

settings = get_settings()

connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args = {
        "check_same_thread": False,
        "timeout": settings.request_timeout_seconds,
    }

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def enable_sqlite_fks(dbapi_connection, connection_record):
    """Enable foreign key constraints in SQLite."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DeadlineExceeded(Exception):
    """A commit was attempted after its request had already timed out."""


class RequestDeadline:
    """Wall-clock limit for one request, shared with the threads serving it."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds
        self.timed_out = False

    @property
    def passed(self) -> bool:
        return self.timed_out or time.monotonic() >= self.expires_at


_request_deadline: ContextVar[Optional[RequestDeadline]] = ContextVar("request_deadline", default=None)


@contextmanager
def request_deadline(seconds: float):
    """Bind a deadline to the current request; worker threads inherit it."""
    deadline = RequestDeadline(seconds)
    token = _request_deadline.set(deadline)
    try:
        yield deadline
    finally:
        _request_deadline.reset(token)


@event.listens_for(Session, "before_commit")
def refuse_late_commit(session):
    """A handler still running after its 504 must not persist anything."""
    deadline = _request_deadline.get()
    if deadline is not None and deadline.passed:
        raise DeadlineExceeded(f"Request exceeded {deadline.seconds}s; commit refused")


def get_db():
    """Yield a database session for the duration of a request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
