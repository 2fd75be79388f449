"""Pytest fixtures for dashboard tests."""

import datetime as dt
import os

# Settings are read at import time; keep tests off the default Postgres URL.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dashboard.db.session import Base, make_engine, make_session_factory
from dashboard.models.user import User
from dashboard.services.archive_store import ArchiveStore
from dashboard.services.backup_records import BackupRecordManager

# Ensure all models are loaded for create_all
import dashboard.models  # noqa: F401

T0 = dt.datetime(2026, 10, 18, 9, 0, 0, tzinfo=dt.timezone.utc)


class StepClock:
    """Deterministic clock: every call returns the next instant."""

    def __init__(self, start: dt.datetime = T0, step: dt.timedelta = dt.timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> dt.datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture(scope="function")
def db():
    """Create an in-memory SQLite DB with all tables for tests."""
    engine = create_engine("sqlite+pysqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(tmp_path):
    """File-backed SQLite so concurrent table reads each get their own connection."""
    engine = make_engine(f"sqlite+pysqlite:///{tmp_path / 'dashboard.sqlite'}")
    Base.metadata.create_all(engine)
    try:
        yield make_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(tmp_path):
    return ArchiveStore(tmp_path / "backups")


@pytest.fixture
def records(session_factory, clock):
    return BackupRecordManager(session_factory, clock=clock)


@pytest.fixture
def admin(session_factory):
    with session_factory() as s:
        user = User(email="admin@example.com", name="Admin User")
        s.add(user)
        s.commit()
        s.refresh(user)
    return user
