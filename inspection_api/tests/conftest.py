"""Shared pytest fixtures for inspection_api tests."""

from __future__ import annotations

from typing import Generator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from inspection_api.db.base import Base
from inspection_core.schemas import InspectionWorkCompleted
from inspection_core.workflow import Notifier


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.events: List[InspectionWorkCompleted] = []

    def notify(self, event: InspectionWorkCompleted) -> None:
        self.events.append(event)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite shared across threads via a single connection."""
    from inspection_api import models_db  # noqa: F401  (registers tables)

    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def app_ref():
    """Return the FastAPI app for dependency overrides."""
    from inspection_api.main import app
    return app


@pytest.fixture()
def client(app_ref, session_factory: sessionmaker, notifier: RecordingNotifier):
    """TestClient wired to the in-memory database and a recording notifier."""
    from inspection_api.api.deps import get_db, get_notifier

    def _get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app_ref.dependency_overrides[get_db] = _get_db
    app_ref.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app_ref) as test_client:
        yield test_client
    app_ref.dependency_overrides.clear()
