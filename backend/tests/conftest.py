from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from helpers import FakeActivityData, FakeCalendar
from stridewise.core.config import settings
from stridewise.db.models.action_log import ActionLog
from stridewise.db.models.kv_entry import KeyValueEntry
from stridewise.services.container import build_services
from stridewise.services.store import MemoryStore


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    KeyValueEntry.__table__.create(bind=engine)
    ActionLog.__table__.create(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture()
def activity_data() -> FakeActivityData:
    return FakeActivityData()


@pytest.fixture()
def services(session_factory, calendar, activity_data):
    return build_services(
        settings,
        session_factory,
        store=MemoryStore(),
        calendar=calendar,
        activity_data=activity_data,
    )


@pytest.fixture()
def client(services):
    from fastapi.testclient import TestClient

    from stridewise.main import app

    app.state.services = services
    with TestClient(app) as test_client:
        yield test_client
    app.state.services = None
