from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from pzem_monitor.db import make_engine, make_session_factory
from pzem_monitor.main import create_app
from pzem_monitor.models import Base
from pzem_monitor.store import MeasurementStore


class FakeClock:
    """Settable replacement for the store's utcnow."""

    def __init__(self, start=datetime(2025, 6, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(session_factory, clock):
    return MeasurementStore(session_factory, clock=clock)


@pytest.fixture
def app(session_factory, clock):
    return create_app(session_factory=session_factory, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
