# pylint: disable=redefined-outer-name
from datetime import datetime, timezone

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, clear_mappers
from sqlalchemy.pool import StaticPool

from hospital_capacity.adapters.redis_adapter import AbstractEventPublisher, PublishFailure
from hospital_capacity.domain.commands import ReportCapacity
from hospital_capacity.domain.model import BedCapacity


class FakePublisher(AbstractEventPublisher):
    """Keeps published events in memory; can be told to fail like an unreachable Redis."""

    def __init__(self, fail=False):
        self.fail = fail
        self.published = []

    def publish(self, subject, event):
        if self.fail:
            raise PublishFailure(f"Could not publish {subject}: connection refused")
        self.published.append((subject, event))
        return f"event-{len(self.published)}"

    def ping(self):
        return not self.fail


@pytest.fixture
def sqlite_session_factory():
    """SQLite in-memory database shared across threads (the API test client runs handlers in a threadpool)."""
    from hospital_capacity.adapters import orm

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    orm.metadata.create_all(engine)
    orm.start_mappers()

    yield sessionmaker(bind=engine)

    clear_mappers()
    engine.dispose()


@pytest.fixture
def fake_publisher():
    return FakePublisher()


@pytest.fixture
def failing_publisher():
    return FakePublisher(fail=True)


@pytest.fixture
def uow(sqlite_session_factory, fake_publisher):
    from hospital_capacity.service_layer.unit_of_work import SqlAlchemyUnitOfWork

    return SqlAlchemyUnitOfWork(session_factory=sqlite_session_factory, publisher=fake_publisher)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


def make_report(hospital_id="H1", capacity=(100, 10, 20, 5), updated_at=None, **overrides):
    """ReportCapacity command with sensible defaults; capacity=None for a bare registration."""
    fields = dict(
        hospital_id=hospital_id,
        name=f"Hospital {hospital_id}",
        lat=40.0,
        lon=30.0,
        updated_at=updated_at or datetime.now(timezone.utc),
        source="api",
        capacity=BedCapacity(*capacity) if capacity is not None else None,
    )
    fields.update(overrides)
    return ReportCapacity(**fields)


@pytest.fixture
def report_factory():
    return make_report
