# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
import abc
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session


import config
from hospital_capacity.adapters import repository, redis_adapter


class PersistenceFailure(Exception):
    """Storage failed during a unit of work; nothing from it was committed."""


class AbstractUnitOfWork(abc.ABC):
    hospitals: repository.AbstractHospitalRepository
    snapshots: repository.AbstractSnapshotRepository
    publisher: redis_adapter.AbstractEventPublisher

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    def collect_new_events(self):
        for hospital in self.hospitals.seen:
            while hospital.events:
                yield hospital.events.pop(0)

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


# Concurrent reports for one hospital queue on the row lock taken by the upsert
DEFAULT_SESSION_FACTORY = sessionmaker(
    bind=create_engine(
        config.get_postgres_uri(),
        isolation_level="READ COMMITTED",
        pool_size=config.get_db_pool_size(),
        pool_pre_ping=True,
    )
)

class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory=DEFAULT_SESSION_FACTORY, publisher=None):
        self.session_factory = session_factory
        self.publisher_impl = publisher

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self.hospitals = repository.SqlAlchemyHospitalRepository(self.session)
        self.snapshots = repository.SqlAlchemySnapshotRepository(self.session)
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    @property
    def publisher(self):
        if self.publisher_impl is None:
            self.publisher_impl = redis_adapter.RedisStreamPublisher()
        return self.publisher_impl

    def _commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
