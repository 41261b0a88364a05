import abc
from datetime import datetime, timezone
from typing import List, Optional, Set

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite

from hospital_capacity.adapters import orm
from hospital_capacity.domain import model

PROFILE_COLUMNS = model.ALWAYS_OVERWRITTEN + model.FILLED_IN_WHEN_PRESENT


class AbstractHospitalRepository(abc.ABC):
    def __init__(self):
        self.seen = set()  # type: Set[model.Hospital]

    def upsert(self, hospital: model.Hospital) -> model.Hospital:
        """Create the hospital or merge its profile into the stored one; returns the stored hospital."""
        stored = self._upsert(hospital)
        self.seen.add(stored)
        return stored

    def get(self, hospital_id: str) -> Optional[model.Hospital]:
        hospital = self._get(hospital_id)
        if hospital:
            self.seen.add(hospital)
        return hospital

    def list(self) -> List[model.Hospital]:
        hospitals = self._list()
        for hospital in hospitals:
            self.seen.add(hospital)
        return hospitals

    @abc.abstractmethod
    def _upsert(self, hospital: model.Hospital) -> model.Hospital:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, hospital_id: str) -> Optional[model.Hospital]:
        raise NotImplementedError

    @abc.abstractmethod
    def _list(self) -> List[model.Hospital]:
        raise NotImplementedError


class SqlAlchemyHospitalRepository(AbstractHospitalRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise NotImplementedError(f"Hospital upsert is not supported on {dialect}")

    def _upsert(self, hospital):
        values = {column: getattr(hospital, column) for column in PROFILE_COLUMNS}
        values["updated_at"] = datetime.now(timezone.utc)

        stmt = self._insert()(orm.hospitals).values(id=hospital.id, **values)
        overwrite = {column: stmt.excluded[column] for column in model.ALWAYS_OVERWRITTEN}
        fill_in = {
            column: func.coalesce(stmt.excluded[column], orm.hospitals.c[column])
            for column in model.FILLED_IN_WHEN_PRESENT
        }
        stmt = stmt.on_conflict_do_update(
            index_elements=[orm.hospitals.c.id],
            set_={**overwrite, **fill_in, "updated_at": stmt.excluded.updated_at},
        )
        self.session.execute(stmt)

        return self.session.get(model.Hospital, hospital.id, populate_existing=True)

    def _get(self, hospital_id):
        return self.session.query(model.Hospital).filter_by(id=hospital_id).first()

    def _list(self) -> List[model.Hospital]:
        return self.session.query(model.Hospital).order_by(model.Hospital.name).all()


class AbstractSnapshotRepository(abc.ABC):
    """Append-only: snapshots are never updated or deleted."""

    def add(self, snapshot: model.CapacitySnapshot):
        self._add(snapshot)

    @abc.abstractmethod
    def _add(self, snapshot: model.CapacitySnapshot):
        raise NotImplementedError


class SqlAlchemySnapshotRepository(AbstractSnapshotRepository):
    def __init__(self, session):
        self.session = session

    def _add(self, snapshot):
        self.session.add(snapshot)
