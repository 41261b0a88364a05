import logging
from sqlalchemy import (
    Table,
    Column,
    Integer,
    Float,
    String,
    DateTime,
    JSON,
    ForeignKey,
    event,
)
from sqlalchemy.orm import registry
from hospital_capacity.domain import model

logger = logging.getLogger(__name__)

mapper_registry = registry()
metadata = mapper_registry.metadata

hospitals = Table(
    "hospitals",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("city", String(255), nullable=False, server_default=model.UNKNOWN_CITY),
    Column("district", String(255)),
    Column("address", String(1024)),
    Column("lat", Float, nullable=False),
    Column("lon", Float, nullable=False),
    # SQL NULL rather than JSON null, so COALESCE keeps the stored map
    Column("capabilities", JSON(none_as_null=True)),
    Column("current_total_beds", Integer),
    Column("current_available_beds", Integer),
    Column("current_icu_total", Integer),
    Column("current_icu_available", Integer),
    Column("last_capacity_update", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

capacity_snapshots = Table(
    "capacity_snapshots",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hospital_id", String(255), ForeignKey("hospitals.id"), nullable=False, index=True),
    Column("total_beds", Integer, nullable=False),
    Column("available_beds", Integer, nullable=False),
    Column("icu_total", Integer, nullable=False),
    Column("icu_available", Integer, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("source", String(255), nullable=False),
)


def start_mappers():
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.Hospital, hospitals)
    mapper_registry.map_imperatively(model.CapacitySnapshot, capacity_snapshots)


@event.listens_for(model.Hospital, "load")
def receive_load(hospital, _):
    hospital.events = []
