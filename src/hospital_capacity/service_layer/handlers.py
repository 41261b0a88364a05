import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

import config
from hospital_capacity.adapters.redis_adapter import PublishFailure
from hospital_capacity.domain import events, model
from hospital_capacity.domain.commands import ReportCapacity
from hospital_capacity.service_layer.metrics import Metrics
from hospital_capacity.service_layer.unit_of_work import AbstractUnitOfWork, PersistenceFailure

logger = logging.getLogger(__name__)


def report_capacity(
    command: ReportCapacity,
    uow: AbstractUnitOfWork,
    metrics: Optional[Metrics] = None,
) -> str:
    """
    Record a hospital report as one atomic unit of work.

    Flow:
    1. Upsert the hospital (profile merge, see model.FILLED_IN_WHEN_PRESENT)
    2. If capacity was reported: append the snapshot and overwrite the cache
    3. Commit

    Any storage error rolls the whole unit back. The CapacityUpdated event
    raised by the hospital is only collected by the message bus once the
    commit has succeeded.

    Args:
        command: ReportCapacity command
        uow: Unit of work for transaction management
        metrics: Optional counter registry

    Returns:
        hospital_id: The ID of the reported hospital

    Raises:
        PersistenceFailure: If any storage step fails
    """
    logger.info(f"Processing ReportCapacity command for hospital {command.hospital_id} (source={command.source})")

    try:
        with uow:
            hospital = uow.hospitals.upsert(
                model.Hospital(
                    id=command.hospital_id,
                    name=command.name,
                    lat=command.lat,
                    lon=command.lon,
                    city=command.city or model.UNKNOWN_CITY,
                    district=command.district,
                    address=command.address,
                    capabilities=command.capabilities,
                )
            )

            snapshot = hospital.report(command.capacity, command.updated_at, command.source)
            if snapshot is not None:
                uow.snapshots.add(snapshot)

            uow.commit()
            logger.info(f"Committed report for hospital {command.hospital_id}")

    except SQLAlchemyError as e:
        if metrics:
            metrics.increment("db_errors")
        logger.error(f"Failed to persist report for hospital {command.hospital_id}: {e}")
        raise PersistenceFailure(f"Could not persist report for {command.hospital_id}") from e

    if metrics:
        metrics.increment("updates_persisted")
    return command.hospital_id


def publish_capacity_updated(
    event: events.CapacityUpdated,
    uow: AbstractUnitOfWork,
    metrics: Optional[Metrics] = None,
):
    """
    Publish CapacityUpdated to the updated-capacity stream.

    Runs after commit. A failure here is reported as PublishFailure and
    the stored report stays in place; the event is not retried or queued.
    """
    subject = config.get_stream_config()["updated"]
    logger.info(f"Publishing CapacityUpdated event for hospital {event.hospital_id}")
    try:
        event_id = uow.publisher.publish(subject, event)
    except PublishFailure:
        if metrics:
            metrics.increment("publish_errors")
        raise

    if metrics:
        metrics.increment("updates_published")
    logger.info(f"Published CapacityUpdated event {event_id} for {event.hospital_id}")
