"""
Views for read operations - separate from the command/write path.

Reads go straight to the tables, without loading aggregates and without
taking locks. Recommendation reads tolerate a hospital being updated while
the result is being ranked.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from hospital_capacity.adapters import orm
from hospital_capacity.domain.recommendation import (
    RecommendationQuery,
    RecommendationResult,
    rank_hospitals,
)
from hospital_capacity.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


def get_recommendations(
    query: RecommendationQuery,
    uow: AbstractUnitOfWork,
    stale_after: timedelta,
    now: Optional[datetime] = None,
) -> RecommendationResult:
    """
    Rank every hospital that has ever reported capacity for a location.

    Args:
        query: Location and filters
        uow: Unit of work
        stale_after: Reports older than this are excluded and counted
        now: Reference time for staleness, defaults to the current time

    Returns:
        RecommendationResult with the ranked items and the stale count
    """
    with uow:
        rows = uow.session.execute(
            select(orm.hospitals).where(orm.hospitals.c.last_capacity_update.isnot(None))
        ).mappings().all()

    result = rank_hospitals([dict(row) for row in rows], query, stale_after, now=now)
    logger.info(
        f"Recommendation at ({query.lat}, {query.lon}) r={query.radius_km}km: "
        f"{len(result.items)} of {len(rows)} candidates, {result.excluded_stale_count} stale"
    )
    return result


def list_hospitals(uow: AbstractUnitOfWork) -> List[Dict[str, Any]]:
    with uow:
        rows = uow.session.execute(
            select(orm.hospitals).order_by(orm.hospitals.c.name.asc())
        ).mappings().all()
        return [dict(row) for row in rows]


def get_capacity_history(
    hospital_id: str,
    uow: AbstractUnitOfWork,
    limit: int = HISTORY_LIMIT,
) -> List[Dict[str, Any]]:
    """Latest snapshots first, by reporting timestamp."""
    with uow:
        rows = uow.session.execute(
            select(orm.capacity_snapshots)
            .where(orm.capacity_snapshots.c.hospital_id == hospital_id)
            .order_by(orm.capacity_snapshots.c.updated_at.desc())
            .limit(limit)
        ).mappings().all()
        return [dict(row) for row in rows]


def get_hospital(hospital_id: str, uow: AbstractUnitOfWork) -> Optional[Dict[str, Any]]:
    """Hospital with its recent capacity history, or None if it is unknown."""
    with uow:
        row = uow.session.execute(
            select(orm.hospitals).where(orm.hospitals.c.id == hospital_id)
        ).mappings().first()

    if row is None:
        return None

    return {**dict(row), "history": get_capacity_history(hospital_id, uow)}
