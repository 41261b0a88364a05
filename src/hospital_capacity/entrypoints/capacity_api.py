"""
Capacity API Entrypoint - Thin API with Command Dispatch
"""
import config
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import uvicorn
from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from hospital_capacity import views
from hospital_capacity.adapters import orm
from hospital_capacity.adapters.redis_adapter import PublishFailure
from hospital_capacity.domain.recommendation import DEFAULT_RADIUS_KM, RecommendationQuery
from hospital_capacity.entrypoints import schemas
from hospital_capacity.service_layer import messagebus
from hospital_capacity.service_layer.metrics import Metrics
from hospital_capacity.service_layer.unit_of_work import (
    AbstractUnitOfWork,
    PersistenceFailure,
    SqlAlchemyUnitOfWork,
)

logging.basicConfig(level=config.get_log_level())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Hospital Capacity API",
    description="Hospital bed/ICU capacity ingestion and recommendation",
    version="1.0.0"
)
app.state.metrics = Metrics()


@app.on_event("startup")
async def startup_event():
    engine = create_engine(config.get_postgres_uri())
    orm.metadata.create_all(engine)
    orm.start_mappers()
    logger.info("✓ Hospital capacity database initialized")


def get_uow() -> AbstractUnitOfWork:
    return SqlAlchemyUnitOfWork()


def get_metrics() -> Metrics:
    return app.state.metrics


def check_api_key(x_api_key: Optional[str] = Header(None)):
    """Shared-secret check for write endpoints."""
    api_key = config.get_capacity_api_key()
    if api_key:
        if x_api_key != api_key:
            raise HTTPException(status_code=401, detail="Unauthorized")
    elif config.get_node_env() == "production":
        raise HTTPException(status_code=403, detail="API key not configured, writes disabled in production")
    else:
        logger.warning("POST /capacity/update called without CAPACITY_API_KEY configured (allowed outside production)")


def _db_ok(uow: AbstractUnitOfWork) -> bool:
    try:
        with uow:
            uow.session.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database check failed: {e}")
        return False


# ---------- Endpoints ----------

@app.get("/health")
def health_check(uow: AbstractUnitOfWork = Depends(get_uow)):
    """Health check endpoint"""
    db_ok = _db_ok(uow)
    redis_ok = uow.publisher.ping()
    body = {
        "status": "ok",
        "service": "hospital-capacity-api",
        "db": "connected" if db_ok else "disconnected",
        "redis": "connected" if redis_ok else "disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if db_ok and (redis_ok or not config.is_redis_required()):
        return body
    return JSONResponse(status_code=503, content={**body, "status": "degraded"})


@app.get("/ready")
def readiness_check(uow: AbstractUnitOfWork = Depends(get_uow)):
    if not _db_ok(uow):
        return JSONResponse(status_code=503, content={"status": "not_ready", "reason": "DB unreachable"})
    if config.is_redis_required() and not uow.publisher.ping():
        return JSONResponse(status_code=503, content={"status": "not_ready", "reason": "Redis unreachable"})
    return {"status": "ready"}


@app.get("/metrics")
def get_metrics_snapshot(metrics: Metrics = Depends(get_metrics)):
    return metrics.snapshot()


@app.get("/hospitals")
def list_hospitals(uow: AbstractUnitOfWork = Depends(get_uow)):
    return views.list_hospitals(uow)


@app.get("/hospitals/{hospital_id}")
def get_hospital(hospital_id: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Hospital with its latest capacity history."""
    hospital = views.get_hospital(hospital_id, uow)
    if hospital is None:
        raise HTTPException(status_code=404, detail=f"Hospital {hospital_id} not found")
    return hospital


@app.get("/capacity/recommendation")
def get_recommendation(
    lat: float = Query(..., ge=-90, le=90, allow_inf_nan=False),
    lon: float = Query(..., ge=-180, le=180, allow_inf_nan=False),
    radius_km: Optional[float] = Query(None, gt=0, allow_inf_nan=False),
    icu_required: Optional[str] = Query(None),
    min_available_beds: Optional[int] = Query(None),
    min_icu_available: Optional[int] = Query(None),
    uow: AbstractUnitOfWork = Depends(get_uow),
    metrics: Metrics = Depends(get_metrics),
):
    """
    Hospitals ranked by availability and distance from (lat, lon).

    Returns {items: [...], meta: {excluded_stale_count}}. Only the literal
    "true" turns icu_required on.
    """
    query = RecommendationQuery(
        lat=lat,
        lon=lon,
        radius_km=radius_km if radius_km is not None else DEFAULT_RADIUS_KM,
        icu_required=icu_required == "true",
        min_available_beds=min_available_beds,
        min_icu_available=min_icu_available,
    )
    try:
        result = views.get_recommendations(query, uow, config.get_capacity_stale_after())
    except SQLAlchemyError as e:
        logger.error(f"Error computing recommendation: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    metrics.increment("stale_filtered", result.excluded_stale_count)
    return result.to_dict()


@app.post("/capacity/update", dependencies=[Depends(check_api_key)])
def update_capacity(
    payload: Any = Body(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    metrics: Metrics = Depends(get_metrics),
):
    """
    Accept a capacity report (or a bare hospital registration).

    A publish failure is answered with 502 and persisted=true: the report
    is stored even though the event did not go out.
    """
    metrics.increment("updates_received")
    try:
        cmd = schemas.parse_report(payload, default_source=schemas.API_SOURCE)
    except schemas.InvalidReport as e:
        metrics.increment("dropped_invalid")
        logger.warning(f"Rejected capacity report: {e.errors}")
        return JSONResponse(
            status_code=400,
            content={"error": "Schema Validation Failed", "details": e.errors},
        )
    metrics.increment("updates_validated")

    try:
        messagebus.handle(cmd, uow, metrics)
    except PersistenceFailure:
        return JSONResponse(status_code=500, content={"error": "Internal Error", "persisted": False})
    except PublishFailure:
        return JSONResponse(
            status_code=502,
            content={"error": "Event publish failed", "persisted": True},
        )

    return {"status": "accepted", "hospital_id": cmd.hospital_id}


def main():
    """Run the API with uvicorn."""
    uvicorn.run(app, host="0.0.0.0", port=config.get_service_port())


if __name__ == "__main__":
    main()
