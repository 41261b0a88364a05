"""
Hospital recommendation: filter and rank hospitals for a location.

Works on plain hospital records (mappings with the hospitals table columns)
so it can be fed straight from a bulk read. Filters are applied in order and
short-circuit on the first failure:

1. staleness (counted separately in the result)
2. ICU capacity, when ICU is required
3. general beds
4. distance from the query point

Survivors are ranked by availability (ICU beds when ICU is required, general
beds otherwise) descending, then distance ascending, then freshest report
first. Ties are exact-value ties only.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from hospital_capacity.domain.geo import haversine_distance

DEFAULT_RADIUS_KM = 50.0


@dataclass(frozen=True)
class RecommendationQuery:
    lat: float
    lon: float
    radius_km: float = DEFAULT_RADIUS_KM
    icu_required: bool = False
    min_available_beds: Optional[int] = None  # None = unconstrained
    min_icu_available: Optional[int] = None  # None = unconstrained


@dataclass
class RecommendationResult:
    items: List[Dict[str, Any]] = field(default_factory=list)
    excluded_stale_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "meta": {"excluded_stale_count": self.excluded_stale_count},
        }


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_stale(last_update: Optional[datetime], now: datetime, stale_after: timedelta) -> bool:
    if last_update is None:
        return True
    return now - _as_utc(last_update) > stale_after


def passes_icu_filter(hospital: Mapping, query: RecommendationQuery) -> bool:
    if not query.icu_required:
        return True
    icu_total = hospital.get("current_icu_total") or 0
    icu_available = hospital.get("current_icu_available") or 0
    # Kept as three separate checks
    if icu_total <= 0:
        return False
    if query.min_icu_available is not None and icu_available < query.min_icu_available:
        return False
    if icu_available <= 0:
        return False
    return True


def passes_bed_filter(hospital: Mapping, query: RecommendationQuery) -> bool:
    available = hospital.get("current_available_beds") or 0
    if query.min_available_beds is not None and available < query.min_available_beds:
        return False
    # Zero general beds only disqualifies when ICU is not the deciding resource
    if not query.icu_required and available <= 0:
        return False
    return True


def _ranking_key(query: RecommendationQuery):
    availability_column = "current_icu_available" if query.icu_required else "current_available_beds"

    def key(item):
        last_update = item.get("last_capacity_update")
        freshness = _as_utc(last_update).timestamp() if last_update else float("-inf")
        return (-(item.get(availability_column) or 0), item["distance_km"], -freshness)

    return key


def rank_hospitals(
    hospitals: Iterable[Mapping],
    query: RecommendationQuery,
    stale_after: timedelta,
    now: Optional[datetime] = None,
) -> RecommendationResult:
    """Filter and rank hospital records for a recommendation query."""
    now = _as_utc(now) if now else datetime.now(timezone.utc)
    result = RecommendationResult()

    for hospital in hospitals:
        if is_stale(hospital.get("last_capacity_update"), now, stale_after):
            result.excluded_stale_count += 1
            continue
        if not passes_icu_filter(hospital, query):
            continue
        if not passes_bed_filter(hospital, query):
            continue

        distance_km = haversine_distance(query.lat, query.lon, hospital["lat"], hospital["lon"])
        if distance_km > query.radius_km:
            continue

        result.items.append({**hospital, "distance_km": distance_km})

    result.items.sort(key=_ranking_key(query))
    return result
