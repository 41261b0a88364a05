"""
Hospital capacity domain model.

A Hospital carries a denormalized cache of its latest capacity report. The
five cache fields are only ever written together, by Hospital.report(), so
they always describe a single report. CapacitySnapshot rows are the
append-only history behind that cache.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from hospital_capacity.domain.events import CapacityUpdated

UNKNOWN_CITY = "Unknown"

# Open key-value map (e.g. {"cardiology": true, "helipad": false}). On re-report
# a non-null map replaces the stored one wholesale; null keeps the stored one.
Capabilities = Dict[str, Any]

# Upsert policy for an existing hospital
ALWAYS_OVERWRITTEN = ("name", "city", "lat", "lon")
FILLED_IN_WHEN_PRESENT = ("district", "address", "capabilities")


@dataclass(frozen=True)
class BedCapacity:
    """The four figures of a capacity report"""
    total_beds: int
    available_beds: int
    icu_total: int
    icu_available: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class CapacitySnapshot:
    """Immutable history row, ordered by the reporting timestamp"""
    hospital_id: str
    total_beds: int
    available_beds: int
    icu_total: int
    icu_available: int
    updated_at: datetime
    source: str
    id: Optional[int] = None


@dataclass(eq=False)
class Hospital:
    id: str
    name: str
    lat: float
    lon: float
    city: str = UNKNOWN_CITY
    district: Optional[str] = None
    address: Optional[str] = None
    capabilities: Optional[Capabilities] = None
    current_total_beds: Optional[int] = None
    current_available_beds: Optional[int] = None
    current_icu_total: Optional[int] = None
    current_icu_available: Optional[int] = None
    last_capacity_update: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    events: List = field(default_factory=list)

    def __eq__(self, other):
        if not isinstance(other, Hospital):
            return False
        return other.id == self.id

    def __hash__(self):
        return hash(self.id)

    @property
    def has_capacity(self) -> bool:
        return self.last_capacity_update is not None

    def report(
        self,
        capacity: Optional[BedCapacity],
        updated_at: datetime,
        source: str,
    ) -> Optional[CapacitySnapshot]:
        """
        Apply a report to the hospital and raise CapacityUpdated.

        With capacity, the cache fields are overwritten as one unit and the
        matching snapshot is returned for the caller to persist. Without
        capacity (a plain registration) the cache is left alone and None is
        returned; the event is raised in both cases.
        """
        snapshot = None
        if capacity is not None:
            self.current_total_beds = capacity.total_beds
            self.current_available_beds = capacity.available_beds
            self.current_icu_total = capacity.icu_total
            self.current_icu_available = capacity.icu_available
            self.last_capacity_update = updated_at
            snapshot = CapacitySnapshot(
                hospital_id=self.id,
                total_beds=capacity.total_beds,
                available_beds=capacity.available_beds,
                icu_total=capacity.icu_total,
                icu_available=capacity.icu_available,
                updated_at=updated_at,
                source=source,
            )

        self.events.append(
            CapacityUpdated(
                hospital_id=self.id,
                name=self.name,
                city=self.city,
                location={"lat": self.lat, "lon": self.lon},
                updated_at=updated_at,
                capacity=capacity.to_dict() if capacity is not None else None,
            )
        )
        return snapshot
