"""
Request schemas for capacity reports.

Both entrypoints (HTTP and the stream consumer) validate reports here before
anything is written, and turn them into ReportCapacity commands.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from hospital_capacity.domain.commands import ReportCapacity
from hospital_capacity.domain.model import BedCapacity

API_SOURCE = "api"
STREAM_SOURCE = "stream-consumer"


class InvalidReport(ValueError):
    """Report is missing required fields or is malformed. Never worth retrying."""

    def __init__(self, errors: List[Dict[str, Any]]):
        super().__init__(f"Invalid capacity report: {len(errors)} error(s)")
        self.errors = errors


class Location(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class Capacity(BaseModel):
    total_beds: int = Field(ge=0)
    available_beds: int = Field(ge=0)
    icu_total: int = Field(ge=0)
    icu_available: int = Field(ge=0)


class CapacityReportRequest(BaseModel):
    hospital_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    location: Location
    city: Optional[str] = None
    district: Optional[str] = None
    address: Optional[str] = None
    capabilities: Optional[Dict[str, Any]] = None
    capacity: Optional[Capacity] = None
    updated_at: Optional[datetime] = None
    source: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "hospital_id": "H1",
                "name": "City General",
                "location": {"lat": 40.0, "lon": 30.0},
                "city": "Ankara",
                "capacity": {
                    "total_beds": 100,
                    "available_beds": 10,
                    "icu_total": 20,
                    "icu_available": 5,
                },
                "updated_at": "2024-10-24T10:30:00Z",
            }
        }
    }

    def to_command(self, default_source: str) -> ReportCapacity:
        updated_at = self.updated_at or datetime.now(timezone.utc)
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)

        capacity = None
        if self.capacity is not None:
            capacity = BedCapacity(**self.capacity.model_dump())

        return ReportCapacity(
            hospital_id=self.hospital_id,
            name=self.name,
            lat=self.location.lat,
            lon=self.location.lon,
            updated_at=updated_at,
            source=self.source or default_source,
            city=self.city,
            district=self.district,
            address=self.address,
            capabilities=self.capabilities,
            capacity=capacity,
        )


def parse_report(payload: Any, default_source: str) -> ReportCapacity:
    """
    Validate a raw report and build the command for it.

    Raises:
        InvalidReport: If the payload does not describe a valid report
    """
    try:
        report = CapacityReportRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidReport(e.errors(include_url=False)) from e
    return report.to_command(default_source)
