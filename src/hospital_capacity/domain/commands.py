"""Commands for the hospital capacity service."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from hospital_capacity.domain.model import BedCapacity


@dataclass
class Command:
    """Base class for all commands."""
    pass


@dataclass
class ReportCapacity(Command):
    """Command to register a hospital and, optionally, record a capacity report for it."""
    hospital_id: str
    name: str
    lat: float
    lon: float
    updated_at: datetime  # Reporting timestamp, not ingestion time
    source: str  # "api" or "stream-consumer" unless the reporter set one
    city: Optional[str] = None
    district: Optional[str] = None
    address: Optional[str] = None
    capabilities: Optional[Dict[str, Any]] = None
    capacity: Optional[BedCapacity] = None
