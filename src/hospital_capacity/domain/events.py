"""Domain events for the hospital capacity service."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

# Every published event declares this service as its origin
PUBLISHER_SOURCE = "service:hospital-capacity"


@dataclass
class Event:
    """Base class for all domain events."""
    pass


@dataclass
class CapacityUpdated(Event):
    """Event raised when a hospital report has been committed."""
    hospital_id: str
    name: str
    city: str
    location: Dict[str, float]  # {"lat": ..., "lon": ...}
    updated_at: datetime
    capacity: Optional[Dict[str, int]]  # None for a registration without capacity
    source: str = PUBLISHER_SOURCE
