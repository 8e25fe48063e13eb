"""Derived availability views (never persisted)."""

from datetime import date as Date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TimeSlot(BaseModel):
    """Candidate fixed-duration window ``[start, end)``."""

    start: datetime
    end: datetime


class OccupancySource(str, Enum):
    """Why a practitioner is unavailable during an interval."""

    APPOINTMENT = "appointment"
    BLOCK = "block"


class OccupiedInterval(BaseModel):
    """Time range during which a practitioner is unavailable."""

    start: datetime
    end: datetime
    source: OccupancySource
    reference_id: Optional[str] = None


class AvailabilitySnapshot(BaseModel):
    """Candidate slots of a practitioner+date partitioned by availability."""

    date: Date
    practitioner_id: str
    available_slots: List[TimeSlot] = Field(default_factory=list)
    blocked_slots: List[TimeSlot] = Field(default_factory=list)
    booked_slots: List[TimeSlot] = Field(default_factory=list)

    @property
    def total_slots(self) -> int:
        """Number of candidate slots considered."""
        return len(self.available_slots) + len(self.blocked_slots) + len(self.booked_slots)
