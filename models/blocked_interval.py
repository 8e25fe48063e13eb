"""Blocked interval models: declared unavailability that is not an appointment."""

from datetime import date as Date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field


class TimeRange(BaseModel):
    """Wall-clock time range on a calendar date, as supplied by callers."""

    start: time
    end: time


class BlockedInterval(BaseModel):
    """Blocked interval stored for a practitioner and date."""

    id: Optional[str] = None
    practitioner_id: str = Field(..., description="Practitioner ID (Supabase UUID)")
    date: Date
    start_time: time
    end_time: time
    created_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "practitioner_id": "uuid-here",
                "date": "2025-06-01",
                "start_time": "12:00:00",
                "end_time": "13:00:00",
            }
        }
