"""Practitioner models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from utils.constants import (
    DEFAULT_SLOT_DURATION_MINUTES,
    MAX_SLOT_DURATION_MINUTES,
    MIN_SLOT_DURATION_MINUTES,
)


class Practitioner(BaseModel):
    """Practitioner model. Every appointment with them lasts ``slot_duration`` minutes."""

    id: str = Field(..., description="Practitioner ID (Supabase UUID)")
    name: str
    specialty: Optional[str] = None
    slot_duration: int = Field(
        default=DEFAULT_SLOT_DURATION_MINUTES,
        ge=MIN_SLOT_DURATION_MINUTES,
        le=MAX_SLOT_DURATION_MINUTES,
        description="Appointment duration in minutes",
    )
    email: Optional[EmailStr] = None
    created_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "uuid-here",
                "name": "Dr. Ana Gómez",
                "specialty": "cardiología",
                "slot_duration": 30,
            }
        }
