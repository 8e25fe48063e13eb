"""Appointment models and lifecycle vocabulary."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class AppointmentState(str, Enum):
    """Appointment lifecycle state."""

    AGENDADA = "agendada"  # scheduled
    EN_ESPERA = "en_espera"  # checked in, waiting
    ATENDIDA = "atendida"  # completed
    CANCELADA = "cancelada"  # cancelled

    @property
    def is_terminal(self) -> bool:
        """Terminal states admit no further transition."""
        return self in TERMINAL_STATES

    @property
    def occupies_calendar(self) -> bool:
        """Every state except cancelled keeps the time range occupied."""
        return self is not AppointmentState.CANCELADA


TERMINAL_STATES = frozenset({AppointmentState.ATENDIDA, AppointmentState.CANCELADA})
ACTIVE_STATES = frozenset(
    {AppointmentState.AGENDADA, AppointmentState.EN_ESPERA, AppointmentState.ATENDIDA}
)


class AppointmentAction(str, Enum):
    """Ordinary lifecycle actions."""

    CHECK_IN = "check_in"
    COMPLETE = "complete"
    CANCEL = "cancel"


class Appointment(BaseModel):
    """Appointment model."""

    id: Optional[str] = None
    practitioner_id: str = Field(..., description="Practitioner ID (Supabase UUID)")
    patient_id: str = Field(..., description="Patient ID (Supabase UUID)")
    start_time: datetime
    end_time: datetime
    state: AppointmentState = AppointmentState.AGENDADA
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "practitioner_id": "uuid-here",
                "patient_id": "uuid-here",
                "start_time": "2025-06-01T10:00:00+02:00",
                "end_time": "2025-06-01T10:30:00+02:00",
                "state": "agendada",
            }
        }

    @property
    def is_active(self) -> bool:
        """True while the appointment occupies the practitioner's calendar."""
        return self.state.occupies_calendar


class AppointmentCreate(BaseModel):
    """Appointment creation model."""

    practitioner_id: str
    patient_id: str
    start_time: datetime
    end_time: datetime
    state: AppointmentState = AppointmentState.AGENDADA

    @model_validator(mode="after")
    def validate_range(self) -> "AppointmentCreate":
        """End must come after start."""
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        return self
