"""Audit trail of administrative state overrides."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .actor import ActorRole
from .appointment import AppointmentState


class AuditEntry(BaseModel):
    """One administrative override."""

    id: Optional[str] = None
    appointment_id: str
    actor_id: str
    actor_role: ActorRole
    previous_state: AppointmentState
    new_state: AppointmentState
    reason: Optional[str] = None
    created_at: datetime
