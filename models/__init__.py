"""Pydantic models for data validation and serialization."""

from .actor import Actor, ActorRole
from .appointment import (
    ACTIVE_STATES,
    TERMINAL_STATES,
    Appointment,
    AppointmentAction,
    AppointmentCreate,
    AppointmentState,
)
from .audit import AuditEntry
from .availability import AvailabilitySnapshot, OccupancySource, OccupiedInterval, TimeSlot
from .blocked_interval import BlockedInterval, TimeRange
from .patient import Patient
from .practitioner import Practitioner

__all__ = [
    "ACTIVE_STATES",
    "TERMINAL_STATES",
    "Actor",
    "ActorRole",
    "Appointment",
    "AppointmentAction",
    "AppointmentCreate",
    "AppointmentState",
    "AuditEntry",
    "AvailabilitySnapshot",
    "BlockedInterval",
    "OccupancySource",
    "OccupiedInterval",
    "Patient",
    "Practitioner",
    "TimeRange",
    "TimeSlot",
]
