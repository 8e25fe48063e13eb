"""
Pytest configuration and shared fixtures.
"""

import asyncio
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

import config
from models.appointment import Appointment, AppointmentCreate, AppointmentState
from models.audit import AuditEntry
from models.blocked_interval import BlockedInterval, TimeRange
from models.patient import Patient
from models.practitioner import Practitioner
from scheduling.locks import DayLockRegistry
from scheduling.service import SchedulingService
from utils.datetime_utils import day_bounds, localize, utc_now


@pytest.fixture(autouse=True)
def mock_settings(monkeypatch):
    """Pin the settings every test relies on."""
    settings = config.settings
    monkeypatch.setattr(settings, "bot_token", None)
    monkeypatch.setattr(settings, "supabase_url", "https://test.supabase.co")
    monkeypatch.setattr(settings, "supabase_key", "test_key")
    monkeypatch.setattr(settings, "timezone", "Europe/Prague")
    monkeypatch.setattr(settings, "working_day_start", time(8, 0))
    monkeypatch.setattr(settings, "working_day_end", time(17, 0))
    monkeypatch.setattr(settings, "store_timeout_seconds", 5.0)
    monkeypatch.setattr(settings, "lock_timeout_seconds", 5.0)
    monkeypatch.setattr(settings, "reminder_hour", 18)
    monkeypatch.setattr(settings, "redis_url", None)
    monkeypatch.setattr(settings, "environment", "test")
    yield settings


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table


class FakeStore:
    """
    In-memory stand-in for ``db.SupabaseClient``.

    Reads yield to the event loop once so concurrent callers interleave the
    way they would against a remote store. Overlaps are not rejected here;
    the service has to prevent them on its own.
    """

    def __init__(self):
        self.practitioners: Dict[str, Practitioner] = {}
        self.patients: Dict[str, Patient] = {}
        self.appointments: Dict[str, Appointment] = {}
        self.blocks: Dict[Tuple[str, date], List[BlockedInterval]] = {}
        self.audit: List[AuditEntry] = []

    # ---- seeding ----

    def add_practitioner(self, name: str = "Dr. Ana Gómez", slot_duration: int = 30) -> Practitioner:
        practitioner = Practitioner(id=str(uuid4()), name=name, slot_duration=slot_duration)
        self.practitioners[practitioner.id] = practitioner
        return practitioner

    def add_patient(self, name: str = "Juan Pérez", telegram_id: Optional[int] = 123456789) -> Patient:
        patient = Patient(id=str(uuid4()), name=name, telegram_id=telegram_id)
        self.patients[patient.id] = patient
        return patient

    def add_appointment(
        self,
        practitioner: Practitioner,
        patient: Patient,
        day: date,
        at: time,
        state: AppointmentState = AppointmentState.AGENDADA,
    ) -> Appointment:
        start = localize(day, at)
        appointment = Appointment(
            id=str(uuid4()),
            practitioner_id=practitioner.id,
            patient_id=patient.id,
            start_time=start,
            end_time=start + timedelta(minutes=practitioner.slot_duration),
            state=state,
            created_at=utc_now(),
        )
        self.appointments[appointment.id] = appointment
        return appointment

    # ---- store interface ----

    async def get_practitioner(self, practitioner_id: str) -> Optional[Practitioner]:
        await asyncio.sleep(0)
        return self.practitioners.get(practitioner_id)

    async def list_practitioners(self, limit: int = 500) -> List[Practitioner]:
        await asyncio.sleep(0)
        return sorted(self.practitioners.values(), key=lambda p: p.name)[:limit]

    async def get_patient(self, patient_id: str) -> Optional[Patient]:
        await asyncio.sleep(0)
        return self.patients.get(patient_id)

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        await asyncio.sleep(0)
        appointment = self.appointments.get(appointment_id)
        return appointment.model_copy() if appointment else None

    async def get_appointments_for_day(
        self, practitioner_id: str, day: date, include_cancelled: bool = False
    ) -> List[Appointment]:
        start, end = day_bounds(day)
        return [
            a
            for a in await self.get_appointments_between(start, end, practitioner_id=practitioner_id)
            if include_cancelled or a.state != AppointmentState.CANCELADA
        ]

    async def get_appointments_between(
        self,
        start: datetime,
        end: datetime,
        state: Optional[AppointmentState] = None,
        practitioner_id: Optional[str] = None,
        limit: int = 1000,
    ) -> List[Appointment]:
        await asyncio.sleep(0)
        found = [
            a.model_copy()
            for a in self.appointments.values()
            if start <= a.start_time < end
            and (state is None or a.state == state)
            and (practitioner_id is None or a.practitioner_id == practitioner_id)
        ]
        return sorted(found, key=lambda a: a.start_time)[:limit]

    async def get_appointments_by_patient(self, patient_id: str, limit: int = 1000) -> List[Appointment]:
        await asyncio.sleep(0)
        found = [a.model_copy() for a in self.appointments.values() if a.patient_id == patient_id]
        return sorted(found, key=lambda a: a.start_time, reverse=True)[:limit]

    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        await asyncio.sleep(0)
        appointment = Appointment(id=str(uuid4()), created_at=utc_now(), **data.model_dump())
        self.appointments[appointment.id] = appointment
        return appointment.model_copy()

    async def update_appointment_state(
        self,
        appointment_id: str,
        state: AppointmentState,
        expected_state: Optional[AppointmentState] = None,
    ) -> Optional[Appointment]:
        await asyncio.sleep(0)
        appointment = self.appointments.get(appointment_id)
        if appointment is None or (expected_state is not None and appointment.state != expected_state):
            return None
        appointment.state = state
        appointment.updated_at = utc_now()
        return appointment.model_copy()

    async def update_appointment_schedule(self, appointment_id, start_time, end_time, allowed_states):
        await asyncio.sleep(0)
        appointment = self.appointments.get(appointment_id)
        if appointment is None or appointment.state not in set(allowed_states):
            return None
        appointment.start_time = start_time
        appointment.end_time = end_time
        appointment.updated_at = utc_now()
        return appointment.model_copy()

    async def get_blocked_intervals(self, practitioner_id: str, day: date) -> List[BlockedInterval]:
        await asyncio.sleep(0)
        return sorted(self.blocks.get((practitioner_id, day), []), key=lambda b: b.start_time)

    async def replace_blocked_intervals(
        self, practitioner_id: str, day: date, intervals: List[TimeRange]
    ) -> List[BlockedInterval]:
        await asyncio.sleep(0)
        blocks = [
            BlockedInterval(
                id=str(uuid4()),
                practitioner_id=practitioner_id,
                date=day,
                start_time=interval.start,
                end_time=interval.end,
            )
            for interval in intervals
        ]
        self.blocks[(practitioner_id, day)] = blocks
        return list(blocks)

    async def override_appointment_state(self, entry: AuditEntry) -> Optional[Appointment]:
        await asyncio.sleep(0)
        appointment = self.appointments.get(entry.appointment_id)
        if appointment is None or appointment.state != entry.previous_state:
            return None
        # Audit row first; a failure leaves the appointment untouched
        await self.record_audit(entry)
        appointment.state = entry.new_state
        appointment.updated_at = utc_now()
        return appointment.model_copy()

    async def record_audit(self, entry: AuditEntry) -> None:
        self.audit.append(entry.model_copy(update={"id": str(uuid4())}))

    async def filter_appointments(
        self,
        practitioner_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        state: Optional[AppointmentState] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> List[Appointment]:
        await asyncio.sleep(0)
        found = [
            a.model_copy()
            for a in self.appointments.values()
            if (practitioner_id is None or a.practitioner_id == practitioner_id)
            and (patient_id is None or a.patient_id == patient_id)
            and (state is None or a.state == state)
            and (start is None or a.start_time >= start)
            and (end is None or a.start_time < end)
        ]
        return sorted(found, key=lambda a: a.start_time)[offset:offset + limit]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def practitioner(store):
    return store.add_practitioner()


@pytest.fixture
def patient(store):
    return store.add_patient()


@pytest.fixture
def mock_notifier():
    """Mock notification dispatcher."""
    notifier = MagicMock()
    notifier.send_appointment_event = AsyncMock(return_value=True)
    notifier.close = AsyncMock()
    return notifier


@pytest.fixture
def mock_publisher():
    """Mock realtime publisher."""
    publisher = MagicMock()
    publisher.push_to_practitioner = AsyncMock(return_value=1)
    return publisher


@pytest.fixture
def service(store, mock_notifier, mock_publisher):
    """Scheduling service over the in-memory store."""
    return SchedulingService(
        db=store,
        notifier=mock_notifier,
        publisher=mock_publisher,
        locks=DayLockRegistry(),
    )
