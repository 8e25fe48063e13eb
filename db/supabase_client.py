"""
Supabase database client with CRUD operations.
Handles all store interactions for practitioners, patients, appointments,
blocked intervals and the administrative audit trail.

Consistency Notes:
==================
The ``appointments`` table carries an exclusion constraint
(``appointments_no_overlap``, see db/schema.sql) that rejects two
non-cancelled appointments of the same practitioner with overlapping
``[start_time, end_time)`` ranges. It is the store-level backstop for the
per-(practitioner, date) lock held by the scheduling service, so two
processes racing for the same slot cannot both commit. A violation is
reported as ``ConflictError``.

Replacing the blocked intervals of a practitioner+date goes through the
``replace_blocked_intervals`` function so the delete and the inserts run in
one transaction. Administrative overrides go through
``override_appointment_state`` so the state write and its audit row commit
together or not at all.

Every request runs in a worker thread bounded by
``settings.store_timeout_seconds``; a timeout fails closed with
``StoreUnavailableError``.
"""

import asyncio
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from postgrest.exceptions import APIError
from supabase import Client as SupabaseClientType
from supabase import ClientOptions, create_client

from config import settings
from models.appointment import Appointment, AppointmentCreate, AppointmentState
from models.audit import AuditEntry
from models.blocked_interval import BlockedInterval, TimeRange
from models.patient import Patient
from models.practitioner import Practitioner
from utils.constants import (
    AGENDA_QUERY_LIMIT,
    DEFAULT_PAGE_SIZE,
    EXCLUSION_VIOLATION,
    PRACTITIONERS_QUERY_LIMIT,
)
from utils.datetime_utils import day_bounds, parse_iso_datetime, to_iso_string, utc_now
from utils.exceptions import ConflictError, DatabaseError, StoreUnavailableError
from utils.validation import validate_uuid


class SupabaseClient:
    """
    Supabase database client wrapper.

    Uses the service_role key, which bypasses RLS; authorization is enforced
    by the routing layer and the scheduling service.
    """

    def __init__(self):
        """Initialize Supabase client with a bounded request timeout."""
        self.client: SupabaseClientType = create_client(
            settings.supabase_url,
            settings.supabase_key,
            options=ClientOptions(postgrest_client_timeout=settings.store_timeout_seconds),
        )
        self.timeout = settings.store_timeout_seconds

    async def _execute(self, query: Any, operation: str) -> Any:
        """
        Run a PostgREST request off the event loop, bounded by the store timeout.

        Raises:
            ConflictError: The overlap exclusion constraint rejected the write
            StoreUnavailableError: The store did not answer in time
            DatabaseError: Any other store failure
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(query.execute), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise StoreUnavailableError(f"Store timed out during {operation}") from e
        except APIError as e:
            if e.code == EXCLUSION_VIOLATION:
                raise ConflictError("Practitioner not available at that time") from e
            raise DatabaseError(f"Failed to {operation}: {e}") from e
        except Exception as e:
            raise DatabaseError(f"Failed to {operation}: {e}") from e

    # ========== Practitioner Operations ==========

    async def get_practitioner(self, practitioner_id: str) -> Optional[Practitioner]:
        """Get practitioner by ID."""
        if not validate_uuid(practitioner_id):
            return None

        response = await self._execute(
            self.client.table("practitioners").select("*").eq("id", practitioner_id),
            "get practitioner",
        )

        if response.data:
            return Practitioner(**response.data[0])
        return None

    async def list_practitioners(self, limit: int = PRACTITIONERS_QUERY_LIMIT) -> List[Practitioner]:
        """Get all practitioners ordered by name."""
        response = await self._execute(
            self.client.table("practitioners").select("*").order("name").limit(limit),
            "list practitioners",
        )
        return [Practitioner(**item) for item in response.data]

    # ========== Patient Operations ==========

    async def get_patient(self, patient_id: str) -> Optional[Patient]:
        """Get patient by ID."""
        if not validate_uuid(patient_id):
            return None

        response = await self._execute(
            self.client.table("patients").select("*").eq("id", patient_id),
            "get patient",
        )

        if response.data:
            return Patient(**response.data[0])
        return None

    # ========== Appointment Operations ==========

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        """Get appointment by ID."""
        if not validate_uuid(appointment_id):
            return None

        response = await self._execute(
            self.client.table("appointments").select("*").eq("id", appointment_id),
            "get appointment",
        )

        if response.data:
            return self._parse_appointment(response.data[0])
        return None

    async def get_appointments_for_day(
        self,
        practitioner_id: str,
        day: date,
        include_cancelled: bool = False,
    ) -> List[Appointment]:
        """Appointments of a practitioner starting on ``day`` (clinic timezone), by start time."""
        day_start, day_end = day_bounds(day)
        query = (
            self.client.table("appointments")
            .select("*")
            .eq("practitioner_id", practitioner_id)
            .gte("start_time", to_iso_string(day_start))
            .lt("start_time", to_iso_string(day_end))
        )

        if not include_cancelled:
            query = query.neq("state", AppointmentState.CANCELADA.value)

        response = await self._execute(
            query.order("start_time", desc=False).limit(AGENDA_QUERY_LIMIT),
            "get appointments for day",
        )
        return [self._parse_appointment(item) for item in response.data]

    async def get_appointments_between(
        self,
        start: datetime,
        end: datetime,
        state: Optional[AppointmentState] = None,
        practitioner_id: Optional[str] = None,
        limit: int = AGENDA_QUERY_LIMIT,
    ) -> List[Appointment]:
        """
        Appointments starting in ``[start, end)``.

        Args:
            start: lower bound (inclusive) on start_time
            end: upper bound (exclusive) on start_time
            state: Filter by lifecycle state
            practitioner_id: Filter by practitioner
            limit: Maximum number of appointments to return
        """
        query = (
            self.client.table("appointments")
            .select("*")
            .gte("start_time", to_iso_string(start))
            .lt("start_time", to_iso_string(end))
        )

        if state:
            query = query.eq("state", state.value)
        if practitioner_id:
            query = query.eq("practitioner_id", practitioner_id)

        response = await self._execute(
            query.order("start_time", desc=False).limit(limit),
            "get appointments between",
        )
        return [self._parse_appointment(item) for item in response.data]

    async def get_appointments_by_patient(
        self, patient_id: str, limit: int = AGENDA_QUERY_LIMIT
    ) -> List[Appointment]:
        """All appointments of a patient, most recent first."""
        if not validate_uuid(patient_id):
            return []

        response = await self._execute(
            self.client.table("appointments")
            .select("*")
            .eq("patient_id", patient_id)
            .order("start_time", desc=True)
            .limit(limit),
            "get appointments by patient",
        )
        return [self._parse_appointment(item) for item in response.data]

    async def filter_appointments(
        self,
        practitioner_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        state: Optional[AppointmentState] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[Appointment]:
        """
        One page of appointments matching every given filter, by start time.

        Args:
            practitioner_id: Filter by practitioner
            patient_id: Filter by patient
            state: Filter by lifecycle state
            start: lower bound (inclusive) on start_time
            end: upper bound (exclusive) on start_time
            offset: Number of matching appointments to skip
            limit: Page size
        """
        query = self.client.table("appointments").select("*")

        if practitioner_id:
            query = query.eq("practitioner_id", practitioner_id)
        if patient_id:
            query = query.eq("patient_id", patient_id)
        if state:
            query = query.eq("state", state.value)
        if start:
            query = query.gte("start_time", to_iso_string(start))
        if end:
            query = query.lt("start_time", to_iso_string(end))

        response = await self._execute(
            query.order("start_time", desc=False).range(offset, offset + limit - 1),
            "filter appointments",
        )
        return [self._parse_appointment(item) for item in response.data]

    async def create_appointment(self, appointment_data: AppointmentCreate) -> Appointment:
        """Create a new appointment."""
        data = appointment_data.model_dump(mode="json")
        data["start_time"] = to_iso_string(appointment_data.start_time)
        data["end_time"] = to_iso_string(appointment_data.end_time)

        response = await self._execute(
            self.client.table("appointments").insert(data), "create appointment"
        )

        if not response.data:
            raise DatabaseError("Failed to create appointment: no data returned")

        return self._parse_appointment(response.data[0])

    async def update_appointment_state(
        self,
        appointment_id: str,
        state: AppointmentState,
        expected_state: Optional[AppointmentState] = None,
    ) -> Optional[Appointment]:
        """
        Update appointment state.

        When ``expected_state`` is given the update only applies if the row
        is still in that state (compare-and-set); ``None`` is returned when
        no row matched.
        """
        update_data = {
            "state": state.value,
            "updated_at": to_iso_string(utc_now()),
        }

        query = (
            self.client.table("appointments")
            .update(update_data)
            .eq("id", appointment_id)
        )
        if expected_state is not None:
            query = query.eq("state", expected_state.value)

        response = await self._execute(query, "update appointment state")

        if not response.data:
            return None

        return self._parse_appointment(response.data[0])

    async def update_appointment_schedule(
        self,
        appointment_id: str,
        start_time: datetime,
        end_time: datetime,
        allowed_states: Iterable[AppointmentState],
    ) -> Optional[Appointment]:
        """
        Move an appointment to a new time range.

        Only applies while the appointment is in one of ``allowed_states``;
        ``None`` is returned when no row matched.
        """
        update_data = {
            "start_time": to_iso_string(start_time),
            "end_time": to_iso_string(end_time),
            "updated_at": to_iso_string(utc_now()),
        }

        response = await self._execute(
            self.client.table("appointments")
            .update(update_data)
            .eq("id", appointment_id)
            .in_("state", [state.value for state in allowed_states]),
            "update appointment schedule",
        )

        if not response.data:
            return None

        return self._parse_appointment(response.data[0])

    # ========== Blocked Interval Operations ==========

    async def get_blocked_intervals(self, practitioner_id: str, day: date) -> List[BlockedInterval]:
        """Blocked intervals of a practitioner on a date, by start time."""
        response = await self._execute(
            self.client.table("blocked_intervals")
            .select("*")
            .eq("practitioner_id", practitioner_id)
            .eq("date", day.isoformat())
            .order("start_time", desc=False),
            "get blocked intervals",
        )
        return [BlockedInterval(**item) for item in response.data]

    async def replace_blocked_intervals(
        self, practitioner_id: str, day: date, intervals: List[TimeRange]
    ) -> List[BlockedInterval]:
        """Atomically replace every blocked interval of a practitioner+date."""
        params = {
            "p_practitioner_id": practitioner_id,
            "p_date": day.isoformat(),
            "p_intervals": [
                {
                    "start_time": interval.start.isoformat(),
                    "end_time": interval.end.isoformat(),
                }
                for interval in intervals
            ],
        }

        response = await self._execute(
            self.client.rpc("replace_blocked_intervals", params),
            "replace blocked intervals",
        )
        return [BlockedInterval(**item) for item in (response.data or [])]

    # ========== Audit Operations ==========

    async def override_appointment_state(self, entry: AuditEntry) -> Optional[Appointment]:
        """
        Apply an administrative override and record it, in one transaction.

        The state only changes if the appointment is still in
        ``entry.previous_state``; ``None`` is returned when no row matched
        and nothing is written.
        """
        params = {
            "p_appointment_id": entry.appointment_id,
            "p_expected_state": entry.previous_state.value,
            "p_new_state": entry.new_state.value,
            "p_actor_id": entry.actor_id,
            "p_actor_role": entry.actor_role.value,
            "p_reason": entry.reason,
        }

        response = await self._execute(
            self.client.rpc("override_appointment_state", params),
            "override appointment state",
        )

        if not response.data:
            return None

        return self._parse_appointment(response.data[0])

    # ========== Helper Methods ==========

    def _parse_appointment(self, item: Dict[str, Any]) -> Appointment:
        """
        Parse appointment data from database response.

        Args:
            item: Raw appointment data from database

        Returns:
            Parsed Appointment object
        """
        item = item.copy()
        for field in ["start_time", "end_time", "created_at", "updated_at"]:
            if item.get(field):
                item[field] = parse_iso_datetime(item[field])
        return Appointment(**item)


# Global database client instance
_db_client: Optional[SupabaseClient] = None


def get_db_client() -> SupabaseClient:
    """Get or create database client instance."""
    global _db_client
    if _db_client is None:
        _db_client = SupabaseClient()
    return _db_client
