"""
Scheduling service: the engine's entry points for the routing layer.

Every operation either returns its result or raises a ``SchedulingError``
subclass. Store failures surface as ``InternalError`` with a generic
message; the detail is logged here.

Side effects (patient notifications, realtime pushes) run as background
tasks after the state change is persisted. Their failures are logged and
never undo or fail the operation. ``wait_for_side_effects`` drains them.
"""

import asyncio
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Dict, Iterator, List, Optional, Set

from config import settings
from db import get_db_client
from live_updates import RealtimePublisher, get_realtime_publisher
from models.actor import Actor
from models.appointment import Appointment, AppointmentAction, AppointmentCreate, AppointmentState
from models.audit import AuditEntry
from models.availability import AvailabilitySnapshot
from models.blocked_interval import BlockedInterval, TimeRange
from models.practitioner import Practitioner
from notifications import NotificationDispatcher, NotificationKind
from utils.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_AUDIT_REASON_LENGTH,
    MAX_PAGE_SIZE,
    PATIENT_WAITING_EVENT,
    REMINDER_DAYS_AHEAD,
)
from utils.datetime_utils import clinic_date, day_bounds, to_iso_string, utc_now
from utils.exceptions import (
    ConflictError,
    DatabaseError,
    InternalError,
    InvalidTransitionError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from utils.logging_config import get_audit_logger, setup_logging
from utils.validation import sanitize_text

from .availability import compute_availability
from .blocking import ensure_blocks_clear, validate_time_ranges, whole_day_range
from .booking import appointment_window, ensure_slot_free, validate_within_working_day
from .lifecycle import (
    NON_TERMINAL_STATES,
    ensure_can_override,
    ensure_can_reschedule,
    resolve_transition,
)
from .locks import DayLockRegistry

logger = setup_logging(
    name=__name__, log_level=settings.log_level, log_file="scheduling.log", log_dir="logs"
)
audit_logger = get_audit_logger()

# Notification sent after an appointment enters a state
_STATE_NOTIFICATIONS = {
    AppointmentState.ATENDIDA: NotificationKind.UPDATE,
    AppointmentState.CANCELADA: NotificationKind.CANCELLATION,
}


class SchedulingService:
    """
    Appointment scheduling engine.

    Args:
        db: store client (``db.SupabaseClient`` or anything with its interface)
        notifier: patient notification dispatcher
        publisher: realtime publisher for practitioner clients
        locks: per-(practitioner, date) lock registry
    """

    def __init__(
        self,
        db: Any = None,
        notifier: Optional[NotificationDispatcher] = None,
        publisher: Optional[RealtimePublisher] = None,
        locks: Optional[DayLockRegistry] = None,
    ):
        self.db = db if db is not None else get_db_client()
        self.notifier = notifier if notifier is not None else NotificationDispatcher(self.db)
        self.publisher = publisher if publisher is not None else get_realtime_publisher()
        self.locks = locks if locks is not None else DayLockRegistry()
        self._side_effects: Set[asyncio.Task] = set()

    # ========== Helpers ==========

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        """Translate store failures into a generic ``InternalError``."""
        try:
            yield
        except StoreUnavailableError as e:
            logger.error(f"Store unavailable while trying to {operation}: {e.message}")
            raise
        except DatabaseError as e:
            logger.error(f"Store failure while trying to {operation}: {e}", exc_info=True)
            raise InternalError(f"Internal error while trying to {operation}") from e

    async def _require_practitioner(self, practitioner_id: str) -> Practitioner:
        practitioner = await self.db.get_practitioner(practitioner_id)
        if practitioner is None:
            raise NotFoundError("Practitioner not found")
        return practitioner

    async def _require_appointment(self, appointment_id: str) -> Appointment:
        appointment = await self.db.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    def _spawn(self, coro: Awaitable[Any], description: str) -> None:
        task = asyncio.create_task(self._run_side_effect(coro, description))
        self._side_effects.add(task)
        task.add_done_callback(self._side_effects.discard)

    async def _run_side_effect(self, coro: Awaitable[Any], description: str) -> None:
        try:
            await coro
        except Exception as e:
            logger.error(f"{description} failed: {e}", exc_info=True)

    def _notify(self, kind: NotificationKind, appointment: Appointment) -> None:
        self._spawn(
            self.notifier.send_appointment_event(kind, appointment),
            f"{kind.value} notification for appointment {appointment.id}",
        )

    async def _push_patient_waiting(self, appointment: Appointment) -> None:
        patient = await self.db.get_patient(appointment.patient_id)
        payload = {
            "appointment_id": appointment.id,
            "patient_id": appointment.patient_id,
            "patient_name": patient.name if patient else None,
            "start_time": to_iso_string(appointment.start_time),
        }
        await self.publisher.push_to_practitioner(
            appointment.practitioner_id, PATIENT_WAITING_EVENT, payload
        )

    def _after_state_change(self, appointment: Appointment) -> None:
        if appointment.state == AppointmentState.EN_ESPERA:
            self._spawn(
                self._push_patient_waiting(appointment),
                f"{PATIENT_WAITING_EVENT} push for appointment {appointment.id}",
            )

        kind = _STATE_NOTIFICATIONS.get(appointment.state)
        if kind is not None:
            self._notify(kind, appointment)

    async def wait_for_side_effects(self) -> None:
        """Wait until every pending notification and push has finished."""
        while self._side_effects:
            await asyncio.gather(*list(self._side_effects), return_exceptions=True)

    # ========== Availability ==========

    async def get_availability(self, practitioner_id: str, day: date) -> AvailabilitySnapshot:
        """
        Available, blocked and booked slots of a practitioner on ``day``.

        Raises:
            NotFoundError: If the practitioner does not exist
        """
        with self._store_errors("get availability"):
            practitioner = await self._require_practitioner(practitioner_id)
            return await compute_availability(self.db, practitioner, day)

    async def get_global_availability(self, day: date) -> Dict[str, AvailabilitySnapshot]:
        """Availability of every practitioner on ``day``, keyed by practitioner ID."""
        with self._store_errors("get global availability"):
            practitioners = await self.db.list_practitioners()
            snapshots = await asyncio.gather(
                *(compute_availability(self.db, p, day) for p in practitioners)
            )
        return {snapshot.practitioner_id: snapshot for snapshot in snapshots}

    # ========== Booking ==========

    async def create_appointment(self, practitioner_id: str, patient_id: str, start: datetime) -> Appointment:
        """
        Book ``[start, start + slot_duration)`` for a patient.

        Naive ``start`` values are read as clinic wall-clock time.

        Raises:
            NotFoundError: If the practitioner or patient does not exist
            ValidationError: If the range falls outside working hours
            ConflictError: If the range overlaps an appointment or a block
        """
        with self._store_errors("create appointment"):
            practitioner = await self._require_practitioner(practitioner_id)
            if await self.db.get_patient(patient_id) is None:
                raise NotFoundError("Patient not found")

            start, end = appointment_window(practitioner, start)
            validate_within_working_day(start, end)

            async with self.locks.hold(practitioner.id, start.date()):
                await ensure_slot_free(self.db, practitioner.id, start, end)
                appointment = await self.db.create_appointment(
                    AppointmentCreate(
                        practitioner_id=practitioner.id,
                        patient_id=patient_id,
                        start_time=start,
                        end_time=end,
                    )
                )

        logger.info(
            f"Booked appointment {appointment.id} for practitioner {practitioner.id} "
            f"at {start.isoformat()}"
        )
        self._notify(NotificationKind.CONFIRMATION, appointment)
        return appointment

    async def reschedule_appointment(self, appointment_id: str, new_start: datetime, actor: Actor) -> Appointment:
        """
        Move a non-terminal appointment to ``new_start`` (same practitioner).

        The appointment keeps its state. Its current interval does not count
        as a conflict.

        Raises:
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the actor may not move it
            InvalidTransitionError: If the appointment is terminal
            ValidationError: If the new range falls outside working hours
            ConflictError: If the new range is not available
        """
        with self._store_errors("reschedule appointment"):
            appointment = await self._require_appointment(appointment_id)
            ensure_can_reschedule(appointment, actor)
            practitioner = await self._require_practitioner(appointment.practitioner_id)

            start, end = appointment_window(practitioner, new_start)
            validate_within_working_day(start, end)

            async with self.locks.hold(practitioner.id, start.date()):
                await ensure_slot_free(
                    self.db, practitioner.id, start, end, exclude_appointment_id=appointment.id
                )
                updated = await self.db.update_appointment_schedule(
                    appointment.id, start, end, allowed_states=NON_TERMINAL_STATES
                )

            if updated is None:
                raise InvalidTransitionError("Appointment is no longer open for rescheduling")

        logger.info(
            f"Rescheduled appointment {updated.id} from "
            f"{to_iso_string(appointment.start_time)} to {start.isoformat()}"
        )
        self._notify(NotificationKind.UPDATE, updated)
        return updated

    # ========== Lifecycle ==========

    async def transition(self, appointment_id: str, action: AppointmentAction, actor: Actor) -> Appointment:
        """
        Apply an ordinary lifecycle action (check in, complete, cancel).

        Raises:
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the actor may not perform the action
            InvalidTransitionError: If the action is not allowed from the current state
        """
        action = AppointmentAction(action)
        with self._store_errors(f"{action.value.replace('_', ' ')} appointment"):
            appointment = await self._require_appointment(appointment_id)
            target = resolve_transition(appointment, action, actor)

            updated = await self.db.update_appointment_state(
                appointment.id, target, expected_state=appointment.state
            )
            if updated is None:
                raise InvalidTransitionError(
                    "Appointment state changed concurrently, reload it and retry"
                )

        logger.info(
            f"Appointment {updated.id}: {appointment.state.value} -> {updated.state.value} "
            f"by {actor.role.value} {actor.id}"
        )
        self._after_state_change(updated)
        return updated

    async def check_in(self, appointment_id: str, actor: Actor) -> Appointment:
        return await self.transition(appointment_id, AppointmentAction.CHECK_IN, actor)

    async def complete(self, appointment_id: str, actor: Actor) -> Appointment:
        return await self.transition(appointment_id, AppointmentAction.COMPLETE, actor)

    async def cancel(self, appointment_id: str, actor: Actor) -> Appointment:
        return await self.transition(appointment_id, AppointmentAction.CANCEL, actor)

    async def override_state(
        self,
        appointment_id: str,
        new_state: AppointmentState,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Appointment:
        """
        Administrative override: set any state, bypassing the transition rules.

        Reactivating a cancelled appointment re-checks that its range is
        still free. Every override is written to the audit trail.

        Raises:
            ForbiddenError: Unless the actor is an administrator
            NotFoundError: If the appointment does not exist
            ConflictError: If reactivation would overlap another booking or a block
        """
        ensure_can_override(actor)
        reason = sanitize_text(reason, MAX_AUDIT_REASON_LENGTH) if reason else None

        with self._store_errors("override appointment state"):
            appointment = await self._require_appointment(appointment_id)
            previous = appointment.state
            entry = AuditEntry(
                appointment_id=appointment.id,
                actor_id=actor.id,
                actor_role=actor.role,
                previous_state=previous,
                new_state=new_state,
                reason=reason,
                created_at=utc_now(),
            )

            # The state write and the audit row commit together
            if not previous.occupies_calendar and new_state.occupies_calendar:
                async with self.locks.hold(
                    appointment.practitioner_id, clinic_date(appointment.start_time)
                ):
                    await ensure_slot_free(
                        self.db,
                        appointment.practitioner_id,
                        appointment.start_time,
                        appointment.end_time,
                        exclude_appointment_id=appointment.id,
                    )
                    updated = await self.db.override_appointment_state(entry)
            else:
                updated = await self.db.override_appointment_state(entry)

            if updated is None:
                raise InvalidTransitionError(
                    "Appointment state changed concurrently, reload it and retry"
                )

        audit_logger.info(
            f"override appointment={appointment.id} actor={actor.id} role={actor.role.value} "
            f"{previous.value} -> {new_state.value} reason={reason!r}"
        )
        if previous != new_state:
            self._after_state_change(updated)
        return updated

    # ========== Blocked intervals ==========

    async def set_blocked_intervals(
        self, practitioner_id: str, day: date, intervals: List[TimeRange]
    ) -> List[BlockedInterval]:
        """
        Replace all blocked intervals of a practitioner on ``day``.

        An empty list clears the day's blocks.

        Raises:
            NotFoundError: If the practitioner does not exist
            ValidationError: If an interval does not start before it ends
            ConflictError: If an interval overlaps a scheduled appointment
        """
        with self._store_errors("set blocked intervals"):
            practitioner = await self._require_practitioner(practitioner_id)
            validate_time_ranges(intervals)

            async with self.locks.hold(practitioner.id, day):
                appointments = await self.db.get_appointments_for_day(practitioner.id, day)
                ensure_blocks_clear(day, intervals, appointments)
                blocks = await self.db.replace_blocked_intervals(practitioner.id, day, intervals)

        logger.info(f"Set {len(blocks)} blocked interval(s) for practitioner {practitioner.id} on {day}")
        return blocks

    async def close_day(self, practitioner_id: str, day: date) -> List[BlockedInterval]:
        """
        Block the whole working day of a practitioner.

        Raises:
            NotFoundError: If the practitioner does not exist
            ConflictError: If any non-cancelled appointment exists that day
        """
        with self._store_errors("close day"):
            practitioner = await self._require_practitioner(practitioner_id)

            async with self.locks.hold(practitioner.id, day):
                appointments = await self.db.get_appointments_for_day(practitioner.id, day)
                if appointments:
                    raise ConflictError(
                        f"Cannot close the day: {len(appointments)} appointment(s) are scheduled"
                    )
                blocks = await self.db.replace_blocked_intervals(
                    practitioner.id, day, [whole_day_range()]
                )

        logger.info(f"Closed {day} for practitioner {practitioner.id}")
        return blocks

    # ========== Queries ==========

    async def get_appointment(self, appointment_id: str) -> Appointment:
        with self._store_errors("get appointment"):
            return await self._require_appointment(appointment_id)

    async def get_practitioner_agenda(self, practitioner_id: str, day: date) -> List[Appointment]:
        """All of a practitioner's appointments on ``day``, cancelled included."""
        with self._store_errors("get practitioner agenda"):
            practitioner = await self._require_practitioner(practitioner_id)
            return await self.db.get_appointments_for_day(
                practitioner.id, day, include_cancelled=True
            )

    async def get_daily_agenda(self, day: date) -> List[Appointment]:
        """Appointments of every practitioner on ``day``."""
        with self._store_errors("get daily agenda"):
            day_start, day_end = day_bounds(day)
            return await self.db.get_appointments_between(day_start, day_end)

    async def get_patient_appointments(self, patient_id: str) -> List[Appointment]:
        with self._store_errors("get patient appointments"):
            if await self.db.get_patient(patient_id) is None:
                raise NotFoundError("Patient not found")
            return await self.db.get_appointments_by_patient(patient_id)

    async def filter_appointments(
        self,
        practitioner_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        state: Optional[AppointmentState] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[Appointment]:
        """
        Search appointments, one page at a time.

        Every filter is optional. ``date_from`` and ``date_to`` are inclusive
        clinic dates. Pages are numbered from 1.

        Raises:
            ValidationError: If the page, the page size or the date range is invalid
        """
        if page < 1:
            raise ValidationError("Page numbers start at 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be after date_to")

        start = day_bounds(date_from)[0] if date_from else None
        end = day_bounds(date_to)[1] if date_to else None

        with self._store_errors("filter appointments"):
            return await self.db.filter_appointments(
                practitioner_id=practitioner_id,
                patient_id=patient_id,
                state=state,
                start=start,
                end=end,
                offset=(page - 1) * limit,
                limit=limit,
            )

    # ========== Reminders ==========

    async def send_next_day_reminders(self, today: Optional[date] = None) -> int:
        """
        Remind every patient with a scheduled appointment on the next day.

        Returns:
            Number of reminders delivered
        """
        today = today or clinic_date(utc_now())
        target_day = today + timedelta(days=REMINDER_DAYS_AHEAD)
        day_start, day_end = day_bounds(target_day)

        with self._store_errors("load appointments for reminders"):
            appointments = await self.db.get_appointments_between(
                day_start, day_end, state=AppointmentState.AGENDADA
            )

        if not appointments:
            logger.debug(f"No appointments on {target_day} require reminders")
            return 0

        sent_count = 0
        failed_count = 0
        for appointment in appointments:
            try:
                if await self.notifier.send_appointment_event(NotificationKind.REMINDER, appointment):
                    sent_count += 1
            except Exception as e:
                failed_count += 1
                logger.error(f"Reminder for appointment {appointment.id} failed: {e}", exc_info=True)

        logger.info(
            f"Reminders for {target_day}: {sent_count} sent, {failed_count} failed, "
            f"{len(appointments)} scheduled"
        )
        return sent_count


_service: Optional[SchedulingService] = None


def get_scheduling_service() -> SchedulingService:
    """Get or create the scheduling service backed by the Supabase store."""
    global _service
    if _service is None:
        _service = SchedulingService()
    return _service
