"""
Booking admission.

An appointment ``[start, start + slot_duration)`` is admitted when it lies
inside the working day and overlaps nothing in the practitioner's occupancy.
Callers run ``ensure_slot_free`` and the following write while holding the
day lock from ``locks.py``.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Tuple

from models.practitioner import Practitioner
from utils.datetime_utils import to_clinic_time
from utils.exceptions import ConflictError, ValidationError

from .occupancy import get_occupied_intervals
from .overlap import find_overlapping
from .slots import working_day_bounds

logger = logging.getLogger(__name__)


def appointment_window(practitioner: Practitioner, start: datetime) -> Tuple[datetime, datetime]:
    """Start and end of an appointment with ``practitioner`` at ``start``, in clinic time."""
    start = to_clinic_time(start)
    end = to_clinic_time(start + timedelta(minutes=practitioner.slot_duration))
    return start, end


def validate_within_working_day(start: datetime, end: datetime) -> None:
    """
    Raises:
        ValidationError: If ``[start, end)`` is not inside the working day of ``start``
    """
    open_at, close_at = working_day_bounds(to_clinic_time(start).date())
    if start < open_at or end > close_at:
        raise ValidationError(
            f"Appointments must fall within working hours "
            f"{open_at.strftime('%H:%M')}-{close_at.strftime('%H:%M')}"
        )


async def ensure_slot_free(
    db: Any,
    practitioner_id: str,
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[str] = None,
) -> None:
    """
    Raises:
        ConflictError: If ``[start, end)`` overlaps an appointment or a block
    """
    day = to_clinic_time(start).date()
    occupied = await get_occupied_intervals(db, practitioner_id, day, exclude_appointment_id)
    conflicts = find_overlapping(start, end, occupied)

    if conflicts:
        logger.info(
            f"Rejected {start.isoformat()} for practitioner {practitioner_id}: "
            f"{len(conflicts)} conflicting interval(s)"
        )
        raise ConflictError("Practitioner not available at that time")
