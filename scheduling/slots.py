"""
Candidate slot generation.

The working day of a practitioner is cut into consecutive fixed-duration
slots starting at opening time; a trailing partial slot is dropped.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from config import settings
from models.availability import TimeSlot
from utils.datetime_utils import localize
from utils.exceptions import ValidationError


def generate_candidate_slots(open_at: datetime, close_at: datetime, duration: int) -> List[TimeSlot]:
    """
    Generate the candidate slot lattice between two instants.

    Args:
        open_at: start of the first slot
        close_at: no slot ends after this instant
        duration: slot length in minutes

    Returns:
        list[TimeSlot]: ``floor((close_at - open_at) / duration)`` slots,
        each ``duration`` minutes after the previous one

    Raises:
        ValidationError: If duration is not positive
    """
    if duration <= 0:
        raise ValidationError("Slot duration must be a positive number of minutes")

    step = timedelta(minutes=duration)
    slots = []
    current_start = open_at

    while current_start + step <= close_at:
        current_end = current_start + step
        slots.append(TimeSlot(start=current_start, end=current_end))
        current_start = current_end

    return slots


def working_day_bounds(day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Opening and closing instants of the configured working day on ``day``."""
    return (
        localize(day, settings.working_day_start, tz_name),
        localize(day, settings.working_day_end, tz_name),
    )


def slots_for_day(day: date, duration: int) -> List[TimeSlot]:
    """Candidate slots for a whole working day."""
    open_at, close_at = working_day_bounds(day)
    return generate_candidate_slots(open_at, close_at, duration)
