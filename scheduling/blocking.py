"""
Blocked intervals and day closure.

Blocks of a practitioner+date are always replaced as a whole set. A new set
is rejected when any of its ranges overlaps a non-cancelled appointment of
that day.
"""

from datetime import date
from typing import List

from config import settings
from models.appointment import Appointment
from models.blocked_interval import TimeRange
from utils.exceptions import ConflictError, ValidationError

from .occupancy import appointment_interval, time_range_interval
from .overlap import find_overlapping


def validate_time_ranges(intervals: List[TimeRange]) -> None:
    """
    Raises:
        ValidationError: If any range does not start before it ends
    """
    for interval in intervals:
        if interval.start >= interval.end:
            raise ValidationError(
                f"Blocked interval {interval.start.strftime('%H:%M')}-"
                f"{interval.end.strftime('%H:%M')} must start before it ends"
            )


def ensure_blocks_clear(day: date, intervals: List[TimeRange], appointments: List[Appointment]) -> None:
    """
    Raises:
        ConflictError: If a range overlaps one of the (active) appointments
    """
    booked = [appointment_interval(a) for a in appointments if a.is_active]

    for interval in intervals:
        block = time_range_interval(day, interval)
        if find_overlapping(block.start, block.end, booked):
            raise ConflictError(
                f"Cannot block {interval.start.strftime('%H:%M')}-"
                f"{interval.end.strftime('%H:%M')}: appointments are scheduled in that range"
            )


def whole_day_range() -> TimeRange:
    """Block covering the configured working day."""
    return TimeRange(start=settings.working_day_start, end=settings.working_day_end)
