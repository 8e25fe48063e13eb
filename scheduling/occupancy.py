"""
Occupancy index.

The occupied intervals of a practitioner on a date are every non-cancelled
appointment plus every declared blocked interval.
"""

import asyncio
from datetime import date
from typing import Any, List, Optional

from models.appointment import Appointment
from models.availability import OccupancySource, OccupiedInterval
from models.blocked_interval import BlockedInterval, TimeRange
from utils.datetime_utils import localize


def appointment_interval(appointment: Appointment) -> OccupiedInterval:
    return OccupiedInterval(
        start=appointment.start_time,
        end=appointment.end_time,
        source=OccupancySource.APPOINTMENT,
        reference_id=appointment.id,
    )


def block_interval(block: BlockedInterval) -> OccupiedInterval:
    return OccupiedInterval(
        start=localize(block.date, block.start_time),
        end=localize(block.date, block.end_time),
        source=OccupancySource.BLOCK,
        reference_id=block.id,
    )


def time_range_interval(day: date, time_range: TimeRange) -> OccupiedInterval:
    """Interval of a not-yet-stored block on ``day``."""
    return OccupiedInterval(
        start=localize(day, time_range.start),
        end=localize(day, time_range.end),
        source=OccupancySource.BLOCK,
    )


async def get_occupied_intervals(
    db: Any,
    practitioner_id: str,
    day: date,
    exclude_appointment_id: Optional[str] = None,
) -> List[OccupiedInterval]:
    """
    Intervals during which the practitioner is unavailable on ``day``.

    Args:
        db: store client
        practitioner_id: practitioner whose day is inspected
        day: calendar date (clinic timezone)
        exclude_appointment_id: appointment left out, so a reschedule does
            not collide with its own current interval

    Returns:
        list[OccupiedInterval] sorted by start
    """
    appointments, blocks = await asyncio.gather(
        db.get_appointments_for_day(practitioner_id, day),
        db.get_blocked_intervals(practitioner_id, day),
    )

    intervals = [
        appointment_interval(appointment)
        for appointment in appointments
        if appointment.is_active and appointment.id != exclude_appointment_id
    ]
    intervals.extend(block_interval(block) for block in blocks)

    intervals.sort(key=lambda interval: interval.start)
    return intervals
