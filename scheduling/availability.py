"""
Availability computation.

Candidate slots of the working day are checked against the occupancy
index. An occupied slot is reported as booked when any appointment overlaps
it, otherwise as blocked, so every candidate lands in exactly one list.
"""

from datetime import date
from typing import Any, List, Tuple

from models.availability import AvailabilitySnapshot, OccupancySource, OccupiedInterval, TimeSlot
from models.practitioner import Practitioner

from .occupancy import get_occupied_intervals
from .overlap import find_overlapping
from .slots import slots_for_day


def partition_slots(
    candidates: List[TimeSlot], occupied: List[OccupiedInterval]
) -> Tuple[List[TimeSlot], List[TimeSlot], List[TimeSlot]]:
    """
    Split candidate slots into (available, blocked, booked).

    Args:
        candidates: candidate slots in order
        occupied: occupied intervals of the same day

    Returns:
        tuple of three lists, each preserving candidate order
    """
    available, blocked, booked = [], [], []

    for slot in candidates:
        conflicts = find_overlapping(slot.start, slot.end, occupied)
        if not conflicts:
            available.append(slot)
        elif any(c.source == OccupancySource.APPOINTMENT for c in conflicts):
            booked.append(slot)
        else:
            blocked.append(slot)

    return available, blocked, booked


async def compute_availability(db: Any, practitioner: Practitioner, day: date) -> AvailabilitySnapshot:
    """Availability snapshot of a known practitioner on ``day``."""
    candidates = slots_for_day(day, practitioner.slot_duration)
    occupied = await get_occupied_intervals(db, practitioner.id, day)
    available, blocked, booked = partition_slots(candidates, occupied)

    return AvailabilitySnapshot(
        date=day,
        practitioner_id=practitioner.id,
        available_slots=available,
        blocked_slots=blocked,
        booked_slots=booked,
    )
