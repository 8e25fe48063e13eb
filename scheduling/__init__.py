"""
Scheduling engine.

- Conflict detection (overlap.py)
- Candidate slot generation (slots.py)
- Occupancy of a practitioner's day (occupancy.py)
- Availability views (availability.py)
- Booking admission and per-day locks (booking.py, locks.py)
- Appointment lifecycle (lifecycle.py)
- Blocked intervals and day closure (blocking.py)
- Engine facade exposed to the routing layer (service.py)
"""

from .overlap import find_overlapping, overlaps
from .service import SchedulingService, get_scheduling_service
from .slots import generate_candidate_slots

__all__ = [
    "SchedulingService",
    "find_overlapping",
    "generate_candidate_slots",
    "get_scheduling_service",
    "overlaps",
]
