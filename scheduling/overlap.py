"""
Conflict checker.

Intervals are half-open ``[start, end)``: a range ending at 10:30 and one
starting at 10:30 do not overlap.
"""

from datetime import datetime
from typing import Iterable, List, TypeVar

T = TypeVar("T")  # anything with ``start`` and ``end`` instants


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """True when ``[a_start, a_end)`` and ``[b_start, b_end)`` intersect."""
    return a_start < b_end and b_start < a_end


def find_overlapping(start: datetime, end: datetime, intervals: Iterable[T]) -> List[T]:
    """Return the intervals that overlap ``[start, end)``, in input order."""
    return [
        interval
        for interval in intervals
        if overlaps(start, end, interval.start, interval.end)
    ]
