"""
Unit tests for candidate slot generation.
"""

from datetime import date, time, timedelta

import pytest

from scheduling.slots import generate_candidate_slots, slots_for_day, working_day_bounds
from utils.datetime_utils import localize
from utils.exceptions import ValidationError

DAY = date(2025, 6, 1)


def test_full_working_day_thirty_minutes():
    """08:00-17:00 with 30 minute slots gives 18 consecutive slots."""
    slots = slots_for_day(DAY, 30)

    assert len(slots) == 18
    assert slots[0].start == localize(DAY, time(8, 0))
    assert slots[-1].end == localize(DAY, time(17, 0))
    for previous, current in zip(slots, slots[1:]):
        assert previous.end == current.start


def test_trailing_partial_slot_dropped():
    """Nine hours of 40 minute slots: 13 slots, the last ending at 16:40."""
    slots = slots_for_day(DAY, 40)

    assert len(slots) == 13
    assert slots[-1].end == localize(DAY, time(16, 40))


def test_duration_longer_than_day():
    open_at, close_at = working_day_bounds(DAY)
    assert generate_candidate_slots(open_at, close_at, 600) == []


@pytest.mark.parametrize("duration", [0, -30])
def test_non_positive_duration_rejected(duration):
    open_at, close_at = working_day_bounds(DAY)
    with pytest.raises(ValidationError):
        generate_candidate_slots(open_at, close_at, duration)


def test_working_hours_follow_settings(mock_settings):
    mock_settings.working_day_start = time(9, 0)
    mock_settings.working_day_end = time(12, 0)

    slots = slots_for_day(DAY, 60)

    assert [s.start.hour for s in slots] == [9, 10, 11]


def test_slots_are_clinic_local():
    slots = slots_for_day(DAY, 30)
    # Prague is UTC+2 in June
    assert slots[0].start.utcoffset().total_seconds() == 2 * 3600


@pytest.mark.parametrize(
    "open_at,close_at,duration,expected",
    [
        (time(8, 0), time(17, 0), 30, 18),
        (time(8, 0), time(17, 0), 40, 13),
        (time(8, 0), time(17, 0), 540, 1),
        (time(8, 0), time(8, 50), 25, 2),
        (time(10, 0), time(10, 29), 30, 0),
        (time(9, 0), time(9, 0), 15, 0),
        (time(12, 0), time(9, 0), 30, 0),
    ],
)
def test_slot_lattice(open_at, close_at, duration, expected):
    """floor((close - open) / duration) consecutive slots, none past closing."""
    open_instant = localize(DAY, open_at)
    close_instant = localize(DAY, close_at)

    slots = generate_candidate_slots(open_instant, close_instant, duration)

    assert len(slots) == expected
    for index, slot in enumerate(slots):
        assert slot.start == open_instant + timedelta(minutes=duration * index)
        assert slot.end - slot.start == timedelta(minutes=duration)
        assert slot.end <= close_instant
