"""
Unit tests for next-day reminders and their scheduler job.
"""

from datetime import date, time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from models.appointment import AppointmentState
from scheduler.reminders import REMINDER_JOB_ID, send_daily_reminders, setup_scheduler
from utils.exceptions import InternalError, NotificationError

TODAY = date(2025, 5, 31)
TOMORROW = date(2025, 6, 1)


@pytest.mark.asyncio
async def test_reminds_only_tomorrows_scheduled(service, store, practitioner, patient, mock_notifier):
    due = store.add_appointment(practitioner, patient, TOMORROW, time(10, 0))
    store.add_appointment(practitioner, patient, TOMORROW, time(11, 0), state=AppointmentState.CANCELADA)
    store.add_appointment(practitioner, patient, TOMORROW, time(12, 0), state=AppointmentState.EN_ESPERA)
    store.add_appointment(practitioner, patient, date(2025, 6, 2), time(10, 0))
    store.add_appointment(practitioner, patient, TODAY, time(16, 0))

    sent = await service.send_next_day_reminders(today=TODAY)

    assert sent == 1
    kind, appointment = mock_notifier.send_appointment_event.call_args.args
    assert kind.value == "reminder"
    assert appointment.id == due.id


@pytest.mark.asyncio
async def test_failed_reminder_does_not_stop_others(service, store, practitioner, patient, mock_notifier):
    store.add_appointment(practitioner, patient, TOMORROW, time(9, 0))
    store.add_appointment(practitioner, patient, TOMORROW, time(10, 0))
    mock_notifier.send_appointment_event.side_effect = [NotificationError("Telegram down"), True]

    sent = await service.send_next_day_reminders(today=TODAY)

    assert sent == 1
    assert mock_notifier.send_appointment_event.call_count == 2


@pytest.mark.asyncio
async def test_no_appointments_tomorrow(service, mock_notifier):
    assert await service.send_next_day_reminders(today=TODAY) == 0
    mock_notifier.send_appointment_event.assert_not_called()


@pytest.mark.asyncio
async def test_job_uses_injected_service():
    service = MagicMock()
    service.send_next_day_reminders = AsyncMock(return_value=3)

    with patch("scheduler.reminders._service_instance", service):
        assert await send_daily_reminders() == 3


@pytest.mark.asyncio
async def test_job_survives_store_failure():
    service = MagicMock()
    service.send_next_day_reminders = AsyncMock(side_effect=InternalError("Internal error"))

    with patch("scheduler.reminders._service_instance", service):
        assert await send_daily_reminders() == 0


def test_setup_scheduler_registers_daily_job():
    """The reminder job runs daily at the configured hour."""
    with patch("scheduler.reminders.scheduler") as mock_scheduler, patch(
        "scheduler.reminders._service_instance", None
    ):
        setup_scheduler(service=MagicMock())

        mock_scheduler.add_job.assert_called_once()
        kwargs = mock_scheduler.add_job.call_args.kwargs
        assert kwargs["id"] == REMINDER_JOB_ID
        assert kwargs["replace_existing"] is True
        trigger_fields = {f.name: str(f) for f in kwargs["trigger"].fields}
        assert trigger_fields["hour"] == "18"
        assert trigger_fields["minute"] == "0"
        mock_scheduler.start.assert_called_once()
