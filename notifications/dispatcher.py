"""
Notification dispatch.

Appointment events are delivered to the patient's Telegram chat. Delivery
is best effort from the engine's point of view: the scheduling service runs
it in the background and only logs failures, so a failed message never
rolls back the state change that caused it.
"""

from enum import Enum
from typing import Any, Optional

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from config import settings
from models.appointment import Appointment
from models.patient import Patient
from models.practitioner import Practitioner
from utils.datetime_utils import to_clinic_time
from utils.exceptions import NotificationError
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level=settings.log_level, log_file="notifications.log", log_dir="logs"
)


class NotificationKind(str, Enum):
    """Kinds of patient notification."""

    CONFIRMATION = "confirmation"
    UPDATE = "update"
    REMINDER = "reminder"
    CANCELLATION = "cancellation"


_TEMPLATES = {
    NotificationKind.CONFIRMATION: (
        "✅ <b>Appointment confirmed</b>\n\n"
        "{practitioner}\n📅 {date} at {time}"
    ),
    NotificationKind.UPDATE: (
        "ℹ️ <b>Appointment updated</b>\n\n"
        "{practitioner}\n📅 {date} at {time}\nStatus: {state}"
    ),
    NotificationKind.REMINDER: (
        "🔔 <b>Reminder:</b> you have an appointment tomorrow!\n\n"
        "{practitioner}\n📅 {date} at {time}"
    ),
    NotificationKind.CANCELLATION: (
        "❌ <b>Appointment cancelled</b>\n\n"
        "{practitioner}\n📅 {date} at {time}"
    ),
}


def render_message(
    kind: NotificationKind,
    appointment: Appointment,
    practitioner: Optional[Practitioner] = None,
) -> str:
    """HTML message text for a notification."""
    start = to_clinic_time(appointment.start_time)
    practitioner_line = f"👩‍⚕️ {practitioner.name}" if practitioner else ""

    return _TEMPLATES[kind].format(
        practitioner=practitioner_line,
        date=start.strftime("%d.%m.%Y"),
        time=start.strftime("%H:%M"),
        state=appointment.state.value.replace("_", " "),
    )


class NotificationDispatcher:
    """Sends appointment notifications to patients via a Telegram bot."""

    def __init__(self, db: Any, bot: Optional[Bot] = None):
        self.db = db
        self._bot = bot

    def _get_bot(self) -> Optional[Bot]:
        if self._bot is None and settings.bot_token:
            self._bot = Bot(
                token=settings.bot_token,
                default=DefaultBotProperties(parse_mode=ParseMode.HTML),
            )
        return self._bot

    async def send_appointment_event(self, kind: NotificationKind, appointment: Appointment) -> bool:
        """
        Notify the appointment's patient.

        Args:
            kind: notification kind
            appointment: appointment the notification is about

        Returns:
            True if a message was sent, False if there was nobody to send it to

        Raises:
            NotificationError: If Telegram rejected the message
        """
        bot = self._get_bot()
        if bot is None:
            logger.warning(f"Bot token not configured - skipping {kind.value} for appointment {appointment.id}")
            return False

        patient: Optional[Patient] = await self.db.get_patient(appointment.patient_id)
        if not patient or not patient.telegram_id:
            logger.warning(
                f"Patient {appointment.patient_id} has no Telegram chat - "
                f"skipping {kind.value} for appointment {appointment.id}"
            )
            return False

        practitioner = await self.db.get_practitioner(appointment.practitioner_id)
        text = render_message(kind, appointment, practitioner)

        try:
            await bot.send_message(patient.telegram_id, text)
        except Exception as e:
            raise NotificationError(
                f"Failed to send {kind.value} for appointment {appointment.id}: {e}"
            ) from e

        logger.info(f"Sent {kind.value} for appointment {appointment.id} to patient {patient.id}")
        return True

    async def close(self) -> None:
        """Close the bot HTTP session, if one was opened."""
        if self._bot is not None:
            await self._bot.session.close()
