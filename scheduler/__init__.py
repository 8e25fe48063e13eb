"""Task scheduler for appointment reminders."""

from .reminders import send_daily_reminders, setup_scheduler, shutdown_scheduler

__all__ = ["setup_scheduler", "send_daily_reminders", "shutdown_scheduler"]
