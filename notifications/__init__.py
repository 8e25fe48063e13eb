"""Patient notifications delivered through Telegram."""

from .dispatcher import NotificationDispatcher, NotificationKind, render_message

__all__ = ["NotificationDispatcher", "NotificationKind", "render_message"]
