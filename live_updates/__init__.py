"""Realtime pushes to connected practitioner clients over WebSockets."""

from .publisher import RealtimePublisher, get_realtime_publisher
from .registry import ConnectionRegistry, get_connection_registry
from .server import create_realtime_app

__all__ = [
    "ConnectionRegistry",
    "RealtimePublisher",
    "create_realtime_app",
    "get_connection_registry",
    "get_realtime_publisher",
]
