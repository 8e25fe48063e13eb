"""
Realtime publisher.

Pushes are delivered to every open connection of a practitioner. A
practitioner with no open connection simply misses the event; nothing is
queued.
"""

from typing import Any, Dict, Optional

from config import settings
from utils.logging_config import setup_logging

from .registry import ConnectionRegistry, get_connection_registry

logger = setup_logging(
    name=__name__, log_level=settings.log_level, log_file="realtime.log", log_dir="logs"
)


class RealtimePublisher:
    """Sends JSON events to connected practitioner clients."""

    def __init__(self, registry: Optional[ConnectionRegistry] = None):
        self.registry = registry if registry is not None else get_connection_registry()

    async def push_to_practitioner(self, practitioner_id: str, event: str, payload: Dict[str, Any]) -> int:
        """
        Push an event to all of a practitioner's connections.

        Connections that are closed or fail to accept the message are
        dropped from the registry.

        Returns:
            Number of connections the event was delivered to
        """
        connections = self.registry.lookup(practitioner_id)
        if not connections:
            logger.debug(f"Practitioner {practitioner_id} offline - '{event}' not delivered")
            return 0

        message = {"event": event, "data": payload}
        delivered = 0

        for connection_id, ws in connections:
            if ws.closed:
                self.registry.remove(practitioner_id, connection_id)
                continue

            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Dropping connection {connection_id} of practitioner {practitioner_id}: {e}"
                )
                self.registry.remove(practitioner_id, connection_id)

        logger.info(f"Pushed '{event}' to {delivered} connection(s) of practitioner {practitioner_id}")
        return delivered


_publisher: Optional[RealtimePublisher] = None


def get_realtime_publisher() -> RealtimePublisher:
    """Get or create the process-wide publisher."""
    global _publisher
    if _publisher is None:
        _publisher = RealtimePublisher()
    return _publisher
