"""Registry of live practitioner connections."""

from typing import Any, Dict, List, Optional, Tuple


class ConnectionRegistry:
    """
    Maps a practitioner to their open connections.

    A practitioner may be connected from several clients at once; each
    connection is tracked under its own id.
    """

    def __init__(self):
        self._connections: Dict[str, Dict[str, Any]] = {}

    def add(self, practitioner_id: str, connection_id: str, connection: Any) -> None:
        self._connections.setdefault(practitioner_id, {})[connection_id] = connection

    def remove(self, practitioner_id: str, connection_id: str) -> bool:
        """Forget a connection. Returns False if it was not registered."""
        connections = self._connections.get(practitioner_id)
        if not connections or connection_id not in connections:
            return False

        del connections[connection_id]
        if not connections:
            del self._connections[practitioner_id]
        return True

    def lookup(self, practitioner_id: str) -> List[Tuple[str, Any]]:
        return list(self._connections.get(practitioner_id, {}).items())

    def is_online(self, practitioner_id: str) -> bool:
        return bool(self._connections.get(practitioner_id))

    def connection_count(self) -> int:
        return sum(len(c) for c in self._connections.values())


_registry: Optional[ConnectionRegistry] = None


def get_connection_registry() -> ConnectionRegistry:
    """Get or create the process-wide connection registry."""
    global _registry
    if _registry is None:
        _registry = ConnectionRegistry()
    return _registry
