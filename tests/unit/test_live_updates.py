"""
Unit tests for realtime pushes to practitioner clients.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import test_utils

from live_updates.publisher import RealtimePublisher
from live_updates.registry import ConnectionRegistry
from live_updates.server import create_realtime_app


def mock_socket(closed=False):
    ws = MagicMock()
    ws.closed = closed
    ws.send_json = AsyncMock()
    return ws


def test_registry_tracks_connections():
    registry = ConnectionRegistry()
    registry.add("p1", "c1", mock_socket())
    registry.add("p1", "c2", mock_socket())

    assert registry.is_online("p1")
    assert [cid for cid, _ in registry.lookup("p1")] == ["c1", "c2"]
    assert registry.connection_count() == 2

    assert registry.remove("p1", "c1")
    assert registry.remove("p1", "c2")
    assert not registry.remove("p1", "c2")
    assert not registry.is_online("p1")
    assert registry.lookup("p1") == []


@pytest.mark.asyncio
async def test_push_to_all_connections():
    registry = ConnectionRegistry()
    first, second = mock_socket(), mock_socket()
    registry.add("p1", "c1", first)
    registry.add("p1", "c2", second)
    registry.add("p2", "c3", mock_socket())

    delivered = await RealtimePublisher(registry).push_to_practitioner(
        "p1", "patient-waiting", {"appointment_id": "a1"}
    )

    assert delivered == 2
    first.send_json.assert_called_once_with({"event": "patient-waiting", "data": {"appointment_id": "a1"}})
    second.send_json.assert_called_once()


@pytest.mark.asyncio
async def test_offline_practitioner_misses_event():
    delivered = await RealtimePublisher(ConnectionRegistry()).push_to_practitioner("p1", "patient-waiting", {})

    assert delivered == 0


@pytest.mark.asyncio
async def test_dead_connections_dropped():
    registry = ConnectionRegistry()
    broken = mock_socket()
    broken.send_json.side_effect = ConnectionResetError("gone")
    registry.add("p1", "closed", mock_socket(closed=True))
    registry.add("p1", "broken", broken)
    registry.add("p1", "alive", mock_socket())

    delivered = await RealtimePublisher(registry).push_to_practitioner("p1", "patient-waiting", {})

    assert delivered == 1
    assert [cid for cid, _ in registry.lookup("p1")] == ["alive"]


@pytest.mark.asyncio
async def test_websocket_endpoint_end_to_end():
    registry = ConnectionRegistry()
    app = create_realtime_app(registry)

    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        ws = await client.ws_connect("/ws/practitioners/p1")
        await ws.send_str("ping")
        assert await ws.receive_str() == "pong"
        assert registry.is_online("p1")

        delivered = await RealtimePublisher(registry).push_to_practitioner(
            "p1", "patient-waiting", {"appointment_id": "a1"}
        )
        assert delivered == 1
        assert await ws.receive_json() == {
            "event": "patient-waiting",
            "data": {"appointment_id": "a1"},
        }

        await ws.close()
        for _ in range(100):
            if not registry.is_online("p1"):
                break
            await asyncio.sleep(0.01)
        assert not registry.is_online("p1")


@pytest.mark.asyncio
async def test_health_endpoint():
    app = create_realtime_app(ConnectionRegistry())

    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.get("/health")

        assert resp.status == 200
        assert await resp.json() == {"status": "ok", "connections": 0}
