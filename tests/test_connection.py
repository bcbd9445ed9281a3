"""
Tests for the ConnectionManager.

These tests drive the connection lifecycle against an in-process fake socket:
connect, frame classification, command delivery, and reconnect scheduling.
"""

import asyncio
import json

from fakes import FakeConnector, frame, prediction, wait_until

from neuralsync.connection import ConnectionManager
from neuralsync.models import LinkEvent, LinkState, MoodEvent, PredictionEvent, StatusEvent


def _drain(queue: asyncio.Queue) -> list:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


class TestConnectionManager:
    """Test suite for ConnectionManager."""

    def setup_method(self):
        self.connector = FakeConnector()
        self.connection = ConnectionManager(
            "ws://bridge.test/ws", reconnect_delay=0.02, connector=self.connector
        )

    async def teardown_connection(self):
        await self.connection.close()

    async def test_connect_sets_ready(self):
        """Test the Disconnected -> Connecting -> Ready sequence."""
        assert self.connection.link_state is LinkState.DISCONNECTED

        self.connection.start()
        assert self.connection.link_state is LinkState.CONNECTING

        await wait_until(lambda: self.connection.link_state is LinkState.READY)
        assert self.connection.is_open()
        assert _drain(self.connection.events) == [
            LinkEvent(state=LinkState.CONNECTING),
            LinkEvent(state=LinkState.READY),
        ]
        await self.teardown_connection()

    async def test_frames_are_classified_in_order(self):
        """Test that frames reach the queue as typed events in arrival order."""
        self.connection.start()
        await wait_until(self.connection.is_open)
        _drain(self.connection.events)

        self.connector.latest.feed(
            frame("status", "Headset synced"),
            frame("mood", "NEUTRAL"),
            prediction("10:00", "NEUTRAL"),
            prediction("10:01", "POSITIVE"),
        )
        await wait_until(lambda: self.connection.events.qsize() == 4)

        events = _drain(self.connection.events)
        assert isinstance(events[0], StatusEvent)
        assert isinstance(events[1], MoodEvent)
        assert [e.entry.time for e in events[2:] if isinstance(e, PredictionEvent)] == [
            "10:00",
            "10:01",
        ]
        await self.teardown_connection()

    async def test_malformed_frame_is_dropped(self):
        """Test that a corrupt frame is dropped without touching the link."""
        self.connection.start()
        await wait_until(self.connection.is_open)
        _drain(self.connection.events)

        self.connector.latest.feed("{not json", frame("status", "still here"))
        await wait_until(lambda: not self.connection.events.empty())

        assert _drain(self.connection.events) == [StatusEvent(value="still here")]
        assert self.connection.link_state is LinkState.READY
        await self.teardown_connection()

    async def test_deeply_nested_frame_keeps_link(self):
        """Test that a frame too deep to decode is dropped like any corrupt frame."""
        self.connection.start()
        await wait_until(self.connection.is_open)
        _drain(self.connection.events)

        self.connector.latest.feed("[" * 100000, frame("status", "still here"))
        await wait_until(lambda: not self.connection.events.empty())

        assert _drain(self.connection.events) == [StatusEvent(value="still here")]
        assert self.connection.link_state is LinkState.READY
        assert not self.connection.reconnect_pending
        await self.teardown_connection()

    async def test_send_when_ready(self):
        self.connection.start()
        await wait_until(self.connection.is_open)

        assert await self.connection.send("start")
        assert self.connector.latest.sent == [json.dumps({"command": "start"})]
        await self.teardown_connection()

    async def test_send_when_not_ready_is_dropped(self):
        assert not await self.connection.send("start")

        self.connection.start()
        assert self.connection.link_state is LinkState.CONNECTING
        assert not await self.connection.send("stop")
        await self.teardown_connection()

    async def test_close_schedules_one_reconnect(self):
        """Test that a lost link reports Disconnected and reconnects once."""
        self.connection.start()
        await wait_until(self.connection.is_open)
        _drain(self.connection.events)

        self.connector.latest.drop()
        await wait_until(lambda: self.connection.link_state is LinkState.DISCONNECTED)
        assert self.connection.reconnect_pending
        assert _drain(self.connection.events) == [
            LinkEvent(state=LinkState.DISCONNECTED)
        ]

        await wait_until(lambda: len(self.connector.sockets) == 2)
        await wait_until(lambda: self.connection.link_state is LinkState.READY)
        assert not self.connection.reconnect_pending
        assert self.connector.attempts == 2
        await self.teardown_connection()

    async def test_repeated_closes_never_overlap(self):
        self.connection.start()
        for _ in range(3):
            await wait_until(self.connection.is_open)
            self.connection.start()  # no second connection while one is active
            self.connector.latest.drop()
            await wait_until(lambda: not self.connection.is_open())

        await wait_until(lambda: len(self.connector.sockets) == 4)
        assert self.connector.max_open == 1
        assert self.connector.attempts == 4
        await self.teardown_connection()

    async def test_failed_connect_retries(self):
        """Test that refused connections keep retrying at a fixed delay."""
        self.connector.failures = 2
        self.connection.start()

        await wait_until(lambda: self.connection.link_state is LinkState.READY)
        assert self.connector.attempts == 3
        await self.teardown_connection()

    async def test_manual_start_cancels_pending_reconnect(self):
        self.connection.reconnect_delay = 10.0
        self.connection.start()
        await wait_until(self.connection.is_open)
        self.connector.latest.drop()
        await wait_until(lambda: self.connection.reconnect_pending)

        self.connection.start()
        assert not self.connection.reconnect_pending
        await wait_until(lambda: self.connection.link_state is LinkState.READY)
        assert self.connector.attempts == 2
        await self.teardown_connection()

    async def test_close_cancels_reconnect(self):
        """Test that teardown releases the socket and the retry timer."""
        self.connection.start()
        await wait_until(self.connection.is_open)
        self.connector.latest.drop()
        await wait_until(lambda: self.connection.reconnect_pending)

        await self.connection.close()
        assert not self.connection.reconnect_pending
        await asyncio.sleep(0.05)
        assert self.connector.attempts == 1
        assert self.connection.link_state is LinkState.DISCONNECTED

    async def test_close_releases_open_socket(self):
        async with self.connection:
            await wait_until(self.connection.is_open)
            socket = self.connector.latest

        assert socket.closed
        assert not self.connection.is_open()
        assert not self.connection.reconnect_pending
        assert self.connection.link_state is LinkState.DISCONNECTED
