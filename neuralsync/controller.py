"""
Session control for the NeuralSync client.

The session controller is the single consumer of the connection manager's
event queue. It owns the Idle/Collecting state, the current mood, the status
text and the session log, and publishes a snapshot after every change so
views can follow along.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum

from .connection import ConnectionManager
from .models import (
    ClientEvent,
    ClientSnapshot,
    ExportArtifact,
    IgnoredEvent,
    LinkEvent,
    LinkState,
    Mood,
    MoodEvent,
    PredictionEvent,
    StatusEvent,
)
from .session_log import SessionLog
from .views import build_export

logger = logging.getLogger(__name__)

ExportSink = Callable[[ExportArtifact], None]


class SessionState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"


class SessionController:
    """
    Idle/Collecting state machine over a bridge connection.

    User intents arrive through ``start()`` and ``stop()``; bridge events
    arrive through ``handle()``, normally driven by ``run()``. A lost link
    forces the session to stop, and any data collected up to that point is
    still exported.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        log: SessionLog | None = None,
        *,
        export_sink: ExportSink | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.connection = connection
        self.log = log if log is not None else SessionLog()
        self.state = SessionState.IDLE
        self.mood = Mood.UNKNOWN
        self.status = connection.link_state.value
        self.last_export: ExportArtifact | None = None
        self._export_sink = export_sink
        self._clock = clock
        self._condition = asyncio.Condition()
        self._update_counter = 0

    @property
    def is_collecting(self) -> bool:
        return self.state is SessionState.COLLECTING

    # MARK: - User intents

    async def start(self) -> None:
        """Begin a new collection session, discarding the previous one."""
        self.log.clear()
        self.mood = Mood.ANALYZING
        self.state = SessionState.COLLECTING
        await self.connection.send("start")
        logger.info("Session started")
        await self._publish()

    async def stop(self, *, forced: bool = False) -> ExportArtifact | None:
        """
        End the current session.

        Args:
            forced: True when the stop is caused by a lost link; the stop
                command is then not sent

        Returns:
            The CSV export if the session recorded any predictions
        """
        if self.state is SessionState.IDLE:
            return None

        # Idle before sending; the send may suspend
        self.state = SessionState.IDLE
        self.log.freeze()
        self.mood = Mood.UNKNOWN

        if not forced:
            await self.connection.send("stop")

        artifact = None
        if self.log:
            artifact = build_export(self.log.snapshot(), self._clock())
            self.last_export = artifact
            if self._export_sink is not None:
                self._export_sink(artifact)

        logger.info(
            "Session stopped%s with %d predictions",
            " (link lost)" if forced else "",
            len(self.log),
        )
        await self._publish()
        return artifact

    # MARK: - Bridge events

    async def run(self) -> None:
        """Process inbound events in arrival order until cancelled."""
        while True:
            event = await self.connection.events.get()
            await self.handle(event)

    async def process_pending(self) -> int:
        """Process every event already queued, without waiting for more."""
        processed = 0
        while True:
            try:
                event = self.connection.events.get_nowait()
            except asyncio.QueueEmpty:
                return processed
            await self.handle(event)
            processed += 1

    async def handle(self, event: ClientEvent) -> None:
        if isinstance(event, LinkEvent):
            await self._on_link_state(event.state)
            return

        if isinstance(event, StatusEvent):
            self.status = event.value
        elif isinstance(event, MoodEvent):
            self.mood = event.value
        elif isinstance(event, PredictionEvent):
            if not self.is_collecting:
                logger.debug("Ignoring prediction outside a session: %s", event.entry)
                return
            self.log.append(event.entry)
        elif isinstance(event, IgnoredEvent):
            logger.debug("Ignoring event of type %r", event.type)
            return

        await self._publish()

    # MARK: - Snapshots

    def snapshot(self) -> ClientSnapshot:
        return ClientSnapshot(
            link_state=self.connection.link_state,
            status=self.status,
            mood=self.mood,
            is_collecting=self.is_collecting,
            predictions=self.log.snapshot(),
            last_export=self.last_export,
        )

    @asynccontextmanager
    async def stream(self) -> AsyncGenerator[AsyncGenerator[ClientSnapshot, None], None]:
        """
        Stream client snapshots to an observer.

        Yields:
            An async generator producing the current snapshot, then a new one
            after every state change
        """

        async def snapshot_generator() -> AsyncGenerator[ClientSnapshot, None]:
            async with self._condition:
                last_seen_counter = self._update_counter
                current = self.snapshot()
            yield current

            try:
                while True:
                    async with self._condition:
                        await self._condition.wait_for(
                            lambda: self._update_counter > last_seen_counter
                        )
                        last_seen_counter = self._update_counter
                        current = self.snapshot()
                    yield current
            except (asyncio.CancelledError, GeneratorExit):
                return

        yield snapshot_generator()

    # MARK: - Private Helpers

    async def _on_link_state(self, state: LinkState) -> None:
        self.status = state.value
        if state is LinkState.DISCONNECTED:
            self.mood = Mood.UNKNOWN
            if self.is_collecting:
                await self.stop(forced=True)
                return
        await self._publish()

    async def _publish(self) -> None:
        async with self._condition:
            self._update_counter += 1
            self._condition.notify_all()
