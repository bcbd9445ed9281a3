"""
WebSocket connection management for the NeuralSync client.

The connection manager owns the socket to the bridge and the reconnect timer.
Every inbound frame is classified here; the resulting typed events, together
with link state changes, are placed on a single queue consumed by the session
controller, so ordering between frames and disconnects is preserved.
"""

import asyncio
import contextlib
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .classifier import MalformedFrame, classify
from .config import DEFAULT_WS_URL, RECONNECT_DELAY_SECONDS
from .models import ClientEvent, LinkEvent, LinkState

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]


class ConnectionManager:
    """
    Maintains at most one connection to the bridge endpoint.

    Every close or failed connect re-arms the same fixed-delay reconnect,
    indefinitely, until ``close()`` is called. Commands are delivered at most
    once and only while the link is ready.
    """

    def __init__(
        self,
        url: str = DEFAULT_WS_URL,
        events: asyncio.Queue[ClientEvent] | None = None,
        *,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        connector: Connector = websockets.connect,
    ) -> None:
        self.url = url
        self.events: asyncio.Queue[ClientEvent] = (
            events if events is not None else asyncio.Queue()
        )
        self.reconnect_delay = reconnect_delay
        self._connector = connector
        self._link_state = LinkState.DISCONNECTED
        self._socket: Any = None
        self._task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._closing = False

    async def __aenter__(self) -> "ConnectionManager":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def link_state(self) -> LinkState:
        return self._link_state

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def is_open(self) -> bool:
        return self._socket is not None

    # MARK: - Lifecycle

    def start(self) -> None:
        """Open a connection unless one is already active."""
        if self._task is not None and not self._task.done():
            return

        self._cancel_reconnect()
        self._closing = False
        self._set_link_state(LinkState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="neuralsync-connection"
        )

    async def close(self) -> None:
        """Close the socket and cancel any pending reconnect."""
        self._closing = True
        self._cancel_reconnect()

        socket, task = self._socket, self._task
        self._task = None

        if socket is not None:
            await socket.close()

        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        self._socket = None
        self._set_link_state(LinkState.DISCONNECTED)

    # MARK: - Commands

    async def send(self, command: str) -> bool:
        """
        Send a command frame to the bridge.

        Args:
            command: The command name, e.g. "start" or "stop"

        Returns:
            True if the frame was handed to the socket, False if it was dropped
        """
        socket = self._socket
        if self._link_state is not LinkState.READY or socket is None:
            logger.debug(
                "Dropping command %r: link is %s", command, self._link_state.value
            )
            return False

        try:
            await socket.send(json.dumps({"command": command}))
        except ConnectionClosed as e:
            logger.debug("Dropping command %r: %s", command, e)
            return False
        return True

    # MARK: - Private Helpers

    async def _run(self) -> None:
        try:
            socket = await self._connector(self.url)
        except (OSError, WebSocketException) as e:
            logger.info("Could not connect to %s: %s", self.url, e)
            self._on_closed()
            return

        self._socket = socket
        self._set_link_state(LinkState.READY)

        try:
            async for raw in socket:
                self._on_frame(raw)
        except ConnectionClosed as e:
            logger.info("Connection to %s lost: %s", self.url, e)
        finally:
            self._socket = None
            if not self._closing:
                self._on_closed()

    def _on_frame(self, raw: str | bytes) -> None:
        try:
            event = classify(raw)
        except MalformedFrame as e:
            logger.warning("Dropping malformed frame: %s", e)
            return
        self.events.put_nowait(event)

    def _on_closed(self) -> None:
        self._set_link_state(LinkState.DISCONNECTED)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._reconnect)
        logger.info("Reconnecting to %s in %.1fs", self.url, self.reconnect_delay)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        self.start()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _set_link_state(self, state: LinkState) -> None:
        if state is self._link_state:
            return
        logger.info("Link %s -> %s", self._link_state.value, state.value)
        self._link_state = state
        self.events.put_nowait(LinkEvent(state=state))
