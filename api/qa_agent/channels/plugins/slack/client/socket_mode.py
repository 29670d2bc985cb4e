"""Slack Socket Mode connection.

Opens a Socket Mode session through ``apps.connections.open``, keeps the
websocket alive, and hands every inbound frame to registered callbacks.
When the socket drops, or Slack asks the client to refresh with a
``disconnect`` frame, a fresh session is opened after a fixed delay.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Coroutine, Dict, List

from qa_agent.channels.plugins.slack.client.api import MessagingPlatform
from qa_agent.metrics.qa_metrics import (
    slack_socket_connection_status,
    slack_socket_reconnects,
)
from websockets.asyncio.client import connect as _ws_connect
from websockets.exceptions import ConnectionClosed

logger = logging.getLogger(__name__)


async def websockets_connect(url: str, **kwargs: Any) -> Any:
    """Connect wrapper for testability."""
    return await _ws_connect(url, **kwargs)


FrameCallback = Callable[[Dict[str, Any]], Coroutine[Any, Any, None]]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SocketModeConnection:
    """Persistent Socket Mode connection with fixed-delay reconnect.

    Example:
        connection = SocketModeConnection(platform)
        connection.on_frame(processor.handle_frame)
        task = asyncio.create_task(connection.listen_forever())
    """

    def __init__(
        self,
        platform: MessagingPlatform,
        reconnect_delay_seconds: float = 5.0,
    ):
        self.platform = platform
        self.reconnect_delay_seconds = reconnect_delay_seconds
        self.state = ConnectionState.DISCONNECTED
        self._ws: Any = None
        self._frame_callbacks: List[FrameCallback] = []
        self._listening = False

    @property
    def is_connected(self) -> bool:
        """Whether the websocket is currently connected."""
        return self.state == ConnectionState.CONNECTED

    def on_frame(self, callback: FrameCallback) -> None:
        """Register an async callback receiving parsed frames."""
        self._frame_callbacks.append(callback)

    async def connect(self) -> None:
        """Open a Socket Mode session and connect to its websocket."""
        self.state = ConnectionState.CONNECTING
        try:
            url = await self.platform.open_session()
            self._ws = await websockets_connect(url)
        except Exception:
            self._mark_disconnected()
            logger.exception("Failed to open Slack Socket Mode session")
            raise
        self.state = ConnectionState.CONNECTED
        slack_socket_connection_status.set(1)
        logger.info("Connected to Slack Socket Mode")

    async def close(self) -> None:
        """Close the websocket connection."""
        self._listening = False
        await self._close_socket()
        logger.info("Slack Socket Mode connection closed")

    async def _close_socket(self) -> None:
        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception:
                logger.debug("Error closing Socket Mode websocket", exc_info=True)
        self._mark_disconnected()

    def _mark_disconnected(self) -> None:
        self._ws = None
        self.state = ConnectionState.DISCONNECTED
        slack_socket_connection_status.set(0)

    async def send_json(self, payload: Dict[str, Any]) -> None:
        """Send an outbound frame such as an envelope acknowledgement.

        Raises:
            ConnectionError: If not connected.
        """
        if not self.is_connected or self._ws is None:
            raise ConnectionError("Not connected to Slack Socket Mode")
        await self._ws.send(json.dumps(payload))

    async def _dispatch_frame(self, frame: Dict[str, Any]) -> None:
        for cb in self._frame_callbacks:
            try:
                await cb(frame)
            except Exception:
                logger.exception("Error in Socket Mode frame callback")

    async def _handle_message(self, raw: Any) -> None:
        """Parse and route an incoming websocket message."""
        try:
            frame = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.warning("Received invalid JSON from Slack Socket Mode")
            return
        if not isinstance(frame, dict):
            return

        frame_type = frame.get("type", "")
        if frame_type == "hello":
            logger.info(
                "Socket Mode hello received (connections=%s)",
                frame.get("num_connections"),
            )
            return
        if frame_type == "disconnect":
            logger.info(
                "Slack requested disconnect (reason=%s), refreshing session",
                frame.get("reason"),
            )
            await self._close_socket()
            return

        await self._dispatch_frame(frame)

    async def listen_forever(self) -> None:
        """Run persistent receive loop, reconnecting after a fixed delay."""
        self._listening = True

        while self._listening:
            try:
                if not self.is_connected or self._ws is None:
                    await self.connect()

                raw = await self._ws.recv()
                await self._handle_message(raw)

            except asyncio.CancelledError:
                self._listening = False
                raise
            except ConnectionClosed:
                if not self._listening:
                    break
                logger.warning("Slack Socket Mode websocket closed, reconnecting")
                await self._schedule_reconnect()
            except Exception:
                if not self._listening:
                    break
                logger.exception("Slack Socket Mode listen loop error, reconnecting")
                await self._schedule_reconnect()

    async def _schedule_reconnect(self) -> None:
        self._mark_disconnected()
        slack_socket_reconnects.inc()
        await asyncio.sleep(self.reconnect_delay_seconds)

    async def stop_listening(self) -> None:
        """Stop persistent receive loop and close socket."""
        self._listening = False
        await self.close()
