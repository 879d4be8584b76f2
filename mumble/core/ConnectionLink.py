from __future__ import annotations

import asyncio
from typing import Optional, Protocol

import websockets

from mumble.shared.errors import MalformedMessageError, MumbleConnectionError
from mumble.shared.log import get_logger
from mumble.shared.messages import Message, decode_message, encode_message
from mumble.shared.version import DEFAULT_PORT

logger = get_logger(__name__)


class Transport(Protocol):
    """Connection a client drives its session over."""

    async def connect(self) -> None:
        """Open the connection. Raises MumbleConnectionError."""
        ...

    async def send(self, message: Message) -> None:
        """Serialize and send one message. Raises MumbleConnectionError."""
        ...

    async def receive(self) -> Message:
        """Return the next inbound message. Raises MumbleConnectionError once closed."""
        ...

    async def dispose(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...


class WebSocketTransport:
    """Transport carrying one JSON-encoded message per WebSocket frame"""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        *,
        secure: bool = False,
        open_timeout: Optional[float] = 10.0,
        ping_interval: Optional[float] = 15.0,
        ping_timeout: Optional[float] = 45.0,
    ) -> None:
        self.host = host
        self.port = port
        self.secure = secure
        self.open_timeout = open_timeout
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.websocket: Optional[websockets.ClientConnection] = None
        self._disposed = False

    @property
    def uri(self) -> str:
        scheme = "wss" if self.secure else "ws"
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{scheme}://{host}:{self.port}"

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def connect(self) -> None:
        """Connect to the server via WebSocket"""
        if self._disposed:
            raise MumbleConnectionError("Transport has been disposed")
        try:
            self.websocket = await websockets.connect(
                self.uri,
                open_timeout=self.open_timeout,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_timeout,
            )
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            raise MumbleConnectionError(f"Could not connect to {self.uri}: {e}") from e
        if self._disposed:
            # dispose() ran while the opening handshake was pending
            await self._close()
            raise MumbleConnectionError("Transport was disposed while connecting")
        logger.info("Connected to %s", self.uri, extra={"host": self.host})

    async def send(self, message: Message) -> None:
        websocket = self._require_open()
        try:
            await websocket.send(encode_message(message))
        except websockets.exceptions.ConnectionClosed as e:
            raise MumbleConnectionError(f"Connection closed while sending {message.kind.value}") from e
        logger.debug("Sent %s (id %d)", message.kind.value, message.kind.wire_id, extra={"msg_type": message.kind.value})

    async def receive(self) -> Message:
        """Wait for the next decodable message; malformed frames are logged and skipped."""
        websocket = self._require_open()
        while True:
            try:
                raw = await websocket.recv()
            except websockets.exceptions.ConnectionClosed as e:
                raise MumbleConnectionError(f"Connection to {self.uri} closed") from e
            try:
                message = decode_message(raw)
            except MalformedMessageError as e:
                logger.error("Failed to parse inbound frame: %s", e)
                continue
            logger.debug("Received %s (id %d)", message.kind.value, message.kind.wire_id, extra={"msg_type": message.kind.value})
            return message

    async def dispose(self) -> None:
        """Close the WebSocket connection"""
        if self._disposed:
            return
        self._disposed = True
        await self._close()

    async def _close(self) -> None:
        if self.websocket is None:
            return
        try:
            await self.websocket.close(code=1000)
        except Exception as e:
            logger.error(f"Error closing connection: {e}")

    def _require_open(self) -> websockets.ClientConnection:
        if self._disposed:
            raise MumbleConnectionError("Transport has been disposed")
        if self.websocket is None:
            raise MumbleConnectionError("Transport is not connected")
        return self.websocket
