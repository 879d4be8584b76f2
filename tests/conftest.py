import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mumble.shared.errors import MumbleConnectionError
from mumble.shared.messages import Message


class FakeTransport:
    """In-memory transport: records traffic, serves queued inbound messages."""

    def __init__(self, connect_error: Optional[Exception] = None) -> None:
        self.events: List[str] = []
        self.sent: List[Message] = []
        self.connect_error = connect_error
        self.connect_gate: Optional[asyncio.Event] = None
        self.dispose_calls = 0
        self._inbound: Optional[asyncio.Queue] = None
        self._closed = False

    @property
    def inbound(self) -> asyncio.Queue:
        if self._inbound is None:
            self._inbound = asyncio.Queue()
        return self._inbound

    def feed(self, *messages: Message) -> None:
        for message in messages:
            self.inbound.put_nowait(message)

    async def connect(self) -> None:
        self.events.append("connect:start")
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.events.append("connect:done")

    async def send(self, message: Message) -> None:
        if self._closed:
            raise MumbleConnectionError("closed")
        self.events.append(f"send:{message.kind.value}")
        self.sent.append(message)

    async def receive(self) -> Message:
        if self._closed:
            raise MumbleConnectionError("closed")
        message = await self.inbound.get()
        if message is None:
            raise MumbleConnectionError("closed while reading")
        return message

    async def dispose(self) -> None:
        self.dispose_calls += 1
        if self._closed:
            return
        self._closed = True
        # Wake up a pending receive()
        self.inbound.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self._closed


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(transport):
    from mumble.client.client import MumbleClient

    return MumbleClient("example.org", transport=transport, handshake_timeout=2.0)
