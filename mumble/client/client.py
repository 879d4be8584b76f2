#!/usr/bin/env python3
"""
Mumble client session core

Negotiates protocol version and credentials with a server, then reads and
dispatches inbound messages until the server confirms the session with
ServerSync.

    async with MumbleClient("example.org") as client:
        await client.connect("alice", "secret")
        print(client.server_info.release)
"""

from __future__ import annotations
import asyncio
import platform
from typing import Any, Optional

from mumble.client.state import HandshakeState, ServerInfo
from mumble.core.ConnectionLink import Transport, WebSocketTransport
from mumble.core.MessageDispatcher import MessageDispatcher
from mumble.core.MessageTypes import HANDSHAKE_INBOUND, MessageType, RejectType
from mumble.shared.errors import HandshakeError, HandshakeTimeoutError, RejectedError
from mumble.shared.log import get_logger, log_mumble_message
from mumble.shared.messages import (
    Authenticate,
    CodecVersion,
    Reject,
    ServerConfig,
    ServerSync,
    Version,
)
from mumble.shared.version import (
    CLIENT_VERSION,
    DEFAULT_PORT,
    PACKAGE_VERSION,
    decode_version,
    encode_version,
)

logger = get_logger(__name__)

_DEFAULT_TIMEOUT = object()


class MumbleClient:

    DEFAULT_PORT = DEFAULT_PORT

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        *,
        transport: Optional[Transport] = None,
        handshake_timeout: Optional[float] = 30.0,
    ) -> None:
        # The client owns the transport exclusively; nothing else may use it
        self.transport: Transport = transport or WebSocketTransport(host, port)
        self.server_info = ServerInfo(host_name=host, port=port)
        self.handshake_timeout = handshake_timeout
        self.state = HandshakeState.DISCONNECTED
        self.dispatcher = MessageDispatcher()
        self._read_task: Optional[asyncio.Task] = None
        self._disposed = False
        self._setup_handlers()

    @property
    def connected(self) -> bool:
        return self.state is HandshakeState.LIVE

    async def __aenter__(self) -> MumbleClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()

    async def connect(self, username: str, password: str, *, timeout: Any = _DEFAULT_TIMEOUT) -> None:
        """
        Establish a session with the server.

        Args:
            username: Name to authenticate as
            password: Server or user password ("" for none)
            timeout: Seconds allowed for the whole handshake; None waits forever.
                Defaults to the client's handshake_timeout.

        Raises:
            MumbleConnectionError: transport failure; no retry is attempted
            RejectedError: the server refused the credentials or version
            HandshakeTimeoutError: no ServerSync before the deadline
            HandshakeError: connect() already called or client disposed

        The transport is disposed on every failure path.
        """
        if self._disposed:
            raise HandshakeError("Client has been disposed")
        if self.state is not HandshakeState.DISCONNECTED:
            raise HandshakeError(f"connect() already called (state={self.state.value})")
        if timeout is _DEFAULT_TIMEOUT:
            timeout = self.handshake_timeout

        try:
            await asyncio.wait_for(self._handshake(username, password), timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Handshake timed out after %ss", timeout,
                           extra={"host": self.server_info.host_name, "state": self.state.value})
            await self.dispose()
            raise HandshakeTimeoutError(f"Server did not confirm the session within {timeout}s") from e
        except BaseException:
            await self.dispose()
            raise

    async def dispose(self) -> None:
        """Release the transport. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self.state = HandshakeState.CLOSED
        await self.transport.dispose()
        logger.debug("Client disposed", extra={"host": self.server_info.host_name})

    async def _handshake(self, username: str, password: str) -> None:
        host = self.server_info.host_name
        await self.transport.connect()

        await self.transport.send(Version(
            version=encode_version(CLIENT_VERSION),
            release=f"mumble-client {PACKAGE_VERSION}",
            os=platform.system(),
            os_version=platform.release(),
        ))
        self.state = HandshakeState.VERSION_SENT

        await self.transport.send(Authenticate(
            username=username,
            password=password,
            opus=True,
        ))
        self.state = HandshakeState.AUTH_SENT
        logger.info("Sent Version and Authenticate as %s", username, extra={"host": host})

        # Reading happens in its own task; cancelling this coroutine cancels it too
        self._read_task = asyncio.create_task(self._read_until_live())
        await self._read_task
        logger.info("Session is live", extra={"host": host, "session": self.server_info.session})

    async def _read_until_live(self) -> None:
        if self.state is HandshakeState.AUTH_SENT:
            self.state = HandshakeState.AWAITING_SYNC
        while not self.connected:
            message = await self.transport.receive()
            if message.kind not in HANDSHAKE_INBOUND:
                log_mumble_message(logger, "debug", "Unexpected message during handshake", msg=message)
            self.dispatcher.dispatch(self, message)

    # ========================================
    #           SELF-REGISTERED HANDLERS
    # ========================================

    def _setup_handlers(self) -> None:
        """Wire the handlers that maintain basic session state"""
        self.dispatcher.register(MessageType.VERSION, self._handle_version)
        self.dispatcher.register(MessageType.SERVER_SYNC, self._handle_server_sync)
        self.dispatcher.register(MessageType.CODEC_VERSION, self._handle_codec_version)
        self.dispatcher.register(MessageType.REJECT, self._handle_reject)
        self.dispatcher.register(MessageType.SERVER_CONFIG, self._handle_server_config)

    def _handle_version(self, sender: Any, message: Version) -> None:
        # Absent fields read as their protobuf defaults
        self.server_info.os = message.os or ""
        self.server_info.os_version = message.os_version or ""
        self.server_info.release = message.release or ""
        self.server_info.version = decode_version(message.version or 0)
        logger.info("Server runs %s (protocol %s) on %s", self.server_info.release,
                    self.server_info.version, self.server_info.os)

    def _handle_server_sync(self, sender: Any, message: ServerSync) -> None:
        if self.state is not HandshakeState.AWAITING_SYNC:
            logger.warning("Ignoring ServerSync in state %s", self.state.value)
            return
        self.server_info.session = message.session
        if message.max_bandwidth is not None:
            self.server_info.max_bandwidth = message.max_bandwidth
        if message.welcome_text is not None:
            self.server_info.welcome_text = message.welcome_text
        self.state = HandshakeState.LIVE

    def _handle_codec_version(self, sender: Any, message: CodecVersion) -> None:
        # Codec negotiation is not supported; the message is accepted and dropped
        log_mumble_message(logger, "debug", "Ignoring codec negotiation", msg=message)

    def _handle_reject(self, sender: Any, message: Reject) -> None:
        if message.type is not None and not RejectType.is_valid(message.type):
            logger.warning("Server sent unrecognised reject type %s", message.type,
                           extra={"host": self.server_info.host_name})
        raise RejectedError(message.type, message.reason)

    def _handle_server_config(self, sender: Any, message: ServerConfig) -> None:
        if message.max_bandwidth is not None:
            self.server_info.max_bandwidth = message.max_bandwidth
        if message.welcome_text is not None:
            self.server_info.welcome_text = message.welcome_text
        if message.allow_html is not None:
            self.server_info.allow_html = message.allow_html
        if message.max_users is not None:
            self.server_info.max_users = message.max_users
