from __future__ import annotations

from typing import Optional


class MumbleError(Exception):
    """Base class for every error raised by the client core."""
    pass


class MumbleConnectionError(MumbleError, ConnectionError):
    """Transport failure: unreachable host, refused or closed connection."""
    pass


class HandshakeError(MumbleError):
    """Raised when the handshake cannot be started or completed."""
    pass


class HandshakeTimeoutError(HandshakeError):
    """Raised when the server did not confirm the session before the deadline."""
    pass


class RejectedError(HandshakeError):
    """Raised when the server answers the handshake with a Reject message."""

    def __init__(self, reject_type: Optional[str], reason: Optional[str]) -> None:
        self.reject_type = reject_type or "None"
        self.reason = reason or ""
        detail = f": {self.reason}" if self.reason else ""
        super().__init__(f"Server rejected connection ({self.reject_type}){detail}")


class DispatchError(MumbleError):
    """Raised for failures while routing an inbound message."""
    pass


class HandlerError(DispatchError):
    """A registered handler raised a non-protocol exception."""

    def __init__(self, kind: str, cause: BaseException) -> None:
        self.kind = kind
        self.cause = cause
        super().__init__(f"Handler for {kind} failed: {cause}")


class MalformedMessageError(MumbleError):
    """Inbound frame is not a well-formed protocol message."""
    pass


class UnknownTypeError(MalformedMessageError):
    """Inbound frame names a message type this client does not know."""
    pass


class ConfigError(MumbleError):
    """Invalid configuration file or environment value."""
    pass
