from __future__ import annotations

from enum import Enum
from typing import Dict, Set


class MessageType(str, Enum):
    """Mumble TCP control message kinds, valued by their protocol names."""

    VERSION = "Version"
    UDP_TUNNEL = "UDPTunnel"
    AUTHENTICATE = "Authenticate"
    PING = "Ping"
    REJECT = "Reject"
    SERVER_SYNC = "ServerSync"                  # Session-live signal
    CHANNEL_REMOVE = "ChannelRemove"
    CHANNEL_STATE = "ChannelState"
    USER_REMOVE = "UserRemove"
    USER_STATE = "UserState"
    BAN_LIST = "BanList"
    TEXT_MESSAGE = "TextMessage"
    PERMISSION_DENIED = "PermissionDenied"
    ACL = "ACL"
    QUERY_USERS = "QueryUsers"
    CRYPT_SETUP = "CryptSetup"
    CONTEXT_ACTION_MODIFY = "ContextActionModify"
    CONTEXT_ACTION = "ContextAction"
    USER_LIST = "UserList"
    VOICE_TARGET = "VoiceTarget"
    PERMISSION_QUERY = "PermissionQuery"
    CODEC_VERSION = "CodecVersion"              # Codec negotiation (unsupported)
    USER_STATS = "UserStats"
    REQUEST_BLOB = "RequestBlob"
    SERVER_CONFIG = "ServerConfig"
    SUGGEST_CONFIG = "SuggestConfig"

    @property
    def wire_id(self) -> int:
        """Numeric id used by the binary Mumble framing."""
        return WIRE_IDS[self]

    @classmethod
    def from_string(cls, value: str) -> MessageType:
        """Convert string to MessageType enum, raise ValueError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown message type: {value}")

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if string is a valid message type."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


# Ids follow declaration order, matching the protocol's message numbering
WIRE_IDS: Dict[MessageType, int] = {kind: index for index, kind in enumerate(MessageType)}

# Messages a server sends before (or as) the session goes live
HANDSHAKE_INBOUND: Set[MessageType] = {
    MessageType.VERSION,
    MessageType.REJECT,
    MessageType.CRYPT_SETUP,
    MessageType.CODEC_VERSION,
    MessageType.CHANNEL_STATE,
    MessageType.USER_STATE,
    MessageType.PERMISSION_QUERY,
    MessageType.SERVER_SYNC,
    MessageType.SERVER_CONFIG,
}


class RejectType(str, Enum):
    """Reasons a server may give in a Reject message."""
    NONE = "None"
    WRONG_VERSION = "WrongVersion"
    INVALID_USERNAME = "InvalidUsername"
    WRONG_USER_PW = "WrongUserPW"
    WRONG_SERVER_PW = "WrongServerPW"
    USERNAME_IN_USE = "UsernameInUse"
    SERVER_FULL = "ServerFull"
    NO_CERTIFICATE = "NoCertificate"
    AUTHENTICATOR_FAIL = "AuthenticatorFail"
    NO_NEW_VERSION = "NoNewVersion"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        try:
            cls(value)
            return True
        except ValueError:
            return False
