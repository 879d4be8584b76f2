from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, Union
import json

from mumble.core.MessageTypes import MessageType
from mumble.shared.errors import MalformedMessageError, UnknownTypeError


def _wire(*types: type) -> Any:
    """Optional message field whose wire value must be one of ``types``."""
    return field(default=None, metadata={"wire": types})


class Message:
    """
    Base for protocol messages. Every frame on the wire is:
    {
    "type":    "STRING (MessageType value, case-sensitive)",
    "payload": { ... named fields, all optional ... }
    }
    """
    TYPE: ClassVar[MessageType]

    @property
    def kind(self) -> MessageType:
        return self.TYPE

    def to_payload(self) -> Dict[str, Any]:
        """Named fields that are set, as a JSON-compatible dict"""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Message:
        """Build a message from its payload, validating field types.

        Keys this client does not know are ignored so newer servers can add fields.
        """
        values = {}
        for f in fields(cls):
            if f.name not in payload or payload[f.name] is None:
                continue
            value = payload[f.name]
            expected = f.metadata.get("wire", ())
            if not _matches(value, expected):
                names = "/".join(t.__name__ for t in expected)
                raise MalformedMessageError(f"{cls.TYPE.value}.{f.name} must be {names}, got {type(value).__name__}")
            values[f.name] = value
        return cls(**values)


def _matches(value: Any, expected: Tuple[type, ...]) -> bool:
    # bool is an int subclass; only accept it where bool is declared
    if isinstance(value, bool) and bool not in expected:
        return False
    return isinstance(value, expected)


@dataclass
class Version(Message):
    TYPE: ClassVar[MessageType] = MessageType.VERSION

    version: Optional[int] = _wire(int)         # Packed, see shared.version
    release: Optional[str] = _wire(str)
    os: Optional[str] = _wire(str)
    os_version: Optional[str] = _wire(str)


@dataclass
class Authenticate(Message):
    TYPE: ClassVar[MessageType] = MessageType.AUTHENTICATE

    username: Optional[str] = _wire(str)
    password: Optional[str] = _wire(str)
    tokens: Optional[List[str]] = _wire(list)
    celt_versions: Optional[List[int]] = _wire(list)
    opus: Optional[bool] = _wire(bool)


@dataclass
class Ping(Message):
    TYPE: ClassVar[MessageType] = MessageType.PING

    timestamp: Optional[int] = _wire(int)


@dataclass
class Reject(Message):
    TYPE: ClassVar[MessageType] = MessageType.REJECT

    type: Optional[str] = _wire(str)           # RejectType value, kept as sent
    reason: Optional[str] = _wire(str)


@dataclass
class ServerSync(Message):
    TYPE: ClassVar[MessageType] = MessageType.SERVER_SYNC

    session: Optional[int] = _wire(int)
    max_bandwidth: Optional[int] = _wire(int)
    welcome_text: Optional[str] = _wire(str)
    permissions: Optional[int] = _wire(int)


@dataclass
class CodecVersion(Message):
    TYPE: ClassVar[MessageType] = MessageType.CODEC_VERSION

    alpha: Optional[int] = _wire(int)
    beta: Optional[int] = _wire(int)
    prefer_alpha: Optional[bool] = _wire(bool)
    opus: Optional[bool] = _wire(bool)


@dataclass
class ServerConfig(Message):
    TYPE: ClassVar[MessageType] = MessageType.SERVER_CONFIG

    max_bandwidth: Optional[int] = _wire(int)
    welcome_text: Optional[str] = _wire(str)
    allow_html: Optional[bool] = _wire(bool)
    message_length: Optional[int] = _wire(int)
    image_message_length: Optional[int] = _wire(int)
    max_users: Optional[int] = _wire(int)


@dataclass
class RawMessage(Message):
    """Any kind without a typed class; fields are kept as received."""
    message_type: MessageType
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> MessageType:
        return self.message_type

    def to_payload(self) -> Dict[str, Any]:
        return dict(self.fields)


MESSAGE_CLASSES: Dict[MessageType, Type[Message]] = {
    MessageType.VERSION: Version,
    MessageType.AUTHENTICATE: Authenticate,
    MessageType.PING: Ping,
    MessageType.REJECT: Reject,
    MessageType.SERVER_SYNC: ServerSync,
    MessageType.CODEC_VERSION: CodecVersion,
    MessageType.SERVER_CONFIG: ServerConfig,
}


def decode_message(raw: Union[str, bytes]) -> Message:
    """Parse one JSON frame into its concrete message class"""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessageError(f"Frame is not UTF-8: {e}")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessageError(f"Invalid JSON: {e}")
    return message_from_dict(data)


def message_from_dict(data: Any) -> Message:
    """Create a message from a decoded frame dict, resolving its kind here."""
    if not isinstance(data, dict):
        raise MalformedMessageError("Frame must be a JSON object")

    missing = {'type', 'payload'} - set(data.keys())
    if missing:
        raise MalformedMessageError(f"Missing required fields: {sorted(missing)}")
    if not isinstance(data['type'], str):
        raise MalformedMessageError("'type' must be a string")
    if not isinstance(data['payload'], dict):
        raise MalformedMessageError("'payload' must be a dictionary")

    if not MessageType.is_valid(data['type']):
        raise UnknownTypeError(f"Unknown message type: {data['type']}")
    kind = MessageType(data['type'])

    cls = MESSAGE_CLASSES.get(kind)
    if cls is None:
        return RawMessage(message_type=kind, fields=dict(data['payload']))
    return cls.from_payload(data['payload'])


def message_to_dict(message: Message) -> Dict[str, Any]:
    return {'type': message.kind.value, 'payload': message.to_payload()}


def encode_message(message: Message) -> str:
    """Convert a message to its compact JSON frame"""
    return json.dumps(message_to_dict(message), separators=(',', ':'), sort_keys=True)
