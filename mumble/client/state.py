from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional

from mumble.shared.version import SemanticVersion


class HandshakeState(str, Enum):
    DISCONNECTED = "disconnected"
    VERSION_SENT = "version_sent"
    AUTH_SENT = "auth_sent"
    AWAITING_SYNC = "awaiting_sync"
    LIVE = "live"
    CLOSED = "closed"


@dataclass
class ServerInfo:
    """What the client knows about the server. Written only by message handlers."""
    host_name: str
    port: int
    os: str = ""
    os_version: str = ""
    release: str = ""
    version: Optional[SemanticVersion] = None
    # Filled from ServerSync / ServerConfig
    session: Optional[int] = None
    welcome_text: str = ""
    max_bandwidth: Optional[int] = None
    max_users: Optional[int] = None
    allow_html: Optional[bool] = None

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["version"] = str(self.version) if self.version is not None else None
        return data
