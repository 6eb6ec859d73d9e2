"""
Connection identity and context objects.

ConnectionIdentity is what other staff see about a connection.
Connection is the live record owned by the presence registry.
WebSocketContext carries audit metadata so endpoints do not repeat
parameters in every audit call.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TYPE_CHECKING

from shared.config.logging import audit_ws_connection
from ws_gateway.components.core.constants import UserRole

if TYPE_CHECKING:
    from fastapi import WebSocket


# Control characters and Unicode direction overrides stripped from log data
_CONTROL_CHAR_PATTERN = re.compile(
    r'[\x00-\x1f\x7f-\x9f'  # ASCII control characters
    r'\u200b-\u200f'  # Zero-width and direction marks
    r'\u202a-\u202e'  # Bidirectional text formatting
    r'\u2066-\u2069'  # Isolate formatting characters
    r'\ufeff]'  # BOM
)


def sanitize_log_data(data: str, max_length: int = 100) -> str:
    """
    Sanitize client-provided data before logging.

    Truncates first, then strips control characters and escapes
    JSON-dangerous characters, so output length stays predictable.

    Args:
        data: Raw client data.
        max_length: Maximum length to include in logs.

    Returns:
        Sanitized, truncated string safe for structured logging.
    """
    was_truncated = len(data) > max_length
    truncated = data[:max_length] if was_truncated else data

    sanitized = _CONTROL_CHAR_PATTERN.sub('', truncated)
    sanitized = sanitized.replace('\\', '\\\\')
    sanitized = sanitized.replace('"', '\\"')

    if was_truncated:
        return sanitized + "..."
    return sanitized


class ConnectionState(str, Enum):
    """Lifecycle states of a client connection."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True, slots=True)
class ConnectionIdentity:
    """
    Who is behind a connection.

    Built from the user record at authentication time, never from token
    claims alone. tenant_id is None only for platform administrators.
    """

    user_id: int
    tenant_id: int | None
    role: UserRole
    name: str
    email: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "tenant_id": self.tenant_id,
            "role": self.role.value,
            "name": self.name,
            "email": self.email,
        }


@dataclass(slots=True)
class Connection:
    """
    A live, authenticated client connection.

    Created when authentication succeeds and dropped when the client goes
    away. Never persisted.
    """

    identity: ConnectionIdentity
    websocket: Any
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: ConnectionState = ConnectionState.CONNECTED

    @property
    def tenant_id(self) -> int | None:
        return self.identity.tenant_id

    @property
    def role(self) -> UserRole:
        return self.identity.role


@dataclass
class WebSocketContext:
    """
    Context object for WebSocket connection metadata.

    Usage:
        ctx = WebSocketContext.from_websocket(websocket, "/ws")
        ctx.audit("AUTH_FAILED", reason="invalid_credential")
        ctx.bind(identity, connection_id)
        ctx.audit("CONNECT")
    """

    endpoint: str
    origin: str | None = None
    user_id: int | None = None
    tenant_id: int | None = None
    role: str | None = None
    connection_id: str | None = None

    @classmethod
    def from_websocket(cls, websocket: "WebSocket", endpoint: str) -> "WebSocketContext":
        return cls(
            endpoint=endpoint,
            origin=websocket.headers.get("origin"),
        )

    def bind(self, identity: ConnectionIdentity, connection_id: str) -> None:
        """Attach the authenticated identity."""
        self.user_id = identity.user_id
        self.tenant_id = identity.tenant_id
        self.role = identity.role.value
        self.connection_id = connection_id

    def audit(self, event_type: str, reason: str | None = None, **extra: Any) -> None:
        """Write a security audit entry for this connection."""
        audit_ws_connection(
            event_type=event_type,
            endpoint=self.endpoint,
            user_id=self.user_id,
            tenant_id=self.tenant_id,
            origin=sanitize_log_data(self.origin) if self.origin else None,
            reason=reason,
            role=self.role,
            connection_id=self.connection_id,
            **extra,
        )
