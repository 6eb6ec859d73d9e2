"""
Core WebSocket Gateway components.

Foundational components: constants and connection context.
"""

from ws_gateway.components.core.constants import (
    HotelChannel,
    ProtocolEvent,
    SubscriptionStatus,
    UserRole,
    WSCloseCode,
    WSConstants,
)
from ws_gateway.components.core.context import (
    Connection,
    ConnectionIdentity,
    ConnectionState,
    WebSocketContext,
    sanitize_log_data,
)

__all__ = [
    # Constants
    "HotelChannel",
    "ProtocolEvent",
    "SubscriptionStatus",
    "UserRole",
    "WSCloseCode",
    "WSConstants",
    # Context
    "Connection",
    "ConnectionIdentity",
    "ConnectionState",
    "WebSocketContext",
    "sanitize_log_data",
]
