"""
WebSocket Gateway Core Module.

- connection/: Connection lifecycle and event dispatch
"""

from ws_gateway.core.connection import (
    BroadcastDispatcher,
    ConnectionLifecycle,
    is_ws_connected,
)

__all__ = [
    "BroadcastDispatcher",
    "ConnectionLifecycle",
    "is_ws_connected",
]
