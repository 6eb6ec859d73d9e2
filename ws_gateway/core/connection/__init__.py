"""
Connection Management Module.

Components composed by ConnectionManager:
- lifecycle.py: Authenticate, admit, release
- broadcaster.py: Event dispatch to hotels, roles, channels and single connections
"""

from ws_gateway.core.connection.broadcaster import BroadcastDispatcher, is_ws_connected
from ws_gateway.core.connection.lifecycle import ConnectionLifecycle

__all__ = [
    "BroadcastDispatcher",
    "ConnectionLifecycle",
    "is_ws_connected",
]
