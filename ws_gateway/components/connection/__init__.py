"""
Connection management components.

Presence registry, channel groups and heartbeat handling.
"""

from ws_gateway.components.connection.channels import (
    ChannelGroup,
    ChannelManager,
    RoleGroup,
    TenantGroup,
)
from ws_gateway.components.connection.heartbeat import handle_heartbeat
from ws_gateway.components.connection.index import PresenceRegistry

__all__ = [
    "ChannelGroup",
    "ChannelManager",
    "RoleGroup",
    "TenantGroup",
    "handle_heartbeat",
    "PresenceRegistry",
]
