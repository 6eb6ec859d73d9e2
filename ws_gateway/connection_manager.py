"""
WebSocket Connection Manager.

Thin orchestrator that composes the gateway components:
- PresenceRegistry: who is connected, per hotel
- ChannelManager: hotel, role and named channel groups
- BroadcastDispatcher: event delivery
- ConnectionLifecycle: authenticate, admit, release

One instance per process, created at startup and stored on app.state.
Business code notifies staff through broadcast_to_tenant/role/channel
and reads presence through get_presence.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TYPE_CHECKING

from shared.config.logging import get_logger
from shared.config.settings import settings
from ws_gateway.components.auth.strategies import AuthResult, AuthStrategy, create_staff_auth_strategy
from ws_gateway.components.connection.channels import ChannelGroup, ChannelManager
from ws_gateway.components.connection.index import PresenceRegistry
from ws_gateway.components.core.constants import HotelChannel, UserRole, WSCloseCode
from ws_gateway.components.core.context import Connection, ConnectionIdentity
from ws_gateway.components.data.user_repository import SQLAlchemyUserRepository, UserDirectory
from ws_gateway.core.connection import BroadcastDispatcher, ConnectionLifecycle

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = get_logger(__name__)

__all__ = ["ConnectionManager", "PresenceSnapshot"]


@dataclass(frozen=True)
class PresenceSnapshot:
    """Point-in-time view of a hotel's connected staff."""

    tenant_id: int
    count: int
    identities: list[ConnectionIdentity] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hotel_id": self.tenant_id,
            "connected_users_count": self.count,
            "connected_users": [identity.to_dict() for identity in self.identities],
        }


class ConnectionManager:
    """
    Manages WebSocket connections for real-time hotel notifications.

    Configuration from settings:
    - ws_broadcast_batch_size: Parallel broadcast batch size (default: 50)
    - ws_user_lookup_timeout: User/hotel lookup timeout (default: 5s)

    Usage:
        manager = ConnectionManager()
        await manager.broadcast_to_role(3, "housekeeping", "room_needs_cleaning", {...})
        manager.get_presence(3).count
    """

    def __init__(
        self,
        user_directory: UserDirectory | None = None,
        auth_strategy: AuthStrategy | None = None,
        batch_size: int | None = None,
    ) -> None:
        """
        Args:
            user_directory: Source of user records (defaults to the database).
            auth_strategy: Overrides the JWT strategy built from user_directory.
            batch_size: Connections sent to in parallel per broadcast batch.
        """
        if auth_strategy is None:
            if user_directory is None:
                user_directory = SQLAlchemyUserRepository(timeout=settings.ws_user_lookup_timeout)
            auth_strategy = create_staff_auth_strategy(user_directory)

        self._user_directory = user_directory
        self._registry = PresenceRegistry()
        self._channels = ChannelManager()
        self._dispatcher = BroadcastDispatcher(
            self._registry,
            self._channels,
            batch_size=batch_size or settings.ws_broadcast_batch_size,
        )
        self._auth_strategy = auth_strategy
        self._lifecycle = ConnectionLifecycle(
            auth_strategy=auth_strategy,
            registry=self._registry,
            channels=self._channels,
            dispatcher=self._dispatcher,
        )

    # =========================================================================
    # Component access
    # =========================================================================

    @property
    def registry(self) -> PresenceRegistry:
        return self._registry

    @property
    def channels(self) -> ChannelManager:
        return self._channels

    @property
    def dispatcher(self) -> BroadcastDispatcher:
        return self._dispatcher

    @property
    def total_connections(self) -> int:
        return self._registry.total_connections

    # =========================================================================
    # Connection lifecycle (used by endpoints)
    # =========================================================================

    async def authenticate(self, token: str | None, websocket: "WebSocket | None" = None) -> AuthResult:
        return await self._lifecycle.authenticate(token, websocket)

    async def revalidate(self, token: str) -> bool:
        return await self._auth_strategy.revalidate(token)

    async def connect(self, websocket: "WebSocket", identity: ConnectionIdentity) -> Connection | None:
        return await self._lifecycle.admit(websocket, identity)

    async def join_channel(self, connection_id: str, channel_name: str) -> ChannelGroup | None:
        return await self._lifecycle.join_channel(connection_id, channel_name)

    async def disconnect(self, connection_id: str) -> bool:
        return await self._lifecycle.release(connection_id)

    def build_message(self, event: str | Enum, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._dispatcher.build_message(event, payload)

    # =========================================================================
    # Notification interface (used by business code)
    # =========================================================================

    async def broadcast_to_tenant(
        self,
        tenant_id: int,
        event: str | Enum,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Send an event to everyone connected to a hotel."""
        return await self._dispatcher.broadcast_to_tenant(tenant_id, event, payload)

    async def broadcast_to_role(
        self,
        tenant_id: int,
        role: UserRole | str,
        event: str | Enum,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Send an event to one role within a hotel. Unknown roles raise ValueError."""
        return await self._dispatcher.broadcast_to_role(tenant_id, role, event, payload)

    async def broadcast_to_channel(
        self,
        tenant_id: int,
        channel: HotelChannel | str,
        event: str | Enum,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Send an event to a named hotel channel. Unknown channels raise ValueError."""
        return await self._dispatcher.broadcast_to_channel(tenant_id, channel, event, payload)

    def get_presence(self, tenant_id: int) -> PresenceSnapshot:
        """Count and identities of a hotel's live connections."""
        return PresenceSnapshot(
            tenant_id=tenant_id,
            count=self._registry.count(tenant_id),
            identities=self._registry.list_identities(tenant_id),
        )

    # =========================================================================
    # Stats and shutdown
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "registry": self._registry.get_stats(),
            "channels": self._channels.get_stats(),
            "broadcast": self._dispatcher.get_stats(),
            "shutting_down": self._lifecycle.is_shutdown,
        }
        get_directory_stats = getattr(self._user_directory, "get_stats", None)
        if callable(get_directory_stats):
            stats["user_lookups"] = get_directory_stats()
        return stats

    def is_shutting_down(self) -> bool:
        return self._lifecycle.is_shutdown

    async def shutdown(self) -> int:
        """Graceful shutdown - close and release all connections."""
        self._lifecycle.set_shutdown(True)
        logger.info("WebSocket manager shutting down...")

        connection_ids = self._registry.connection_ids()
        results = await asyncio.gather(
            *[
                self._lifecycle.terminate(cid, WSCloseCode.GOING_AWAY, "Server shutdown")
                for cid in connection_ids
            ],
            return_exceptions=True,
        )
        closed = sum(1 for r in results if r is True)

        logger.info("WebSocket shutdown complete", closed=closed)
        return closed
