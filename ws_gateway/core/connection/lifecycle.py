"""
Connection Lifecycle Management.

Drives a connection through its states:

    unauthenticated -> authenticating -> connected -> disconnected

and keeps the presence registry, channel memberships and the announcements
to the rest of the hotel consistent with those transitions.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from shared.config.logging import get_logger, mask_email
from ws_gateway.components.auth.strategies import AuthFailureReason, AuthResult
from ws_gateway.components.core.constants import ProtocolEvent, WSCloseCode
from ws_gateway.components.core.context import Connection, ConnectionIdentity, ConnectionState
from ws_gateway.core.connection.broadcaster import is_ws_connected

if TYPE_CHECKING:
    from fastapi import WebSocket
    from ws_gateway.components.auth.strategies import AuthStrategy
    from ws_gateway.components.connection.channels import ChannelGroup, ChannelManager
    from ws_gateway.components.connection.index import PresenceRegistry
    from ws_gateway.core.connection.broadcaster import BroadcastDispatcher

logger = get_logger(__name__)

WELCOME_MESSAGE = "Connected to hotel management system"


def _announcement(identity: ConnectionIdentity) -> dict[str, Any]:
    return {
        "user_id": identity.user_id,
        "user_name": identity.name,
        "user_role": identity.role.value,
    }


class ConnectionLifecycle:
    """
    Manages the lifecycle of WebSocket connections.

    Responsibilities:
    - Authenticate credentials without ever crashing the gateway
    - Register admitted connections and join their implicit groups
    - Acknowledge the client and announce arrivals/departures to the hotel
    - Release connections exactly once
    """

    def __init__(
        self,
        auth_strategy: "AuthStrategy",
        registry: "PresenceRegistry",
        channels: "ChannelManager",
        dispatcher: "BroadcastDispatcher",
    ) -> None:
        self._auth_strategy = auth_strategy
        self._registry = registry
        self._channels = channels
        self._dispatcher = dispatcher
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        """Whether shutdown has been initiated."""
        return self._shutdown

    def set_shutdown(self, value: bool) -> None:
        self._shutdown = value

    # =========================================================================
    # Authentication
    # =========================================================================

    async def authenticate(
        self,
        token: str | None,
        websocket: "WebSocket | None" = None,
    ) -> AuthResult:
        """
        Authenticate a credential.

        Errors raised by the strategy (database down, lookup timeout) are
        turned into a lookup_failed result.
        """
        try:
            return await self._auth_strategy.authenticate(token, websocket)
        except Exception as e:
            logger.error(
                "Authentication lookup failed",
                error=type(e).__name__,
                message=str(e),
            )
            return AuthResult.fail(
                AuthFailureReason.LOOKUP_FAILED,
                "Authentication service temporarily unavailable",
                close_code=WSCloseCode.SERVER_ERROR,
            )

    # =========================================================================
    # Admission
    # =========================================================================

    async def admit(
        self,
        websocket: "WebSocket",
        identity: ConnectionIdentity,
    ) -> Connection | None:
        """
        Register an authenticated connection and announce it.

        Steps:
        1. Refuse if shutting down or the socket already went away
        2. Register in presence and join the hotel and role groups
        3. Send "connected" to the client (released again if that fails)
        4. Send "user_connected" to the rest of the hotel

        Returns:
            The live Connection, or None if it was not admitted.
        """
        if self._shutdown:
            logger.info("Connection refused during shutdown", user_id=identity.user_id)
            return None

        if not is_ws_connected(websocket):
            logger.info(
                "Client left before admission completed",
                user_id=identity.user_id,
                tenant_id=identity.tenant_id,
            )
            return None

        connection = Connection(identity=identity, websocket=websocket)
        self._registry.register(connection)
        self._channels.join_implicit(connection.connection_id, identity)

        acknowledged = await self._dispatcher.send_to_connection(
            connection.connection_id,
            ProtocolEvent.CONNECTED,
            {
                "message": WELCOME_MESSAGE,
                "connection_id": connection.connection_id,
                "user": {
                    "id": identity.user_id,
                    "name": identity.name,
                    "role": identity.role.value,
                    "hotel_id": identity.tenant_id,
                },
            },
        )
        if not acknowledged:
            logger.info(
                "Connected acknowledgement not delivered, releasing",
                connection_id=connection.connection_id,
            )
            self._drop(connection.connection_id)
            return None

        logger.info(
            "Staff connected",
            connection_id=connection.connection_id,
            user_id=identity.user_id,
            tenant_id=identity.tenant_id,
            role=identity.role.value,
            email=mask_email(identity.email),
            tenant_connections=(
                self._registry.count(identity.tenant_id) if identity.tenant_id is not None else 0
            ),
        )

        if identity.tenant_id is not None:
            await self._dispatcher.broadcast_to_tenant(
                identity.tenant_id,
                ProtocolEvent.USER_CONNECTED,
                _announcement(identity),
                exclude=connection.connection_id,
            )

        return connection

    # =========================================================================
    # Channels
    # =========================================================================

    async def join_channel(self, connection_id: str, channel_name: str) -> "ChannelGroup | None":
        """
        Join one of the connection's hotel channels and confirm with "room_joined".

        Unknown channel names are ignored silently.
        """
        connection = self._registry.get(connection_id)
        if connection is None:
            return None

        group = self._channels.join(connection_id, connection.tenant_id, channel_name)
        if group is None:
            return None

        await self._dispatcher.send_to_connection(
            connection_id,
            ProtocolEvent.ROOM_JOINED,
            {"room": group.channel.value},
        )
        logger.debug("Channel joined", connection_id=connection_id, group=group.name)
        return group

    # =========================================================================
    # Release
    # =========================================================================

    def _drop(self, connection_id: str) -> Connection | None:
        """Remove from presence and every group without announcing."""
        connection = self._registry.deregister(connection_id)
        if connection is None:
            return None
        self._channels.leave_all(connection_id)
        connection.state = ConnectionState.DISCONNECTED
        return connection

    async def release(self, connection_id: str) -> bool:
        """
        Deregister a connection and tell the rest of the hotel.

        Idempotent: releasing an unknown or already released connection is
        a no-op.

        Returns:
            True if the connection was live and has been released.
        """
        connection = self._drop(connection_id)
        if connection is None:
            return False

        identity = connection.identity
        logger.info(
            "Staff disconnected",
            connection_id=connection_id,
            user_id=identity.user_id,
            tenant_id=identity.tenant_id,
        )

        if identity.tenant_id is not None:
            await self._dispatcher.broadcast_to_tenant(
                identity.tenant_id,
                ProtocolEvent.USER_DISCONNECTED,
                _announcement(identity),
            )
        return True

    async def terminate(
        self,
        connection_id: str,
        code: int = WSCloseCode.GOING_AWAY,
        reason: str = "",
    ) -> bool:
        """Close a connection from the server side, then release it."""
        connection = self._registry.get(connection_id)
        if connection is None:
            return False

        ws = connection.websocket
        if is_ws_connected(ws):
            try:
                await ws.close(code=code, reason=reason)
            except Exception as e:
                logger.debug(
                    "Error closing connection",
                    connection_id=connection_id,
                    error=type(e).__name__,
                )

        return await self.release(connection_id)
