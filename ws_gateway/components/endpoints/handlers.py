"""
Concrete WebSocket Endpoint Implementations.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastapi import WebSocket

from shared.config.logging import get_logger
from ws_gateway.components.core.constants import MSG_JOIN_ROOM
from ws_gateway.components.core.context import Connection, ConnectionIdentity, sanitize_log_data
from ws_gateway.components.endpoints.base import JWTWebSocketEndpoint

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager

logger = get_logger(__name__)


class HotelStaffEndpoint(JWTWebSocketEndpoint):
    """
    WebSocket endpoint for hotel staff dashboards.

    Features:
    - JWT authentication; identity loaded from the users table
    - Implicit hotel and role groups
    - join_room command for the named hotel channels

    Client messages:
        "ping" / {"type": "ping"}                -> {"type": "pong"}
        {"type": "join_room", "room": "<name>"}  -> room_joined (known names only)
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        token: str | None,
        **kwargs,
    ):
        super().__init__(
            websocket=websocket,
            manager=manager,
            endpoint_name="/ws",
            token=token,
            **kwargs,
        )

    async def register_connection(self, identity: ConnectionIdentity) -> Connection | None:
        return await self.manager.connect(self.websocket, identity)

    async def unregister_connection(self) -> None:
        if self.connection is not None:
            await self.manager.disconnect(self.connection.connection_id)

    async def handle_message(self, data: str) -> None:
        """Handle join_room; anything else is logged and dropped."""
        try:
            message = json.loads(data)
        except ValueError:
            message = None

        if not isinstance(message, dict) or message.get("type") != MSG_JOIN_ROOM:
            await super().handle_message(data)
            return

        room = message.get("room")
        if not isinstance(room, str) or self.connection is None:
            logger.debug(
                "Malformed join_room ignored",
                connection_id=self.connection_id,
                message=sanitize_log_data(data),
            )
            return

        await self.manager.join_channel(self.connection.connection_id, room)
