"""
Broadcast Dispatcher.

Delivers events to a hotel, to a role within a hotel, to a named channel
within a hotel, or to a single connection.

Every frame has the shape:

    {"type": "<event>", "payload": {...caller payload, "timestamp": "<ISO-8601 UTC>"}}

Recipients are snapshotted synchronously before the first send, so a
connection that registers while a broadcast is in flight is not included
and one that leaves mid-broadcast is skipped. Delivery is best-effort and
at-most-once per live recipient: no acknowledgements, no retries.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TYPE_CHECKING

from starlette.websockets import WebSocketState

from shared.config.logging import get_logger
from ws_gateway.components.broadcast.tenant_filter import TenantFilter
from ws_gateway.components.connection.channels import ChannelGroup, TenantGroup
from ws_gateway.components.core.constants import HotelChannel, UserRole, WSConstants

if TYPE_CHECKING:
    from fastapi import WebSocket
    from ws_gateway.components.connection.channels import ChannelManager
    from ws_gateway.components.connection.index import PresenceRegistry

logger = get_logger(__name__)


def is_ws_connected(ws: "WebSocket") -> bool:
    """
    Check if WebSocket is in connected state before sending.

    Starlette only exposes CONNECTING/CONNECTED/DISCONNECTED, so a socket
    may look connected briefly after the peer started closing.
    """
    return (
        ws.client_state == WebSocketState.CONNECTED
        and ws.application_state == WebSocketState.CONNECTED
    )


def _event_name(event: str | Enum) -> str:
    return event.value if isinstance(event, Enum) else str(event)


class BroadcastDispatcher:
    """
    Sends events to groups of connections.

    All public methods return the number of recipients the event reached.
    An empty target is a no-op returning 0.
    """

    def __init__(
        self,
        registry: "PresenceRegistry",
        channels: "ChannelManager",
        batch_size: int = WSConstants.BROADCAST_BATCH_SIZE,
        send_timeout: float = WSConstants.SEND_TIMEOUT,
    ) -> None:
        """
        Initialize dispatcher with its collaborators.

        Args:
            registry: Presence registry (source of live connections).
            channels: Channel manager (source of group memberships).
            batch_size: Connections sent to in parallel per batch.
            send_timeout: Seconds allowed for a single send.
        """
        self._registry = registry
        self._channels = channels
        self._tenant_filter = TenantFilter(registry)
        self._batch_size = batch_size
        self._send_timeout = send_timeout
        self._last_timestamp: datetime | None = None

        self._broadcast_total = 0
        self._sent_total = 0
        self._failed_total = 0

    # =========================================================================
    # Envelope
    # =========================================================================

    def _next_timestamp(self) -> str:
        """Current UTC time, never earlier than the previous one issued."""
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now.isoformat()

    def build_message(self, event: str | Enum, payload: dict[str, Any] | None) -> dict[str, Any]:
        """
        Wrap a payload in the outbound envelope.

        The timestamp is assigned here and overrides any "timestamp" key the
        caller supplied.
        """
        body = dict(payload or {})
        body["timestamp"] = self._next_timestamp()
        return {"type": _event_name(event), "payload": body}

    # =========================================================================
    # Sending
    # =========================================================================

    async def _send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        """
        Send to a single connection, returning success status.

        A connection that left the registry, or whose socket is no longer
        connected, is skipped.
        """
        connection = self._registry.get(connection_id)
        if connection is None:
            return False

        ws = connection.websocket
        if not is_ws_connected(ws):
            return False

        try:
            await asyncio.wait_for(ws.send_json(message), timeout=self._send_timeout)
            return True
        except Exception as e:
            logger.debug(
                "Send failed",
                connection_id=connection_id,
                error=type(e).__name__,
            )
            return False

    async def _broadcast_to_connections(
        self,
        connection_ids: list[str],
        message: dict[str, Any],
        context: str,
    ) -> int:
        """
        Send to multiple connections in parallel batches.

        Returns:
            Number of connections that received the message.
        """
        if not connection_ids:
            return 0

        sent = 0
        failed = 0

        for i in range(0, len(connection_ids), self._batch_size):
            batch = connection_ids[i : i + self._batch_size]
            results = await asyncio.gather(
                *[self._send_to_connection(cid, message) for cid in batch],
                return_exceptions=True,
            )
            for result in results:
                if result is True:
                    sent += 1
                else:
                    failed += 1

        self._broadcast_total += 1
        self._sent_total += sent
        self._failed_total += failed

        if failed > 0:
            logger.debug(
                "Broadcast completed with failures",
                context=context,
                event=message.get("type"),
                sent=sent,
                failed=failed,
                total=len(connection_ids),
            )

        return sent

    # =========================================================================
    # Targets
    # =========================================================================

    async def broadcast_to_tenant(
        self,
        tenant_id: int,
        event: str | Enum,
        payload: dict[str, Any] | None = None,
        exclude: str | None = None,
    ) -> int:
        """
        Send to every live connection of a hotel.

        Args:
            tenant_id: Target hotel.
            event: Event name.
            payload: Event payload.
            exclude: Optional connection id to leave out (the originator).
        """
        recipients = [
            cid for cid in self._channels.members(TenantGroup(tenant_id))
            if cid != exclude
        ]
        recipients = self._tenant_filter.filter_connections(recipients, tenant_id)
        return await self._broadcast_to_connections(
            recipients, self.build_message(event, payload), f"tenant:{tenant_id}"
        )

    async def broadcast_to_role(
        self,
        tenant_id: int,
        role: UserRole | str,
        event: str | Enum,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """
        Send to the hotel's live connections whose role matches.

        Raises:
            ValueError: If role is not a known UserRole.
        """
        target_role = UserRole.parse(role)
        recipients = [
            c.connection_id
            for c in self._registry.connections_for_tenant(tenant_id)
            if c.role == target_role
        ]
        recipients = self._tenant_filter.filter_connections(recipients, tenant_id)
        return await self._broadcast_to_connections(
            recipients,
            self.build_message(event, payload),
            f"role:{tenant_id}:{target_role.value}",
        )

    async def broadcast_to_channel(
        self,
        tenant_id: int,
        channel: HotelChannel | str,
        event: str | Enum,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """
        Send to members of one of the hotel's named channels.

        Raises:
            ValueError: If channel is not on the HotelChannel allow-list.
        """
        group = ChannelGroup(tenant_id, HotelChannel.parse(channel))
        recipients = sorted(self._channels.members(group))
        recipients = self._tenant_filter.filter_connections(recipients, tenant_id)
        return await self._broadcast_to_connections(
            recipients, self.build_message(event, payload), f"channel:{group.name}"
        )

    async def send_to_connection(
        self,
        connection_id: str,
        event: str | Enum,
        payload: dict[str, Any] | None = None,
    ) -> bool:
        """Send one event to one connection (acknowledgements)."""
        return await self._send_to_connection(connection_id, self.build_message(event, payload))

    def get_stats(self) -> dict[str, Any]:
        return {
            "broadcast_total": self._broadcast_total,
            "sent_total": self._sent_total,
            "failed_total": self._failed_total,
            "tenant_filtered": self._tenant_filter.filtered_count,
        }
