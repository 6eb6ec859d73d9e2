"""
Presence Registry - who is connected, per hotel.

Indices maintained:
- by_tenant: tenant_id -> set[connection_id]
- connections: connection_id -> Connection (identity index)

Both structures change together inside register()/deregister(), which
never await, so on a single event loop no caller can observe one without
the other. Empty tenant sets are deleted immediately.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any

from shared.config.logging import get_logger
from ws_gateway.components.core.context import Connection, ConnectionIdentity

logger = get_logger(__name__)


class PresenceRegistry:
    """
    Tracks live connections and the hotel each belongs to.

    Connections without a tenant (platform administrators) are indexed by
    id but never appear in any tenant's presence.

    Usage:
        registry = PresenceRegistry()
        registry.register(connection)
        registry.count(tenant_id=3)
        registry.deregister(connection.connection_id)
    """

    def __init__(self) -> None:
        self._by_tenant: dict[int, set[str]] = {}
        self._connections: dict[str, Connection] = {}

    # =========================================================================
    # Immutable views
    # =========================================================================

    @property
    def by_tenant(self) -> MappingProxyType[int, set[str]]:
        """Connection ids indexed by tenant (immutable view)."""
        return MappingProxyType(self._by_tenant)

    @property
    def total_connections(self) -> int:
        """Total number of live connections, tenantless ones included."""
        return len(self._connections)

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, connection: Connection) -> None:
        """
        Add a connection under its tenant.

        Raises:
            ValueError: If the connection id is already registered.
        """
        connection_id = connection.connection_id
        if connection_id in self._connections:
            raise ValueError(f"Connection {connection_id} is already registered")

        self._connections[connection_id] = connection
        tenant_id = connection.tenant_id
        if tenant_id is not None:
            self._by_tenant.setdefault(tenant_id, set()).add(connection_id)

        logger.debug(
            "Connection registered",
            connection_id=connection_id,
            tenant_id=tenant_id,
            user_id=connection.identity.user_id,
        )

    def deregister(self, connection_id: str) -> Connection | None:
        """
        Remove a connection from the tenant set and the identity index.

        Returns:
            The removed Connection, or None if it was not registered.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None

        tenant_id = connection.tenant_id
        if tenant_id is not None and tenant_id in self._by_tenant:
            members = self._by_tenant[tenant_id]
            members.discard(connection_id)
            if not members:
                del self._by_tenant[tenant_id]

        logger.debug(
            "Connection deregistered",
            connection_id=connection_id,
            tenant_id=tenant_id,
        )
        return connection

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def get_tenant_id(self, connection_id: str) -> int | None:
        """Tenant of a live connection, None if unknown or tenantless."""
        connection = self._connections.get(connection_id)
        return connection.tenant_id if connection else None

    def count(self, tenant_id: int) -> int:
        """Number of live connections for a tenant (0 for unknown tenants)."""
        return len(self._by_tenant.get(tenant_id, ()))

    def list_identities(self, tenant_id: int) -> list[ConnectionIdentity]:
        """Identities of the tenant's live connections, in no particular order."""
        return [
            self._connections[connection_id].identity
            for connection_id in self._by_tenant.get(tenant_id, ())
        ]

    def connections_for_tenant(self, tenant_id: int) -> list[Connection]:
        """Snapshot of the tenant's live connections."""
        return [
            self._connections[connection_id]
            for connection_id in self._by_tenant.get(tenant_id, ())
        ]

    def connection_ids(self) -> list[str]:
        """Snapshot of every live connection id."""
        return list(self._connections)

    def get_stats(self) -> dict[str, Any]:
        """Registry statistics for monitoring."""
        return {
            "total_connections": len(self._connections),
            "tenants_count": len(self._by_tenant),
            "tenantless_connections": sum(
                1 for c in self._connections.values() if c.tenant_id is None
            ),
        }
