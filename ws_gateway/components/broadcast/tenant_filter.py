"""
Tenant Filter Service for WebSocket Gateway.

Last line of defense for multi-tenant isolation: before any frame leaves
the dispatcher, every recipient is checked against the presence registry
and dropped unless it belongs to the target hotel.
"""

from __future__ import annotations

from typing import Any, Protocol

from shared.config.logging import get_logger

logger = get_logger(__name__)


class TenantRegistry(Protocol):
    """Anything that maps connection ids to tenant ids."""

    def get_tenant_id(self, connection_id: str) -> int | None:
        """Get the tenant ID for a connection, or None if not tracked."""
        ...


class TenantFilter:
    """
    Filters connection ids by tenant.

    Security Guarantees:
    - Connections without tenant_id are always excluded
    - Tenant mismatches are counted and logged
    - No internal connection state (reads the registry)

    Usage:
        tenant_filter = TenantFilter(registry)
        recipients = tenant_filter.filter_connections(connection_ids, tenant_id=1)
    """

    def __init__(self, registry: TenantRegistry) -> None:
        self._registry = registry
        self._filtered_count = 0

    @property
    def filtered_count(self) -> int:
        """Total connections filtered out due to tenant mismatch."""
        return self._filtered_count

    def filter_connections(
        self,
        connection_ids: list[str],
        tenant_id: int,
    ) -> list[str]:
        """
        Keep only connections registered under tenant_id.

        Args:
            connection_ids: Candidate recipients.
            tenant_id: Target tenant.

        Returns:
            Filtered list, order preserved.
        """
        if not connection_ids:
            return []

        filtered = [
            cid for cid in connection_ids
            if self._registry.get_tenant_id(cid) == tenant_id
        ]

        excluded_count = len(connection_ids) - len(filtered)
        if excluded_count > 0:
            self._filtered_count += excluded_count
            logger.warning(
                "Tenant filter excluded connections",
                tenant_id=tenant_id,
                excluded=excluded_count,
                included=len(filtered),
            )

        return filtered

    def get_stats(self) -> dict[str, Any]:
        return {"filtered_count": self._filtered_count}
