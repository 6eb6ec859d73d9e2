"""
Room/Channel Manager - named broadcast groups within a hotel.

Group kinds:
- TenantGroup(tenant_id): everyone connected to the hotel (implicit)
- RoleGroup(tenant_id, role): everyone with that role in the hotel (implicit)
- ChannelGroup(tenant_id, channel): explicit sub-channel from HotelChannel

Every group key embeds the tenant, so tenant 1's housekeeping channel and
tenant 2's housekeeping channel are distinct groups by construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from shared.config.logging import get_logger
from ws_gateway.components.core.constants import HotelChannel, UserRole
from ws_gateway.components.core.context import ConnectionIdentity, sanitize_log_data

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TenantGroup:
    tenant_id: int

    @property
    def name(self) -> str:
        return f"hotel_{self.tenant_id}"


@dataclass(frozen=True, slots=True)
class RoleGroup:
    tenant_id: int
    role: UserRole

    @property
    def name(self) -> str:
        return f"hotel_{self.tenant_id}_role_{self.role.value}"


@dataclass(frozen=True, slots=True)
class ChannelGroup:
    tenant_id: int
    channel: HotelChannel

    @property
    def name(self) -> str:
        return f"hotel_{self.tenant_id}_{self.channel.value}"


Group = Union[TenantGroup, RoleGroup, ChannelGroup]


class ChannelManager:
    """
    Membership of connections in tenant, role and channel groups.

    Indices:
    - members: Group -> set[connection_id]
    - memberships: connection_id -> set[Group] (reverse, for leave_all)
    """

    def __init__(self) -> None:
        self._members: dict[Group, set[str]] = {}
        self._memberships: dict[str, set[Group]] = {}

    def _add(self, connection_id: str, group: Group) -> None:
        self._members.setdefault(group, set()).add(connection_id)
        self._memberships.setdefault(connection_id, set()).add(group)

    # =========================================================================
    # Membership changes
    # =========================================================================

    def join_implicit(self, connection_id: str, identity: ConnectionIdentity) -> list[Group]:
        """
        Join the hotel-wide and role groups for a newly registered connection.

        Tenantless connections join nothing.

        Returns:
            The groups joined.
        """
        if identity.tenant_id is None:
            return []

        groups: list[Group] = [
            TenantGroup(identity.tenant_id),
            RoleGroup(identity.tenant_id, identity.role),
        ]
        for group in groups:
            self._add(connection_id, group)
        return groups

    def join(
        self,
        connection_id: str,
        tenant_id: int | None,
        channel_name: str,
    ) -> ChannelGroup | None:
        """
        Join an explicit channel of the connection's own hotel.

        Names outside HotelChannel are ignored without touching memberships,
        as are requests from tenantless connections.

        Returns:
            The joined ChannelGroup, or None if the request was ignored.
        """
        if tenant_id is None:
            logger.debug("Channel join ignored for tenantless connection", connection_id=connection_id)
            return None

        try:
            channel = HotelChannel.parse(channel_name)
        except ValueError:
            logger.debug(
                "Unknown channel join ignored",
                connection_id=connection_id,
                channel=sanitize_log_data(str(channel_name), max_length=50),
            )
            return None

        group = ChannelGroup(tenant_id, channel)
        self._add(connection_id, group)
        return group

    def leave_all(self, connection_id: str) -> int:
        """
        Drop every membership of a connection. Empty groups are deleted.

        Returns:
            Number of groups left.
        """
        groups = self._memberships.pop(connection_id, set())
        for group in groups:
            members = self._members.get(group)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._members[group]
        return len(groups)

    # =========================================================================
    # Queries
    # =========================================================================

    def members(self, group: Group) -> set[str]:
        """Members of a group (returns copy for safety)."""
        return set(self._members.get(group, ()))

    def groups_for(self, connection_id: str) -> set[Group]:
        return set(self._memberships.get(connection_id, ()))

    def get_stats(self) -> dict[str, Any]:
        return {
            "groups_count": len(self._members),
            "channel_groups": sum(1 for g in self._members if isinstance(g, ChannelGroup)),
            "connections_with_memberships": len(self._memberships),
        }
