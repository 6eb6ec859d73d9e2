"""
Tests for connection admission, announcements and release through the
ConnectionManager.
"""

import pytest

from shared.security.auth import sign_jwt
from ws_gateway.components.auth.strategies import AuthFailureReason
from ws_gateway.components.core.constants import UserRole, WSCloseCode
from ws_gateway.components.core.context import ConnectionState
from tests.conftest import FRONT_DESK_ID, FakeWebSocket, make_identity, token_for


async def _connect(manager, user_id, tenant_id=1, role=UserRole.FRONT_DESK, **ws_kwargs):
    ws = FakeWebSocket(**ws_kwargs)
    connection = await manager.connect(ws, make_identity(user_id, tenant_id, role))
    return connection, ws


class TestAdmission:
    @pytest.mark.asyncio
    async def test_connected_ack(self, manager):
        connection, ws = await _connect(manager, 3, role=UserRole.FRONT_DESK)

        assert connection is not None
        assert ws.event_types() == ["connected"]
        payload = ws.sent[0]["payload"]
        assert payload["message"] == "Connected to hotel management system"
        assert payload["connection_id"] == connection.connection_id
        assert payload["user"] == {"id": 3, "name": "Staff 3", "role": "front_desk", "hotel_id": 1}
        assert "timestamp" in payload
        assert manager.get_presence(1).count == 1

    @pytest.mark.asyncio
    async def test_arrival_announced_to_others_only(self, manager):
        _, first_ws = await _connect(manager, 1)
        _, second_ws = await _connect(manager, 2, role=UserRole.HOUSEKEEPING)
        _, other_hotel_ws = await _connect(manager, 5, tenant_id=2)

        assert first_ws.event_types() == ["connected", "user_connected"]
        assert first_ws.events("user_connected")[0]["payload"]["user_id"] == 2
        assert first_ws.events("user_connected")[0]["payload"]["user_role"] == "housekeeping"
        assert second_ws.event_types() == ["connected"]
        assert other_hotel_ws.event_types() == ["connected"]

    @pytest.mark.asyncio
    async def test_failed_ack_is_not_admitted(self, manager):
        _, peer_ws = await _connect(manager, 1)

        connection, _ = await _connect(manager, 2, fail_send=True)

        assert connection is None
        assert manager.get_presence(1).count == 1
        assert manager.channels.get_stats()["connections_with_memberships"] == 1
        # Never announced, so never announced as leaving either
        assert peer_ws.event_types() == ["connected"]

    @pytest.mark.asyncio
    async def test_socket_gone_before_admission(self, manager):
        ws = FakeWebSocket()
        await ws.close()

        assert await manager.connect(ws, make_identity(1)) is None
        assert manager.total_connections == 0

    @pytest.mark.asyncio
    async def test_platform_admin_is_tracked_but_silent(self, manager):
        _, staff_ws = await _connect(manager, 1)
        admin, admin_ws = await _connect(manager, 9, tenant_id=None, role=UserRole.PLATFORM_ADMIN)

        assert admin is not None
        assert admin_ws.event_types() == ["connected"]
        assert manager.total_connections == 2
        assert manager.get_presence(1).count == 1
        assert staff_ws.event_types() == ["connected"]

        await manager.broadcast_to_tenant(1, "room_status_updated", {})
        assert admin_ws.event_types() == ["connected"]


class TestRelease:
    @pytest.mark.asyncio
    async def test_release_decrements_and_announces(self, manager):
        _, stay_ws = await _connect(manager, 1)
        leaving, _ = await _connect(manager, 2)
        stay_ws.sent.clear()

        assert await manager.disconnect(leaving.connection_id) is True

        assert manager.get_presence(1).count == 1
        assert leaving.state is ConnectionState.DISCONNECTED
        assert stay_ws.event_types() == ["user_disconnected"]
        assert stay_ws.sent[0]["payload"] == {
            "user_id": 2,
            "user_name": "Staff 2",
            "user_role": "front_desk",
            "timestamp": stay_ws.sent[0]["payload"]["timestamp"],
        }

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self, manager):
        _, stay_ws = await _connect(manager, 1)
        leaving, _ = await _connect(manager, 2)
        stay_ws.sent.clear()

        assert await manager.disconnect(leaving.connection_id) is True
        assert await manager.disconnect(leaving.connection_id) is False

        assert manager.get_presence(1).count == 1
        assert stay_ws.event_types() == ["user_disconnected"]

    @pytest.mark.asyncio
    async def test_release_leaves_every_group(self, manager):
        connection, _ = await _connect(manager, 1)
        await manager.join_channel(connection.connection_id, "room_updates")

        await manager.disconnect(connection.connection_id)

        assert manager.channels.groups_for(connection.connection_id) == set()
        assert manager.channels.get_stats()["groups_count"] == 0

    @pytest.mark.asyncio
    async def test_last_connection_leaves_empty_presence(self, manager):
        connection, _ = await _connect(manager, 1, tenant_id=8)

        await manager.disconnect(connection.connection_id)

        snapshot = manager.get_presence(8)
        assert snapshot.count == 0
        assert snapshot.identities == []
        assert 8 not in manager.registry.by_tenant


class TestChannels:
    @pytest.mark.asyncio
    async def test_join_room_confirms_and_receives(self, manager):
        member, member_ws = await _connect(manager, 1)
        _, other_ws = await _connect(manager, 2)
        member_ws.sent.clear()
        other_ws.sent.clear()

        group = await manager.join_channel(member.connection_id, "housekeeping")

        assert group is not None
        assert member_ws.events("room_joined")[0]["payload"]["room"] == "housekeeping"

        sent = await manager.broadcast_to_channel(1, "housekeeping", "room_needs_cleaning", {"roomId": 4})
        assert sent == 1
        assert other_ws.sent == []

    @pytest.mark.asyncio
    async def test_unknown_room_ignored(self, manager):
        member, member_ws = await _connect(manager, 1)
        member_ws.sent.clear()

        assert await manager.join_channel(member.connection_id, "hotel_2") is None
        assert member_ws.sent == []

    @pytest.mark.asyncio
    async def test_join_for_unknown_connection(self, manager):
        assert await manager.join_channel("missing", "front_desk") is None


class TestAuthenticateAndShutdown:
    @pytest.mark.asyncio
    async def test_lookup_failure_maps_to_server_error(self, manager, directory):
        directory.error = ConnectionError("database down")

        result = await manager.authenticate(token_for(FRONT_DESK_ID))

        assert result.success is False
        assert result.reason is AuthFailureReason.LOOKUP_FAILED
        assert result.close_code == WSCloseCode.SERVER_ERROR

    @pytest.mark.asyncio
    async def test_expired_credential_is_not_admitted(self, manager):
        _, peer_ws = await _connect(manager, 1)
        expired = sign_jwt({"sub": str(FRONT_DESK_ID), "tenant_id": 1}, ttl_seconds=-1)

        result = await manager.authenticate(expired)

        assert result.success is False
        assert result.reason is AuthFailureReason.INVALID_CREDENTIAL
        assert result.close_code == WSCloseCode.AUTH_FAILED
        assert manager.get_presence(1).count == 1
        assert peer_ws.event_types() == ["connected"]

    @pytest.mark.asyncio
    async def test_shutdown_closes_everything(self, manager):
        _, first_ws = await _connect(manager, 1)
        _, second_ws = await _connect(manager, 5, tenant_id=2)

        closed = await manager.shutdown()

        assert closed == 2
        assert first_ws.close_code == WSCloseCode.GOING_AWAY
        assert second_ws.close_code == WSCloseCode.GOING_AWAY
        assert manager.total_connections == 0
        assert manager.is_shutting_down() is True

        late, _ = await _connect(manager, 2)
        assert late is None

    @pytest.mark.asyncio
    async def test_stats(self, manager):
        await _connect(manager, 1)

        stats = manager.get_stats()

        assert stats["registry"]["total_connections"] == 1
        assert stats["broadcast"]["failed_total"] == 0
        assert stats["shutting_down"] is False
