"""
Tests for the business event fan-out helpers.

One connection per role in hotel 1 and a manager in hotel 2; each test
checks which staff members see which events.
"""

import pytest
import pytest_asyncio

from ws_gateway.components.core.constants import UserRole
from ws_gateway.components.events import (
    notify_booking_created,
    notify_dashboard_updated,
    notify_guest_checked_in,
    notify_guest_checked_out,
    notify_hotel_status_changed,
    notify_room_status_changed,
    notify_task_completed,
)
from tests.conftest import FakeWebSocket, make_identity


@pytest_asyncio.fixture
async def staff(manager):
    sockets = {}
    for user_id, tenant_id, role in [
        (1, 1, UserRole.HOTEL_OWNER),
        (2, 1, UserRole.HOTEL_MANAGER),
        (3, 1, UserRole.FRONT_DESK),
        (4, 1, UserRole.HOUSEKEEPING),
        (5, 2, UserRole.HOTEL_MANAGER),
    ]:
        ws = FakeWebSocket()
        await manager.connect(ws, make_identity(user_id, tenant_id, role))
        sockets[role.value if tenant_id == 1 else "other_hotel"] = ws
    for ws in sockets.values():
        ws.sent.clear()
    return sockets


class TestRoomStatus:
    @pytest.mark.asyncio
    async def test_cleaning_to_available(self, manager, staff):
        sent = await notify_room_status_changed(
            manager, 1, {"roomId": 7, "roomNumber": "107"}, "available", previous_status="cleaning"
        )

        assert staff["front_desk"].event_types() == ["room_status_updated", "room_ready_for_booking"]
        assert staff["hotel_manager"].event_types() == ["room_status_updated", "room_ready_for_booking"]
        assert staff["housekeeping"].event_types() == ["room_status_updated"]
        assert staff["other_hotel"].sent == []
        assert sent == 6

        payload = staff["front_desk"].sent[0]["payload"]
        assert payload["roomNumber"] == "107"
        assert payload["status"] == "available"
        assert payload["previousStatus"] == "cleaning"

    @pytest.mark.asyncio
    async def test_occupied_to_dirty(self, manager, staff):
        await notify_room_status_changed(manager, 1, {"roomId": 7}, "dirty", previous_status="occupied")

        assert staff["housekeeping"].event_types() == ["room_status_updated", "room_needs_cleaning"]
        assert staff["front_desk"].event_types() == ["room_status_updated"]

    @pytest.mark.asyncio
    async def test_cleaning_started(self, manager, staff):
        await notify_room_status_changed(manager, 1, {"roomId": 7}, "cleaning", previous_status="dirty")

        assert staff["hotel_manager"].event_types() == ["room_status_updated", "cleaning_started"]
        assert staff["hotel_owner"].event_types() == ["room_status_updated"]

    @pytest.mark.asyncio
    async def test_maintenance_goes_to_everyone(self, manager, staff):
        await notify_room_status_changed(manager, 1, {"roomId": 7}, "maintenance")

        for role in ("hotel_owner", "hotel_manager", "front_desk", "housekeeping"):
            assert staff[role].event_types() == ["room_status_updated", "room_maintenance_required"]
        assert staff["other_hotel"].sent == []


class TestTasks:
    @pytest.mark.asyncio
    async def test_routine_task(self, manager, staff):
        await notify_task_completed(manager, 1, {"taskId": 3}, priority="normal")

        assert staff["hotel_manager"].event_types() == ["task_completed"]
        assert staff["hotel_owner"].event_types() == ["task_completed"]
        assert staff["front_desk"].sent == []
        assert staff["housekeeping"].sent == []

    @pytest.mark.asyncio
    async def test_urgent_cleaning_task_on_dirty_room(self, manager, staff):
        await notify_task_completed(
            manager,
            1,
            {"taskId": 3, "roomNumber": "204"},
            priority="urgent",
            task_type="cleaning",
            room_status="dirty",
        )

        assert staff["hotel_manager"].event_types() == ["task_completed", "urgent_task_completed"]
        assert staff["front_desk"].event_types() == ["urgent_task_completed", "room_cleaned_and_ready"]
        ready = staff["front_desk"].events("room_cleaned_and_ready")[0]["payload"]
        assert ready["newRoomStatus"] == "available"
        assert ready["roomNumber"] == "204"


class TestBookingsAndGuests:
    @pytest.mark.asyncio
    async def test_booking_created(self, manager, staff):
        await notify_booking_created(manager, 1, {"bookingId": 12})

        assert staff["hotel_manager"].event_types() == ["new_booking_created", "booking_management_update"]
        assert staff["front_desk"].event_types() == ["new_booking_created", "booking_management_update"]
        assert staff["housekeeping"].event_types() == ["new_booking_created"]

    @pytest.mark.asyncio
    async def test_check_in(self, manager, staff):
        await notify_guest_checked_in(manager, 1, {"bookingId": 12})

        assert staff["housekeeping"].event_types() == ["guest_checked_in", "room_occupied"]
        assert staff["front_desk"].event_types() == ["guest_checked_in"]

    @pytest.mark.asyncio
    async def test_check_out(self, manager, staff):
        sent = await notify_guest_checked_out(manager, 1, {"bookingId": 12, "roomNumber": "204"})

        assert staff["housekeeping"].event_types() == ["guest_checked_out", "room_needs_urgent_cleaning"]
        assert staff["hotel_manager"].event_types() == ["guest_checked_out", "checkout_completed"]
        assert staff["hotel_owner"].event_types() == ["guest_checked_out"]
        assert staff["other_hotel"].sent == []
        assert sent == 6


class TestHotelAndDashboard:
    @pytest.mark.asyncio
    async def test_suspension_and_reactivation(self, manager, staff):
        await notify_hotel_status_changed(manager, 1, suspended=True, details={"reason": "billing"})
        await notify_hotel_status_changed(manager, 1, suspended=False)

        assert staff["front_desk"].event_types() == ["hotel_suspended", "hotel_reactivated"]
        assert staff["front_desk"].sent[0]["payload"]["reason"] == "billing"
        assert staff["other_hotel"].sent == []

    @pytest.mark.asyncio
    async def test_dashboard_only_for_management(self, manager, staff):
        sent = await notify_dashboard_updated(manager, 1, {"summary": {"totalTasks": 5}})

        assert sent == 2
        assert staff["hotel_owner"].event_types() == ["dashboard_updated"]
        assert staff["hotel_manager"].event_types() == ["dashboard_updated"]
        assert staff["front_desk"].sent == []

    @pytest.mark.asyncio
    async def test_empty_hotel(self, manager):
        assert await notify_guest_checked_in(manager, 77, {"bookingId": 1}) == 0
