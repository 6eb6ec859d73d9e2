"""
Notification fan-out for hotel business events.

Each helper maps one business change to the hotel, role and channel
broadcasts staff dashboards expect. Helpers return the number of deliveries
so callers can log them; a hotel with nobody online yields 0.

Usage:
    await notify_guest_checked_out(manager, hotel_id, {"bookingId": 12, "roomNumber": "204"})
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from shared.config.logging import get_logger
from ws_gateway.components.core.constants import UserRole
from ws_gateway.components.events.types import HotelEventType

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager

logger = get_logger(__name__)

__all__ = [
    "notify_room_status_changed",
    "notify_task_completed",
    "notify_booking_created",
    "notify_guest_checked_in",
    "notify_guest_checked_out",
    "notify_hotel_status_changed",
    "notify_dashboard_updated",
]

MANAGEMENT_ROLES: tuple[UserRole, ...] = (UserRole.HOTEL_MANAGER, UserRole.HOTEL_OWNER)


async def _to_roles(
    manager: "ConnectionManager",
    hotel_id: int,
    roles: tuple[UserRole, ...],
    event: HotelEventType,
    payload: dict[str, Any],
) -> int:
    sent = 0
    for role in roles:
        sent += await manager.broadcast_to_role(hotel_id, role, event, payload)
    return sent


async def notify_room_status_changed(
    manager: "ConnectionManager",
    hotel_id: int,
    room: dict[str, Any],
    status: str,
    previous_status: str | None = None,
) -> int:
    """
    Room status change.

    Everyone sees room_status_updated. Targeted follow-ups depend on the
    transition:
    - cleaning -> available: front desk and managers, room_ready_for_booking
    - occupied -> dirty: housekeeping, room_needs_cleaning
    - any -> cleaning: managers, cleaning_started
    - any -> maintenance: whole hotel, room_maintenance_required
    """
    payload = {**room, "status": status, "previousStatus": previous_status}
    sent = await manager.broadcast_to_tenant(hotel_id, HotelEventType.ROOM_STATUS_UPDATED, payload)

    if status == "available" and previous_status == "cleaning":
        sent += await _to_roles(
            manager,
            hotel_id,
            (UserRole.FRONT_DESK, UserRole.HOTEL_MANAGER),
            HotelEventType.ROOM_READY_FOR_BOOKING,
            payload,
        )
    elif status == "dirty" and previous_status == "occupied":
        sent += await manager.broadcast_to_role(
            hotel_id, UserRole.HOUSEKEEPING, HotelEventType.ROOM_NEEDS_CLEANING, payload
        )
    elif status == "cleaning":
        sent += await manager.broadcast_to_role(
            hotel_id, UserRole.HOTEL_MANAGER, HotelEventType.CLEANING_STARTED, payload
        )
    elif status == "maintenance":
        sent += await manager.broadcast_to_tenant(
            hotel_id, HotelEventType.ROOM_MAINTENANCE_REQUIRED, payload
        )

    logger.info(
        "Room status change broadcast",
        hotel_id=hotel_id,
        status=status,
        previous_status=previous_status,
        sent=sent,
    )
    return sent


async def notify_task_completed(
    manager: "ConnectionManager",
    hotel_id: int,
    task: dict[str, Any],
    priority: str | None = None,
    task_type: str | None = None,
    room_status: str | None = None,
) -> int:
    """
    Task completion.

    Managers and owners always hear about it. Urgent tasks are announced to
    the whole hotel. A cleaning task on a dirty room tells the front desk
    the room is ready.
    """
    payload = dict(task)
    sent = await _to_roles(manager, hotel_id, MANAGEMENT_ROLES, HotelEventType.TASK_COMPLETED, payload)

    if priority == "urgent":
        sent += await manager.broadcast_to_tenant(hotel_id, HotelEventType.URGENT_TASK_COMPLETED, payload)

    if task_type == "cleaning" and room_status == "dirty":
        sent += await manager.broadcast_to_role(
            hotel_id,
            UserRole.FRONT_DESK,
            HotelEventType.ROOM_CLEANED_AND_READY,
            {**payload, "newRoomStatus": "available"},
        )

    logger.info("Task completion broadcast", hotel_id=hotel_id, priority=priority, sent=sent)
    return sent


async def notify_booking_created(
    manager: "ConnectionManager",
    hotel_id: int,
    booking: dict[str, Any],
) -> int:
    payload = dict(booking)
    sent = await manager.broadcast_to_tenant(hotel_id, HotelEventType.NEW_BOOKING_CREATED, payload)
    sent += await _to_roles(
        manager,
        hotel_id,
        (UserRole.HOTEL_MANAGER, UserRole.FRONT_DESK),
        HotelEventType.BOOKING_MANAGEMENT_UPDATE,
        payload,
    )
    return sent


async def notify_guest_checked_in(
    manager: "ConnectionManager",
    hotel_id: int,
    check_in: dict[str, Any],
) -> int:
    payload = dict(check_in)
    sent = await manager.broadcast_to_tenant(hotel_id, HotelEventType.GUEST_CHECKED_IN, payload)
    sent += await manager.broadcast_to_role(
        hotel_id, UserRole.HOUSEKEEPING, HotelEventType.ROOM_OCCUPIED, payload
    )
    return sent


async def notify_guest_checked_out(
    manager: "ConnectionManager",
    hotel_id: int,
    check_out: dict[str, Any],
) -> int:
    """Check-out: hotel-wide notice, urgent cleaning for housekeeping, summary for managers."""
    payload = dict(check_out)
    sent = await manager.broadcast_to_tenant(hotel_id, HotelEventType.GUEST_CHECKED_OUT, payload)
    sent += await manager.broadcast_to_role(
        hotel_id, UserRole.HOUSEKEEPING, HotelEventType.ROOM_NEEDS_URGENT_CLEANING, payload
    )
    sent += await manager.broadcast_to_role(
        hotel_id, UserRole.HOTEL_MANAGER, HotelEventType.CHECKOUT_COMPLETED, payload
    )
    return sent


async def notify_hotel_status_changed(
    manager: "ConnectionManager",
    hotel_id: int,
    suspended: bool,
    details: dict[str, Any] | None = None,
) -> int:
    """
    Platform suspended or reactivated a hotel.

    Connected staff of a suspended hotel receive the notice but are not
    disconnected; new connections are refused at authentication.
    """
    event = HotelEventType.HOTEL_SUSPENDED if suspended else HotelEventType.HOTEL_REACTIVATED
    sent = await manager.broadcast_to_tenant(hotel_id, event, dict(details or {}))
    logger.info("Hotel status broadcast", hotel_id=hotel_id, event=event.value, sent=sent)
    return sent


async def notify_dashboard_updated(
    manager: "ConnectionManager",
    hotel_id: int,
    dashboard: dict[str, Any],
) -> int:
    return await _to_roles(
        manager, hotel_id, MANAGEMENT_ROLES, HotelEventType.DASHBOARD_UPDATED, dict(dashboard)
    )
