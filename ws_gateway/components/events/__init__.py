"""
Event handling components.

Hotel event catalog and the fan-out rules that map business changes to
hotel, role and channel broadcasts.
"""

from ws_gateway.components.events.types import HotelEventType, VALID_EVENT_TYPES
from ws_gateway.components.events.notifications import (
    notify_booking_created,
    notify_dashboard_updated,
    notify_guest_checked_in,
    notify_guest_checked_out,
    notify_hotel_status_changed,
    notify_room_status_changed,
    notify_task_completed,
)

__all__ = [
    "HotelEventType",
    "VALID_EVENT_TYPES",
    "notify_booking_created",
    "notify_dashboard_updated",
    "notify_guest_checked_in",
    "notify_guest_checked_out",
    "notify_hotel_status_changed",
    "notify_room_status_changed",
    "notify_task_completed",
]
