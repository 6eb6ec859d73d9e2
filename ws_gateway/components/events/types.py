"""
Hotel event catalog.

Business events pushed to staff dashboards. Protocol events produced by the
gateway itself (connected, user_connected, ...) live in
components.core.constants.ProtocolEvent.
"""

from __future__ import annotations

from enum import Enum


class HotelEventType(str, Enum):
    """
    Event names sent in the "type" field of outbound messages.

    Grouped by the business change that produces them.
    """

    # Room status
    ROOM_STATUS_UPDATED = "room_status_updated"
    ROOM_READY_FOR_BOOKING = "room_ready_for_booking"
    ROOM_NEEDS_CLEANING = "room_needs_cleaning"
    CLEANING_STARTED = "cleaning_started"
    ROOM_MAINTENANCE_REQUIRED = "room_maintenance_required"

    # Tasks
    TASK_COMPLETED = "task_completed"
    URGENT_TASK_COMPLETED = "urgent_task_completed"
    ROOM_CLEANED_AND_READY = "room_cleaned_and_ready"

    # Bookings and guests
    NEW_BOOKING_CREATED = "new_booking_created"
    BOOKING_MANAGEMENT_UPDATE = "booking_management_update"
    GUEST_CHECKED_IN = "guest_checked_in"
    ROOM_OCCUPIED = "room_occupied"
    GUEST_CHECKED_OUT = "guest_checked_out"
    ROOM_NEEDS_URGENT_CLEANING = "room_needs_urgent_cleaning"
    CHECKOUT_COMPLETED = "checkout_completed"

    # Hotel account
    HOTEL_SUSPENDED = "hotel_suspended"
    HOTEL_REACTIVATED = "hotel_reactivated"

    # Manager dashboard
    DASHBOARD_UPDATED = "dashboard_updated"

    # Diagnostics
    TEST_HOTEL_MESSAGE = "test_hotel_message"
    TEST_ROLE_MESSAGE = "test_role_message"


VALID_EVENT_TYPES: frozenset[str] = frozenset(e.value for e in HotelEventType)


__all__ = ["HotelEventType", "VALID_EVENT_TYPES"]
