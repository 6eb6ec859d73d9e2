"""
WebSocket Gateway Constants.

Centralized constants with documentation explaining each value.
Roles and channels are closed sets: values outside them are rejected where
they enter the gateway.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Final

from shared.config.logging import get_logger

__all__ = [
    "WSCloseCode",
    "WSConstants",
    "UserRole",
    "SubscriptionStatus",
    "HotelChannel",
    "ProtocolEvent",
    "MSG_PING_PLAIN",
    "MSG_PING_JSON",
    "MSG_PONG_JSON",
    "MSG_JOIN_ROOM",
    "validate_websocket_origin",
]

logger = get_logger(__name__)


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the gateway.

    Standard codes (1000-1999) from RFC 6455.
    Custom codes (4000-4999) for application-specific errors.
    """

    # Standard codes (RFC 6455)
    NORMAL = 1000  # Normal closure
    GOING_AWAY = 1001  # Server shutting down or client navigating away
    POLICY_VIOLATION = 1008  # Generic policy violation
    MESSAGE_TOO_BIG = 1009  # Message too large to process
    SERVER_ERROR = 1011  # Unexpected server error (includes failed user lookup)

    # Custom application codes (4000-4999)
    AUTH_FAILED = 4001  # Token missing, invalid or expired
    FORBIDDEN = 4003  # Valid token but inactive user, inactive hotel or bad origin


class WSConstants:
    """
    WebSocket Gateway operational constants.

    These are defaults used when settings are not available. At runtime the
    endpoints and dispatcher read shared.config.settings, which can override
    them via environment variables.
    """

    # ==========================================================================
    # Timeout Constants
    # ==========================================================================

    # WS_RECEIVE_TIMEOUT: 90 seconds
    # Three times the 30s client ping interval, so network jitter does not
    # close healthy dashboards while dead sockets are still reaped.
    WS_RECEIVE_TIMEOUT: Final[float] = 90.0

    # WS_ACCEPT_TIMEOUT: 5 seconds
    # The handshake should complete within TCP timeout; 5s tolerates slow
    # hotel Wi-Fi while rejecting stuck connections.
    WS_ACCEPT_TIMEOUT: Final[float] = 5.0

    # USER_LOOKUP_TIMEOUT: 5 seconds
    # The user/hotel lookup is a primary-key read (<10ms typical). Past 5s
    # the connection is refused with SERVER_ERROR rather than left hanging.
    USER_LOOKUP_TIMEOUT: Final[float] = 5.0

    # SEND_TIMEOUT: 5 seconds
    # Upper bound on a single send. A client that cannot absorb a frame in
    # 5s is treated as dead for that broadcast.
    SEND_TIMEOUT: Final[float] = 5.0

    # ==========================================================================
    # Broadcast Constants
    # ==========================================================================

    # BROADCAST_BATCH_SIZE: 50
    # Sends are gathered in batches of 50. A hotel rarely has more than
    # 50 staff online, so one batch usually covers the whole tenant.
    BROADCAST_BATCH_SIZE: Final[int] = 50

    # ==========================================================================
    # Message Constants
    # ==========================================================================

    # MAX_MESSAGE_SIZE: 64 KB
    # Clients only send pings and join requests; anything larger is abuse.
    MAX_MESSAGE_SIZE: Final[int] = 64 * 1024


class UserRole(str, Enum):
    """Staff roles. platform_admin is the only role without a hotel."""

    PLATFORM_ADMIN = "platform_admin"
    HOTEL_OWNER = "hotel_owner"
    HOTEL_MANAGER = "hotel_manager"
    FRONT_DESK = "front_desk"
    HOUSEKEEPING = "housekeeping"

    @classmethod
    def parse(cls, value: "UserRole | str") -> "UserRole":
        """
        Coerce a role name to UserRole.

        Raises:
            ValueError: If the value is not a known role.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


class SubscriptionStatus(str, Enum):
    """Hotel subscription states. Only ACTIVE and TRIAL may connect."""

    TRIAL = "trial"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"

    @classmethod
    def allows_connections(cls, value: str | None) -> bool:
        return value in (cls.ACTIVE.value, cls.TRIAL.value)


class HotelChannel(str, Enum):
    """Sub-channels a client may join explicitly within its own hotel."""

    MANAGER_DASHBOARD = "manager_dashboard"
    FRONT_DESK = "front_desk"
    HOUSEKEEPING = "housekeeping"
    ROOM_UPDATES = "room_updates"

    @classmethod
    def parse(cls, value: "HotelChannel | str") -> "HotelChannel":
        """
        Coerce a channel name to HotelChannel.

        Raises:
            ValueError: If the value is not on the allow-list.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown channel: {value!r}") from None


class ProtocolEvent(str, Enum):
    """Events produced by the gateway itself, as opposed to business events."""

    CONNECTED = "connected"
    CONNECT_ERROR = "connect_error"
    USER_CONNECTED = "user_connected"
    USER_DISCONNECTED = "user_disconnected"
    ROOM_JOINED = "room_joined"


# Message type constants for the client protocol
MSG_PING_PLAIN: Final[str] = "ping"
MSG_PING_JSON: Final[str] = '{"type":"ping"}'
MSG_PONG_JSON: Final[str] = '{"type":"pong"}'
MSG_JOIN_ROOM: Final[str] = "join_room"


def validate_websocket_origin(origin: str | None, settings: object) -> bool:
    """
    Validate WebSocket origin header against allowed origins.

    A missing Origin header (non-browser clients, tests) is accepted outside
    production only.

    Args:
        origin: The Origin header value, or None if not present.
        settings: Settings object with origins_list() and environment.

    Returns:
        True if origin is allowed, False otherwise.
    """
    allowed = settings.origins_list()  # type: ignore[attr-defined]

    if not origin:
        if getattr(settings, "environment", "production") != "production":
            logger.debug("WebSocket connection without Origin header accepted outside production")
            return True
        logger.warning("WebSocket connection rejected: missing Origin header in production")
        return False

    if origin in allowed:
        return True

    logger.warning(
        "WebSocket connection rejected: origin not in allowed list",
        origin=origin,
        allowed_count=len(allowed),
    )
    return False
