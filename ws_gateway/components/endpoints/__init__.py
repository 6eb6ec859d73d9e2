"""
WebSocket endpoint components.

Base classes, mixins, and concrete endpoint handlers.
"""

from ws_gateway.components.endpoints.base import (
    JWTWebSocketEndpoint,
    WebSocketEndpointBase,
)
from ws_gateway.components.endpoints.handlers import HotelStaffEndpoint
from ws_gateway.components.endpoints.mixins import (
    ConnectionAuditMixin,
    MessageValidationMixin,
    TokenRevalidationMixin,
)

__all__ = [
    # Base classes
    "WebSocketEndpointBase",
    "JWTWebSocketEndpoint",
    # Mixins
    "MessageValidationMixin",
    "TokenRevalidationMixin",
    "ConnectionAuditMixin",
    # Handlers
    "HotelStaffEndpoint",
]
