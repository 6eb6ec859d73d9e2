"""
WebSocket Endpoint Mixins.

Each mixin handles a single concern for WebSocket endpoints.

Mixins:
    MessageValidationMixin: Message size checks
    TokenRevalidationMixin: Periodic token revalidation
    ConnectionAuditMixin: Connection lifecycle audit logging
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Protocol

from fastapi import WebSocket

from shared.config.logging import get_logger
from shared.config.settings import settings
from ws_gateway.components.core.constants import WSCloseCode

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager
    from ws_gateway.components.core.context import WebSocketContext

logger = get_logger(__name__)


# =============================================================================
# Protocols for mixin dependencies
# =============================================================================


class HasWebSocket(Protocol):
    websocket: WebSocket
    endpoint_name: str
    context: "WebSocketContext | None"


class HasToken(Protocol):
    websocket: WebSocket
    manager: "ConnectionManager"
    token: str | None
    token_revalidation_interval: float
    _last_token_revalidation: float


# =============================================================================
# MessageValidationMixin
# =============================================================================


class MessageValidationMixin:
    """
    Mixin for message size validation.

    Requires:
        - self.websocket: WebSocket
        - self.endpoint_name: str
        - self.context: WebSocketContext | None
    """

    async def validate_message_size(self: HasWebSocket, data: str | bytes) -> bool:
        """
        Validate message size in bytes (UTF-8 for text) against configured limit.

        Returns:
            True if valid, False if too large (connection closed).
        """
        max_size = settings.ws_max_message_size
        size = len(data) if isinstance(data, bytes) else len(data.encode("utf-8"))

        if size > max_size:
            logger.warning(
                "Message size exceeded limit",
                endpoint=self.endpoint_name,
                user_id=self.context.user_id if self.context else None,
                size=size,
                max_size=max_size,
            )
            await self.websocket.close(
                code=WSCloseCode.MESSAGE_TOO_BIG,
                reason="Message too large",
            )
            return False
        return True


# =============================================================================
# TokenRevalidationMixin
# =============================================================================


class TokenRevalidationMixin:
    """
    Mixin for periodic token revalidation.

    Staff dashboards stay open for a whole shift; an expired token must
    not keep receiving hotel events.

    Requires:
        - self.token: str | None
        - self.manager: ConnectionManager
        - self.token_revalidation_interval: float
        - self._last_token_revalidation: float
    """

    async def revalidate_token_if_needed(self: HasToken) -> bool:
        """
        Revalidate the token if the revalidation interval has passed.

        Returns:
            True if token is still valid, False if expired or invalid.
        """
        now = time.time()
        if now - self._last_token_revalidation < self.token_revalidation_interval:
            return True

        if not self.token or not await self.manager.revalidate(self.token):
            return False

        self._last_token_revalidation = now
        return True


# =============================================================================
# ConnectionAuditMixin
# =============================================================================


class ConnectionAuditMixin:
    """
    Mixin for connection lifecycle audit logging.

    Requires:
        - self.endpoint_name: str
        - self.context: WebSocketContext | None
    """

    def log_connect(self: HasWebSocket) -> None:
        if self.context:
            self.context.audit("CONNECT")

    def log_disconnect(self: HasWebSocket, reason: str = "client_disconnect") -> None:
        if self.context:
            self.context.audit("DISCONNECT", reason=reason)

    def log_connect_rejected(self: HasWebSocket, reason: str) -> None:
        logger.warning(
            "Connection rejected",
            endpoint=self.endpoint_name,
            reason=reason,
        )
        if self.context:
            self.context.audit("CONNECT_REJECTED", reason=reason)


__all__ = [
    "MessageValidationMixin",
    "TokenRevalidationMixin",
    "ConnectionAuditMixin",
    "HasWebSocket",
    "HasToken",
]
