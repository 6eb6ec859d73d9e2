"""
WebSocket Endpoint Base Class.

Provides the connection skeleton shared by gateway endpoints:
accept, authenticate, admit, message loop, release.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket, WebSocketDisconnect

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.correlation import bind_correlation_id
from ws_gateway.components.connection.heartbeat import handle_heartbeat
from ws_gateway.components.core.constants import ProtocolEvent, WSCloseCode, WSConstants
from ws_gateway.components.core.context import (
    Connection,
    ConnectionIdentity,
    ConnectionState,
    WebSocketContext,
    sanitize_log_data,
)
from ws_gateway.components.endpoints.mixins import (
    ConnectionAuditMixin,
    MessageValidationMixin,
    TokenRevalidationMixin,
)
from ws_gateway.core.connection.broadcaster import is_ws_connected

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager

logger = get_logger(__name__)


class WebSocketEndpointBase(
    MessageValidationMixin,
    ConnectionAuditMixin,
    ABC,
):
    """
    Base class for WebSocket endpoints.

    Encapsulates common patterns:
    - Connection lifecycle (accept, message loop, disconnect)
    - Message size validation
    - Heartbeat handling
    - Audit logging

    Subclasses implement:
    - validate_auth(): Authenticate and return the identity
    - register_connection(): Admit the connection
    - unregister_connection(): Release it
    - handle_message(): Process non-heartbeat messages

    Usage:
        endpoint = HotelStaffEndpoint(websocket, manager, token)
        await endpoint.run()
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        endpoint_name: str,
        receive_timeout: float | None = None,
    ):
        """
        Args:
            websocket: The WebSocket connection.
            manager: ConnectionManager instance.
            endpoint_name: Name for logging (e.g., "/ws").
            receive_timeout: Seconds without a client frame before closing.
        """
        self.websocket = websocket
        self.manager = manager
        self.endpoint_name = endpoint_name
        self.receive_timeout = (
            receive_timeout if receive_timeout is not None else float(settings.ws_receive_timeout)
        )

        self.context: WebSocketContext | None = None
        self.connection: Connection | None = None
        self.state = ConnectionState.UNAUTHENTICATED
        self._is_running = False
        self._close_reason = "client_disconnect"

    @property
    def connection_id(self) -> str | None:
        return self.connection.connection_id if self.connection else None

    @abstractmethod
    async def validate_auth(self) -> ConnectionIdentity | None:
        """
        Authenticate this connection.

        Returns:
            The identity, or None if refused (socket already closed).
        """
        pass

    @abstractmethod
    async def register_connection(self, identity: ConnectionIdentity) -> Connection | None:
        """Admit the connection. Returns None if it could not be admitted."""
        pass

    @abstractmethod
    async def unregister_connection(self) -> None:
        """Release the connection on disconnect."""
        pass

    async def handle_message(self, data: str) -> None:
        """
        Handle a non-heartbeat message.

        Default implementation logs unknown messages.
        """
        logger.debug(
            "Unknown message received",
            endpoint=self.endpoint_name,
            connection_id=self.connection_id,
            message=sanitize_log_data(data),
        )

    async def run(self) -> None:
        """
        Main entry point - run the WebSocket endpoint.

        Every log line emitted while serving this socket carries the same
        correlation ID.
        """
        with bind_correlation_id(uuid.uuid4().hex):
            await self._run()

    async def _run(self) -> None:
        # Step 1: Accept at the transport level
        try:
            await asyncio.wait_for(self.websocket.accept(), timeout=WSConstants.WS_ACCEPT_TIMEOUT)
        except Exception as e:
            logger.warning(
                "WebSocket accept failed",
                endpoint=self.endpoint_name,
                error=type(e).__name__,
            )
            return

        self.context = WebSocketContext.from_websocket(self.websocket, self.endpoint_name)

        # Step 2: Authenticate
        self.state = ConnectionState.AUTHENTICATING
        identity = await self.validate_auth()
        if identity is None:
            self.state = ConnectionState.DISCONNECTED
            return

        # Step 3: Admit
        try:
            self.connection = await self.register_connection(identity)
        except Exception as e:
            logger.error(
                "Unexpected error during connection",
                endpoint=self.endpoint_name,
                user_id=identity.user_id,
                error=str(e),
                exc_info=True,
            )
            self.state = ConnectionState.DISCONNECTED
            await self._close(WSCloseCode.SERVER_ERROR, "Internal error")
            return

        if self.connection is None:
            self.state = ConnectionState.DISCONNECTED
            self.log_connect_rejected("not_admitted")
            await self._close(WSCloseCode.GOING_AWAY, "Connection not admitted")
            return

        self.state = ConnectionState.CONNECTED
        self.context.bind(identity, self.connection.connection_id)
        self.log_connect()

        # Step 4: Message loop
        self._is_running = True
        try:
            await self._message_loop()
        except WebSocketDisconnect:
            self._close_reason = "client_disconnect"
        except Exception as e:
            self._close_reason = "server_error"
            logger.error(
                "Error in message loop",
                endpoint=self.endpoint_name,
                connection_id=self.connection_id,
                error=str(e),
                exc_info=True,
            )
            await self._close(WSCloseCode.SERVER_ERROR, "Internal error")
        finally:
            # Step 5: Release
            self._is_running = False
            await self.unregister_connection()
            self.state = ConnectionState.DISCONNECTED
            self.log_disconnect(self._close_reason)

    async def _pre_message_hook(self) -> bool:
        """
        Hook called before processing each message.

        Returns:
            True to continue processing, False to close connection.
        """
        return True

    async def _message_loop(self) -> None:
        """
        Main message processing loop.

        Handles:
        - Receive with timeout
        - Message size validation
        - Pre-message hook (token revalidation for JWT endpoints)
        - Heartbeat responses
        - Custom message handling
        """
        while self._is_running:
            data = await self._receive_with_timeout()
            if data is None:
                logger.info(
                    "Connection timed out (no messages)",
                    endpoint=self.endpoint_name,
                    connection_id=self.connection_id,
                    timeout=self.receive_timeout,
                )
                self._close_reason = "timeout"
                await self._close(WSCloseCode.NORMAL, "Connection timeout")
                break

            if not await self.validate_message_size(data):
                self._close_reason = "message_too_big"
                break

            if not await self._pre_message_hook():
                break

            if isinstance(data, bytes):
                logger.debug(
                    "Binary frame dropped",
                    endpoint=self.endpoint_name,
                    connection_id=self.connection_id,
                    size=len(data),
                )
                continue

            if await handle_heartbeat(self.websocket, data):
                continue

            await self.handle_message(data)

    async def _receive_with_timeout(self) -> str | bytes | None:
        """
        Receive one text or binary frame with timeout.

        Returns:
            Frame data, or None if timeout.

        Raises:
            WebSocketDisconnect: If the client went away.
        """
        try:
            message = await asyncio.wait_for(
                self.websocket.receive(),
                timeout=self.receive_timeout,
            )
        except asyncio.TimeoutError:
            return None

        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(
                code=message.get("code", WSCloseCode.NORMAL),
                reason=message.get("reason"),
            )
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def _close(self, code: int, reason: str) -> None:
        """Close the socket if it is still open."""
        if not is_ws_connected(self.websocket):
            return
        try:
            await self.websocket.close(code=code, reason=reason)
        except (RuntimeError, ConnectionError, OSError) as e:
            logger.debug("Close failed", endpoint=self.endpoint_name, error=type(e).__name__)


class JWTWebSocketEndpoint(
    TokenRevalidationMixin,
    WebSocketEndpointBase,
):
    """
    Base class for JWT-authenticated WebSocket endpoints.

    Adds:
    - Credential check through the connection manager
    - connect_error reporting on refusal
    - Periodic token revalidation
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        endpoint_name: str,
        token: str | None,
        token_revalidation_interval: float | None = None,
        **kwargs: Any,
    ):
        """
        Args:
            websocket: The WebSocket connection.
            manager: ConnectionManager instance.
            endpoint_name: Name for logging.
            token: JWT from the query string or Authorization header.
            token_revalidation_interval: Seconds between token re-checks.
            **kwargs: Additional args for base class.
        """
        super().__init__(websocket, manager, endpoint_name, **kwargs)
        self.token = token
        self.token_revalidation_interval = (
            token_revalidation_interval
            if token_revalidation_interval is not None
            else float(settings.ws_token_revalidation_interval)
        )
        self._last_token_revalidation = time.time()

    async def validate_auth(self) -> ConnectionIdentity | None:
        """
        Authenticate the token.

        On failure the client receives one connect_error event, then the
        socket is closed with the failure's close code.
        """
        result = await self.manager.authenticate(self.token, self.websocket)
        if result.success and result.identity is not None:
            return result.identity

        reason = result.reason.value if result.reason else "auth_failed"
        message = result.error_message or "Authentication failed"

        if self.context:
            self.context.audit("AUTH_FAILED", reason=reason)

        try:
            await self.websocket.send_json(
                self.manager.build_message(
                    ProtocolEvent.CONNECT_ERROR,
                    {"reason": reason, "message": message},
                )
            )
        except Exception as e:
            logger.debug("Could not deliver connect_error", error=type(e).__name__)

        await self._close(result.close_code, message)
        return None

    async def _pre_message_hook(self) -> bool:
        """Close the connection once its token stops being valid."""
        if not await self.revalidate_token_if_needed():
            logger.warning(
                "Token revalidation failed",
                endpoint=self.endpoint_name,
                connection_id=self.connection_id,
            )
            self._close_reason = "token_expired"
            await self._close(WSCloseCode.AUTH_FAILED, "Token expired or revoked")
            return False
        return True
