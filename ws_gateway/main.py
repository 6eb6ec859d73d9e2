"""
WebSocket Gateway main application.

Real-time notifications for hotel staff: owners, managers, front desk and
housekeeping receive room, booking and task events for their own hotel.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Header, Query, Request, WebSocket, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from shared.config.logging import setup_logging, ws_gateway_logger as logger
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.security.auth import get_bearer_token
from shared.utils.exceptions import AppException, ForbiddenError, UnauthorizedError
from ws_gateway.components.core.constants import UserRole, WSCloseCode
from ws_gateway.components.core.context import ConnectionIdentity
from ws_gateway.components.endpoints.handlers import HotelStaffEndpoint
from ws_gateway.components.events.types import HotelEventType
from ws_gateway.connection_manager import ConnectionManager


TEST_EVENT_TYPES = (
    "hotel_broadcast",
    "role_broadcast",
    "room_update",
    "task_complete",
    "dashboard_update",
)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    On shutdown every open connection is closed with GOING_AWAY.
    """
    setup_logging()
    logger.info(
        "Starting WebSocket Gateway",
        port=settings.ws_gateway_port,
        env=settings.environment,
    )
    secret_errors = settings.validate_production_secrets()
    if secret_errors:
        for error in secret_errors:
            logger.error("Configuration error", error=error)
        raise RuntimeError(
            f"Production configuration errors: {'; '.join(secret_errors)}. "
            "Server will not start with insecure configuration."
        )

    yield

    logger.info("Shutting down WebSocket Gateway")
    closed = await app.state.manager.shutdown()
    logger.info("WebSocket Gateway stopped", closed_connections=closed)


# =============================================================================
# Dependencies
# =============================================================================


def get_manager(request: Request) -> ConnectionManager:
    return request.app.state.manager


async def current_staff(
    authorization: str | None = Header(default=None, alias="Authorization"),
    manager: ConnectionManager = Depends(get_manager),
) -> ConnectionIdentity:
    """
    FastAPI dependency resolving the bearer token to a hotel staff identity.

    Uses the same checks as the WebSocket handshake, so a suspended hotel
    or deactivated user is refused here too. Platform administrators have
    no hotel and are refused.
    """
    token = get_bearer_token(authorization)
    result = await manager.authenticate(token)

    if not result.success or result.identity is None:
        message = result.error_message or "Authentication failed"
        if result.close_code == WSCloseCode.FORBIDDEN:
            raise ForbiddenError(reason=message)
        if result.close_code == WSCloseCode.SERVER_ERROR:
            raise AppException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="User lookup unavailable",
                log_level="error",
            )
        raise UnauthorizedError(message)

    if result.identity.tenant_id is None:
        raise ForbiddenError("access hotel data without a hotel", user_id=result.identity.user_id)

    return result.identity


class BroadcastTestRequest(BaseModel):
    event_type: str = Field(..., description="One of " + ", ".join(TEST_EVENT_TYPES))
    message: str | None = None
    target_role: str | None = None


# =============================================================================
# FastAPI Application
# =============================================================================


def create_app(manager: ConnectionManager | None = None) -> FastAPI:
    """
    Build the gateway application.

    Args:
        manager: ConnectionManager to serve. Defaults to one backed by the
            database user directory.
    """
    app = FastAPI(
        title="Hotel Operations WebSocket Gateway",
        description="Real-time notifications for hotel staff",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.manager = manager or ConnectionManager()

    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins_list(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    # -------------------------------------------------------------------------
    # Health and presence
    # -------------------------------------------------------------------------

    @app.get("/ws/health")
    def health_check(manager: ConnectionManager = Depends(get_manager)):
        """Basic health check endpoint."""
        return {
            "status": "shutting_down" if manager.is_shutting_down() else "healthy",
            "service": "ws-gateway",
            "version": app.version,
            "environment": settings.environment,
            **manager.get_stats(),
        }

    @app.get("/ws/connection-status")
    def connection_status(
        identity: ConnectionIdentity = Depends(current_staff),
        manager: ConnectionManager = Depends(get_manager),
    ):
        """Who from the caller's hotel is connected right now."""
        return {
            "websocket_status": "active",
            **manager.get_presence(identity.tenant_id).to_dict(),
            "server_time": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/ws/test-broadcast")
    async def test_broadcast(
        body: BroadcastTestRequest,
        identity: ConnectionIdentity = Depends(current_staff),
        manager: ConnectionManager = Depends(get_manager),
    ):
        """
        Fire a sample event at the caller's hotel.

        Development only. Lets frontend developers check their socket wiring
        without touching real rooms or bookings.
        """
        if settings.environment != "development":
            raise ForbiddenError("send test broadcasts outside development")

        hotel_id = identity.tenant_id
        test_data: dict[str, Any] = {
            "message": body.message or "Test WebSocket message",
            "triggeredBy": {
                "userId": identity.user_id,
                "userName": identity.name,
                "userRole": identity.role.value,
            },
            "testEvent": True,
        }

        if body.event_type == "hotel_broadcast":
            sent = await manager.broadcast_to_tenant(
                hotel_id, HotelEventType.TEST_HOTEL_MESSAGE, test_data
            )
            result: dict[str, Any] = {"type": body.event_type, "hotel_id": hotel_id}
        elif body.event_type == "role_broadcast":
            role = body.target_role or UserRole.HOTEL_MANAGER.value
            try:
                sent = await manager.broadcast_to_role(
                    hotel_id, role, HotelEventType.TEST_ROLE_MESSAGE, test_data
                )
            except ValueError:
                raise AppException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid target role: {role}",
                )
            result = {"type": body.event_type, "role": role, "hotel_id": hotel_id}
        elif body.event_type == "room_update":
            sent = await manager.broadcast_to_tenant(
                hotel_id,
                HotelEventType.ROOM_STATUS_UPDATED,
                {
                    **test_data,
                    "roomId": 1,
                    "roomNumber": "101",
                    "status": "available",
                    "previousStatus": "cleaning",
                },
            )
            result = {"type": body.event_type}
        elif body.event_type == "task_complete":
            sent = await manager.broadcast_to_role(
                hotel_id,
                UserRole.HOTEL_MANAGER,
                HotelEventType.TASK_COMPLETED,
                {
                    **test_data,
                    "taskId": 999,
                    "description": "Test urgent cleaning task",
                    "priority": "urgent",
                },
            )
            result = {"type": body.event_type}
        elif body.event_type == "dashboard_update":
            sent = await manager.broadcast_to_role(
                hotel_id,
                UserRole.HOTEL_MANAGER,
                HotelEventType.DASHBOARD_UPDATED,
                {
                    "summary": {
                        "totalTasks": 5,
                        "completedTasks": 4,
                        "urgentTasksRemaining": 0,
                        "completionRate": 80.0,
                    },
                    "canLogout": True,
                    "testUpdate": True,
                },
            )
            result = {"type": body.event_type}
        else:
            raise AppException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid event type. Valid types: {', '.join(TEST_EVENT_TYPES)}",
            )

        logger.info(
            "Test broadcast sent",
            event_type=body.event_type,
            hotel_id=hotel_id,
            user_id=identity.user_id,
            sent=sent,
        )
        return {
            "success": True,
            "broadcast": {**result, "sent": sent},
            "connection_stats": manager.get_presence(hotel_id).to_dict(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # -------------------------------------------------------------------------
    # WebSocket endpoint
    # -------------------------------------------------------------------------

    @app.websocket("/ws")
    async def staff_websocket(
        websocket: WebSocket,
        token: str | None = Query(None, description="JWT token"),
    ):
        """
        WebSocket endpoint for hotel staff.

        The token comes from the query string, falling back to an
        "Authorization: Bearer" header for non-browser clients.
        """
        if not token:
            authorization = websocket.headers.get("authorization", "")
            if authorization.startswith("Bearer "):
                token = authorization.split(" ", 1)[1].strip() or None

        endpoint = HotelStaffEndpoint(websocket, websocket.app.state.manager, token)
        await endpoint.run()

    return app


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ws_gateway.main:app",
        host="0.0.0.0",
        port=settings.ws_gateway_port,
        reload=True,
    )
