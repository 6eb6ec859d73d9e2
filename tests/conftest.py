"""
Pytest configuration and fixtures for gateway tests.
"""

import os

# Settings are read at import time, so the environment is fixed before any
# project module is imported.
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET"] = "test-secret-for-gateway-unit-tests-0123456789"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ALLOWED_ORIGINS"] = ""

import json
from typing import Any

import pytest
from starlette.websockets import WebSocketState

from shared.security.auth import sign_access_token
from ws_gateway.components.core.constants import UserRole
from ws_gateway.components.core.context import Connection, ConnectionIdentity
from ws_gateway.components.data.user_repository import UserRecord
from ws_gateway.connection_manager import ConnectionManager


# =============================================================================
# Test doubles
# =============================================================================


class FakeWebSocket:
    """
    Minimal stand-in for a Starlette WebSocket.

    Records every frame sent so tests can assert on what a client saw.
    """

    def __init__(self, origin: str | None = None, fail_send: bool = False):
        self.headers: dict[str, str] = {"origin": origin} if origin else {}
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail_send = fail_send
        self.sent: list[dict[str, Any]] = []
        self.texts: list[str] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        # Frames handed to receive(), then a client disconnect
        self.incoming: list[str] = []

    async def accept(self) -> None:
        pass

    async def receive(self) -> dict[str, Any]:
        if self.incoming:
            return {"type": "websocket.receive", "text": self.incoming.pop(0)}
        self.client_state = WebSocketState.DISCONNECTED
        return {"type": "websocket.disconnect", "code": 1000}

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.fail_send:
            raise RuntimeError("socket broken")
        # Round-trip through JSON like the real transport
        self.sent.append(json.loads(json.dumps(data)))

    async def send_text(self, data: str) -> None:
        if self.fail_send:
            raise RuntimeError("socket broken")
        self.texts.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_code = code
        self.close_reason = reason
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    def event_types(self) -> list[str]:
        return [message["type"] for message in self.sent]

    def events(self, event_type: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message["type"] == event_type]


class StaticUserDirectory:
    """In-memory user directory."""

    def __init__(self, records: list[UserRecord]):
        self._records = {record.id: record for record in records}
        self.error: Exception | None = None
        self.lookups = 0

    async def get_user(self, user_id: int) -> UserRecord | None:
        self.lookups += 1
        if self.error is not None:
            raise self.error
        return self._records.get(user_id)


# =============================================================================
# Seed data
# =============================================================================

# Hotel 1: active, one user per role
OWNER_ID = 1
MANAGER_ID = 2
FRONT_DESK_ID = 3
HOUSEKEEPING_ID = 4
# Hotel 2: active
OTHER_MANAGER_ID = 5
# Edge cases
INACTIVE_USER_ID = 6
SUSPENDED_HOTEL_USER_ID = 7
UNKNOWN_ROLE_USER_ID = 8
PLATFORM_ADMIN_ID = 9
CANCELLED_HOTEL_USER_ID = 10
TRIAL_HOTEL_USER_ID = 11
DEACTIVATED_HOTEL_USER_ID = 12


def _record(user_id, hotel_id, role, status="active", **kwargs) -> UserRecord:
    return UserRecord(
        id=user_id,
        hotel_id=hotel_id,
        email=f"user{user_id}@hotel.test",
        name=f"Staff {user_id}",
        role=role,
        is_active=kwargs.pop("is_active", True),
        hotel_subscription_status=status if hotel_id is not None else None,
        hotel_is_active=kwargs.pop("hotel_is_active", True),
    )


SEED_RECORDS = [
    _record(OWNER_ID, 1, "hotel_owner"),
    _record(MANAGER_ID, 1, "hotel_manager"),
    _record(FRONT_DESK_ID, 1, "front_desk"),
    _record(HOUSEKEEPING_ID, 1, "housekeeping"),
    _record(OTHER_MANAGER_ID, 2, "hotel_manager"),
    _record(INACTIVE_USER_ID, 1, "front_desk", is_active=False),
    _record(SUSPENDED_HOTEL_USER_ID, 3, "hotel_manager", status="suspended"),
    _record(UNKNOWN_ROLE_USER_ID, 1, "night_auditor"),
    _record(PLATFORM_ADMIN_ID, None, "platform_admin"),
    _record(CANCELLED_HOTEL_USER_ID, 4, "front_desk", status="cancelled"),
    _record(TRIAL_HOTEL_USER_ID, 5, "housekeeping", status="trial"),
    _record(DEACTIVATED_HOTEL_USER_ID, 6, "hotel_owner", hotel_is_active=False),
]


def token_for(user_id: int, tenant_id: int | None = 1, role: str = "hotel_manager") -> str:
    return sign_access_token(user_id, tenant_id, role)


def bearer(user_id: int, tenant_id: int | None = 1, role: str = "hotel_manager") -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user_id, tenant_id, role)}"}


def make_identity(
    user_id: int,
    tenant_id: int | None = 1,
    role: UserRole = UserRole.FRONT_DESK,
) -> ConnectionIdentity:
    return ConnectionIdentity(
        user_id=user_id,
        tenant_id=tenant_id,
        role=role,
        name=f"Staff {user_id}",
        email=f"user{user_id}@hotel.test",
    )


def make_connection(
    user_id: int,
    tenant_id: int | None = 1,
    role: UserRole = UserRole.FRONT_DESK,
    websocket: FakeWebSocket | None = None,
) -> Connection:
    return Connection(
        identity=make_identity(user_id, tenant_id, role),
        websocket=websocket or FakeWebSocket(),
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def directory():
    return StaticUserDirectory(SEED_RECORDS)


@pytest.fixture
def manager(directory):
    return ConnectionManager(user_directory=directory)
