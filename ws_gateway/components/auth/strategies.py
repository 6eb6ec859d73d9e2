"""
Authentication Strategies for WebSocket Gateway.

A strategy turns a presented credential into a ConnectionIdentity or a
typed failure. Strategies are pure: they never register connections.

PATTERN: Strategy - pluggable authentication algorithms.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from shared.config.logging import audit_auth_event, get_logger
from shared.config.settings import settings
from shared.utils.exceptions import UnauthorizedError
from ws_gateway.components.core.constants import (
    SubscriptionStatus,
    UserRole,
    WSCloseCode,
    validate_websocket_origin,
)
from ws_gateway.components.core.context import ConnectionIdentity

if TYPE_CHECKING:
    from fastapi import WebSocket
    from ws_gateway.components.data.user_repository import UserDirectory, UserRecord


logger = get_logger(__name__)


# =============================================================================
# Result Types
# =============================================================================


class AuthFailureReason(str, Enum):
    """Why a connection attempt was refused."""

    NO_CREDENTIAL = "no_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    INACTIVE_USER = "inactive_user"
    INACTIVE_TENANT = "inactive_tenant"
    ORIGIN_NOT_ALLOWED = "origin_not_allowed"
    LOOKUP_FAILED = "lookup_failed"


@dataclass(frozen=True, slots=True)
class AuthResult:
    """
    Result of an authentication attempt.

    Attributes:
        success: Whether authentication succeeded.
        identity: The authenticated identity if successful.
        reason: Failure reason if failed.
        error_message: Human-readable error message if failed.
        close_code: WebSocket close code to use if failed.
    """

    success: bool
    identity: ConnectionIdentity | None = None
    reason: AuthFailureReason | None = None
    error_message: str | None = None
    close_code: int = WSCloseCode.AUTH_FAILED

    @classmethod
    def ok(cls, identity: ConnectionIdentity) -> "AuthResult":
        """Create successful authentication result."""
        return cls(success=True, identity=identity)

    @classmethod
    def fail(
        cls,
        reason: AuthFailureReason,
        message: str,
        close_code: int = WSCloseCode.AUTH_FAILED,
    ) -> "AuthResult":
        """Create failed authentication result."""
        return cls(
            success=False,
            reason=reason,
            error_message=message,
            close_code=close_code,
        )

    @classmethod
    def forbidden(cls, reason: AuthFailureReason, message: str) -> "AuthResult":
        """Create forbidden (valid credential, access denied) result."""
        return cls.fail(reason, message, close_code=WSCloseCode.FORBIDDEN)


# =============================================================================
# Strategy Interface
# =============================================================================


class AuthStrategy(ABC):
    """
    Abstract base class for authentication strategies.

    Usage:
        strategy = JWTAuthStrategy(user_directory)
        result = await strategy.authenticate(token, websocket)
        if result.success:
            identity = result.identity
    """

    @abstractmethod
    async def authenticate(
        self,
        token: str | None,
        websocket: "WebSocket | None" = None,
    ) -> AuthResult:
        """
        Authenticate a connection attempt.

        Args:
            token: The presented credential, possibly missing.
            websocket: The connection, for header checks (origin).

        Returns:
            AuthResult indicating success/failure with identity or error.
        """
        pass

    @abstractmethod
    async def revalidate(self, token: str) -> bool:
        """
        Re-check a credential during an active connection.

        Returns:
            True if the token is still valid, False otherwise.
        """
        pass


# =============================================================================
# JWT Authentication Strategy
# =============================================================================


class JWTAuthStrategy(AuthStrategy):
    """
    Staff JWT authentication.

    Steps:
    1. Reject missing credentials
    2. Validate the Origin header
    3. Verify signature, expiry, issuer, audience and token type
    4. Load the user and hotel; the identity comes from these records
    5. Reject inactive users, unknown roles and hotels whose subscription
       is not active or trial

    Lookup errors are not caught here; ConnectionLifecycle maps them to
    lookup_failed.
    """

    def __init__(self, user_directory: "UserDirectory", check_origin: bool = True) -> None:
        """
        Args:
            user_directory: Source of user and hotel records.
            check_origin: Whether to validate the Origin header.
        """
        self._users = user_directory
        self._check_origin = check_origin

    async def authenticate(
        self,
        token: str | None,
        websocket: "WebSocket | None" = None,
    ) -> AuthResult:
        """Authenticate using a staff JWT."""
        from shared.security.auth import verify_access_token

        if not token or not token.strip():
            return AuthResult.fail(AuthFailureReason.NO_CREDENTIAL, "Authentication required")

        if self._check_origin and websocket is not None:
            origin = websocket.headers.get("origin")
            if not validate_websocket_origin(origin, settings):
                return AuthResult.forbidden(
                    AuthFailureReason.ORIGIN_NOT_ALLOWED, "Origin not allowed"
                )

        try:
            claims = verify_access_token(token.strip())
        except UnauthorizedError as e:
            audit_auth_event("TOKEN_REJECTED", success=False, reason=str(e.detail))
            return AuthResult.fail(AuthFailureReason.INVALID_CREDENTIAL, "Authentication failed")

        user_id = int(claims["sub"])
        record = await self._users.get_user(user_id)
        return self._check_record(user_id, record)

    def _check_record(self, user_id: int, record: "UserRecord | None") -> AuthResult:
        if record is None or not record.is_active:
            audit_auth_event("WS_CONNECT", user_id=user_id, success=False, reason="inactive_user")
            return AuthResult.forbidden(AuthFailureReason.INACTIVE_USER, "Invalid user")

        try:
            role = UserRole.parse(record.role)
        except ValueError:
            logger.warning("User has unrecognized role", user_id=user_id, role=record.role)
            return AuthResult.forbidden(AuthFailureReason.INACTIVE_USER, "Invalid user")

        if role is UserRole.PLATFORM_ADMIN:
            tenant_id = None
        else:
            if record.hotel_id is None:
                logger.warning("Hotel staff user without hotel", user_id=user_id, role=role.value)
                return AuthResult.forbidden(AuthFailureReason.INACTIVE_USER, "Invalid user")
            if not record.hotel_is_active or not SubscriptionStatus.allows_connections(
                record.hotel_subscription_status
            ):
                audit_auth_event(
                    "WS_CONNECT",
                    user_id=user_id,
                    success=False,
                    reason="inactive_tenant",
                    tenant_id=record.hotel_id,
                    subscription_status=record.hotel_subscription_status,
                )
                return AuthResult.forbidden(
                    AuthFailureReason.INACTIVE_TENANT, "Hotel subscription inactive"
                )
            tenant_id = record.hotel_id

        return AuthResult.ok(
            ConnectionIdentity(
                user_id=record.id,
                tenant_id=tenant_id,
                role=role,
                name=record.name,
                email=record.email,
            )
        )

    async def revalidate(self, token: str) -> bool:
        """Re-check signature and expiry only."""
        from shared.security.auth import verify_access_token

        try:
            verify_access_token(token)
            return True
        except UnauthorizedError:
            return False


# =============================================================================
# Factory Functions
# =============================================================================


def create_staff_auth_strategy(user_directory: "UserDirectory") -> JWTAuthStrategy:
    """Create auth strategy for the staff endpoint."""
    return JWTAuthStrategy(user_directory)
