"""
Authentication utilities.
Handles signing and verification of staff JWTs.

Tokens carry the user id in "sub" and the hotel id in "tenant_id" (null for
platform administrators). The gateway only trusts the signature and expiry
here; role, hotel and active flags are re-read from the database at connect.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.exceptions import UnauthorizedError

logger = get_logger(__name__)

ALGORITHM = "HS256"


# =============================================================================
# JWT Functions (for staff authentication)
# =============================================================================


def sign_jwt(
    payload: dict[str, Any],
    ttl_seconds: int | None = None,
    token_type: str = "access",
) -> str:
    """
    Sign a JWT token with the given payload.

    Args:
        payload: Claims to include in the token (sub, tenant_id, role).
        ttl_seconds: Token lifetime in seconds. Defaults to access token expiry.
            Negative values produce an already-expired token.
        token_type: Type of token ("access" or "refresh").

    Returns:
        Signed JWT token string.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": token_type,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, settings.jwt_secret, algorithm=ALGORITHM)


def sign_access_token(user_id: int, tenant_id: int | None, role: str) -> str:
    """Create an access token for a staff member."""
    return sign_jwt({"sub": str(user_id), "tenant_id": tenant_id, "role": role})


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: The JWT token string.

    Returns:
        Decoded token claims.

    Raises:
        UnauthorizedError: If token is invalid, expired or missing required claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.InvalidTokenError as e:
        # Log the actual error, return a generic message to the client
        logger.warning("JWT validation failed", error=str(e))
        raise UnauthorizedError("Invalid token")

    if "sub" not in payload:
        raise UnauthorizedError("Invalid token: missing subject claim")

    try:
        int(payload["sub"])
    except (ValueError, TypeError):
        raise UnauthorizedError("Invalid token: malformed subject claim")

    if "tenant_id" not in payload:
        raise UnauthorizedError("Invalid token: missing tenant_id claim")

    tenant_id = payload["tenant_id"]
    if tenant_id is not None and (not isinstance(tenant_id, int) or isinstance(tenant_id, bool)):
        raise UnauthorizedError("Invalid token: malformed tenant_id claim")

    if payload.get("type") not in ("access", "refresh"):
        raise UnauthorizedError("Invalid token: invalid type claim")

    return payload


def verify_access_token(token: str) -> dict[str, Any]:
    """
    Verify a token and require it to be an access token.

    Raises:
        UnauthorizedError: If the token is invalid or a refresh token.
    """
    payload = verify_jwt(token)
    if payload.get("type") != "access":
        raise UnauthorizedError("Invalid token type. Expected access token.")
    return payload


# =============================================================================
# Header parsing
# =============================================================================


def get_bearer_token(authorization: str | None) -> str:
    """
    Extract the token from an Authorization header.

    Returns:
        The token string without "Bearer " prefix.

    Raises:
        UnauthorizedError: If header is missing or malformed.
    """
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("Invalid Authorization header format. Expected: Bearer <token>")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise UnauthorizedError("Missing bearer token")
    return token
