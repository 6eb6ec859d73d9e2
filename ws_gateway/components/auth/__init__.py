"""
Authentication components.

JWT authentication strategy for staff connections.
"""

from ws_gateway.components.auth.strategies import (
    AuthFailureReason,
    AuthResult,
    AuthStrategy,
    JWTAuthStrategy,
    create_staff_auth_strategy,
)

__all__ = [
    "AuthFailureReason",
    "AuthResult",
    "AuthStrategy",
    "JWTAuthStrategy",
    "create_staff_auth_strategy",
]
