"""
Centralized HTTP exceptions for consistent error handling.

Usage:
    from shared.utils.exceptions import UnauthorizedError, ForbiddenError

    raise UnauthorizedError("Token has expired")
    raise ForbiddenError("send test broadcasts")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


class UnauthorizedError(AppException):
    """Missing, malformed or expired credential (401)."""

    def __init__(self, detail: str = "Not authenticated", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


class ForbiddenError(AppException):
    """
    Authenticated but not allowed (403).

    Usage:
        raise ForbiddenError("view hotel presence")
    """

    def __init__(self, action: str | None = None, **log_context: Any):
        detail = f"Not allowed to {action}" if action else "Access denied"
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            **log_context,
        )

