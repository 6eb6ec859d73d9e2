"""
Data access components.

Repositories for user lookups.
"""

from ws_gateway.components.data.user_repository import (
    SQLAlchemyUserRepository,
    UserDirectory,
    UserRecord,
)

__all__ = [
    "SQLAlchemyUserRepository",
    "UserDirectory",
    "UserRecord",
]
