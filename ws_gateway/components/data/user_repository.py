"""
Repository for staff user lookups.

Abstracts database access for connection authentication. The lookup runs
in a worker thread with a timeout so a slow database never blocks the
event loop. Results are not cached: deactivating a user or suspending a
hotel must take effect on the next connection attempt.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol, TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import joinedload

from shared.config.logging import get_logger
from shared.infrastructure.db import get_db_context
from shared.models import User
from ws_gateway.components.core.constants import WSConstants

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class UserRecord:
    """
    Snapshot of a user and their hotel, as read at authentication time.

    hotel_subscription_status is None for users without a hotel.
    """

    id: int
    hotel_id: int | None
    email: str
    name: str
    role: str
    is_active: bool
    hotel_subscription_status: str | None = None
    hotel_is_active: bool = True


class UserDirectory(Protocol):
    """Anything that can resolve a user id to a UserRecord."""

    async def get_user(self, user_id: int) -> UserRecord | None:
        ...


class SQLAlchemyUserRepository:
    """
    User directory backed by the users and hotels tables.

    Lookup errors and timeouts propagate: the caller decides how to refuse
    the connection.

    Usage:
        repo = SQLAlchemyUserRepository()
        record = await repo.get_user(42)
    """

    def __init__(
        self,
        session_factory: "sessionmaker[Session] | None" = None,
        timeout: float = WSConstants.USER_LOOKUP_TIMEOUT,
    ) -> None:
        """
        Initialize the repository.

        Args:
            session_factory: Session factory; defaults to the application engine.
            timeout: Timeout in seconds for database lookups.
        """
        self._session_factory = session_factory
        self._timeout = timeout
        self._lookup_success = 0
        self._lookup_timeouts = 0
        self._lookup_errors = 0

    async def get_user(self, user_id: int) -> UserRecord | None:
        """
        Load a user with their hotel.

        Args:
            user_id: The user's primary key.

        Returns:
            UserRecord, or None if no such user exists.

        Raises:
            asyncio.TimeoutError: If the lookup exceeds the timeout.
            SQLAlchemyError: If the database query fails.
        """
        try:
            record = await asyncio.wait_for(
                asyncio.to_thread(self._get_user_sync, user_id),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            self._lookup_timeouts += 1
            logger.error(
                "DB lookup timeout for user",
                user_id=user_id,
                timeout=self._timeout,
                total_timeouts=self._lookup_timeouts,
            )
            raise
        except Exception as e:
            self._lookup_errors += 1
            logger.error(
                "Error fetching user",
                user_id=user_id,
                error=str(e),
                total_errors=self._lookup_errors,
            )
            raise

        self._lookup_success += 1
        return record

    def get_stats(self) -> dict[str, Any]:
        """Lookup counters for the health endpoint."""
        return {
            "timeout": self._timeout,
            "success": self._lookup_success,
            "timeouts": self._lookup_timeouts,
            "errors": self._lookup_errors,
        }

    def _get_user_sync(self, user_id: int) -> UserRecord | None:
        with get_db_context(self._session_factory) as db:
            user = db.execute(
                select(User)
                .options(joinedload(User.hotel))
                .where(User.id == user_id)
            ).scalar_one_or_none()

            if user is None:
                return None

            hotel = user.hotel
            return UserRecord(
                id=user.id,
                hotel_id=user.hotel_id,
                email=user.email,
                name=user.name,
                role=user.role,
                is_active=user.is_active,
                hotel_subscription_status=hotel.subscription_status if hotel else None,
                hotel_is_active=hotel.is_active if hotel else True,
            )
