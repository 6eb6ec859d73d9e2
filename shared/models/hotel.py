"""
Hotel (tenant) model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User


class Hotel(Base):
    """
    A hotel is the tenant boundary: staff, rooms and events all belong to one.

    subscription_status is one of trial, active, suspended, cancelled.
    Only trial and active hotels may open real-time connections.
    """

    __tablename__ = "hotels"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    subscription_status: Mapped[str] = mapped_column(Text, nullable=False, default="trial")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    users: Mapped[list["User"]] = relationship(back_populates="hotel")

    def __repr__(self) -> str:
        return f"<Hotel(id={self.id}, name='{self.name}', status='{self.subscription_status}')>"
