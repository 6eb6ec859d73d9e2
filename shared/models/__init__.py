"""
SQLAlchemy ORM models read by the gateway.

- base: Base class
- hotel: Hotel (the tenant)
- user: User (staff member)
"""

from .base import Base
from .hotel import Hotel
from .user import User

__all__ = ["Base", "Hotel", "User"]
