"""SQLAlchemy models for the users service."""
from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum as SqlEnum, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, validates

from .database import Base

_NON_DIGITS = re.compile(r"\D")


def only_digits(value: str) -> str:
    """Strip every non-digit character, e.g. ``829.091.170-06`` -> ``82909117006``."""

    return _NON_DIGITS.sub("", value or "")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoleEnum(str, Enum):
    CLIENT = "client"
    EMPLOYEE = "employee"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(150))
    email: Mapped[str] = mapped_column(String(255), index=True)
    national_id: Mapped[str] = mapped_column(String(11), index=True)
    role: Mapped[RoleEnum] = mapped_column(SqlEnum(RoleEnum), default=RoleEnum.CLIENT)
    password_hash: Mapped[str] = mapped_column(String(255))
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)

    @validates("national_id")
    def _normalize_national_id(self, _key: str, value: str) -> str:
        return only_digits(value)


# Uniqueness only holds among available users; soft-deleted rows keep their
# email and national id so they may be registered again.
Index(
    "uq_users_available_email",
    func.lower(User.email),
    unique=True,
    sqlite_where=User.is_available.is_(True),
    postgresql_where=User.is_available.is_(True),
)
Index(
    "uq_users_available_national_id",
    User.national_id,
    unique=True,
    sqlite_where=User.is_available.is_(True),
    postgresql_where=User.is_available.is_(True),
)
