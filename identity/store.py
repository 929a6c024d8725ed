"""Soft-delete aware persistence for user records."""
from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ConflictError
from .models import User, only_digits, utcnow

logger = logging.getLogger(__name__)


class UserCommandStore:
    """CRUD access to ``User`` rows where "delete" only flips ``is_available``.

    Every mutating call commits on its own. Update and delete targeting a
    missing or unavailable user are silent no-ops rather than errors; callers
    rely on that and must not be told the target was absent.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, user: User) -> User:
        self._db.add(user)
        self._commit()
        self._db.refresh(user)
        logger.info("Created user %s (role=%s)", user.id, user.role.value)
        return user

    def update(self, user: User) -> Optional[User]:
        existing = self._db.get(User, user.id)
        if existing is None or not existing.is_available:
            logger.info("Skipped update of missing or unavailable user %s", user.id)
            return None

        existing.name = user.name
        existing.email = user.email
        existing.national_id = only_digits(user.national_id)
        existing.role = user.role
        existing.password_hash = user.password_hash
        existing.last_updated_at = utcnow()

        self._commit()
        self._db.refresh(existing)
        return existing

    def soft_delete(self, user_id: uuid.UUID) -> None:
        user = self._db.get(User, user_id)
        if user is None:
            return

        user.is_available = False
        user.last_updated_at = utcnow()
        self._commit()
        logger.info("Soft-deleted user %s", user_id)

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Return the user whatever its availability; read-only."""

        return self._db.get(User, user_id)

    def find_active_by_national_id(self, national_id: str) -> Optional[User]:
        return self._db.scalars(
            select(User).where(User.national_id == national_id, User.is_available.is_(True))
        ).first()

    def find_active_by_email(self, email: str) -> Optional[User]:
        return self._db.scalars(
            select(User).where(func.lower(User.email) == email.lower(), User.is_available.is_(True))
        ).first()

    def exists_active_by_email_or_national_id(
        self,
        email: str,
        national_id: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        # Same case-insensitive email policy as find_active_by_email.
        stmt = select(User.id).where(
            User.is_available.is_(True),
            or_(func.lower(User.email) == email.lower(), User.national_id == only_digits(national_id)),
        )
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return self._db.scalars(stmt.limit(1)).first() is not None

    def _commit(self) -> None:
        try:
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            logger.warning("Uniqueness violation rejected by the database: %s", exc.orig)
            raise ConflictError() from exc
