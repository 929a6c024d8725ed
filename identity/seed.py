"""Seed data applied when the service starts."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from .auth import get_password_hash
from .config import Settings
from .models import RoleEnum, User, only_digits
from .store import UserCommandStore

logger = logging.getLogger(__name__)


def ensure_admin_user(db: Session, settings: Settings) -> Optional[User]:
    """Create the default admin unless an available user already owns its e-mail or national id.

    Returns the created user, or ``None`` when nothing was done.
    """

    store = UserCommandStore(db)
    if store.exists_active_by_email_or_national_id(settings.admin_email, settings.admin_national_id):
        return None

    admin = store.create(
        User(
            name=settings.admin_name,
            email=settings.admin_email,
            national_id=only_digits(settings.admin_national_id),
            role=RoleEnum.ADMIN,
            password_hash=get_password_hash(settings.admin_password),
            is_available=True,
        )
    )
    logger.info("Seeded default admin user %s", admin.email)
    return admin
