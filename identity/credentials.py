"""Resolve a login identifier and password into a verified user."""
from __future__ import annotations

import logging
import re
from typing import Optional

from .auth import dummy_verify, verify_password
from .errors import InvalidCredentials
from .models import User, only_digits
from .store import UserCommandStore

logger = logging.getLogger(__name__)

NATIONAL_ID_PATTERN = re.compile(r"^\d{3}\.?\d{3}\.?\d{3}-?\d{2}$")


def looks_like_national_id(identifier: str) -> bool:
    return bool(NATIONAL_ID_PATTERN.match(identifier.strip()))


class CredentialVerifier:
    def __init__(self, store: UserCommandStore) -> None:
        self._store = store

    def find_user(self, identifier: str) -> Optional[User]:
        identifier = identifier.strip()
        if looks_like_national_id(identifier):
            return self._store.find_active_by_national_id(only_digits(identifier))
        return self._store.find_active_by_email(identifier)

    def verify(self, identifier: str, password: str) -> User:
        """Return the available user owning ``identifier`` if ``password`` matches.

        An unknown identifier and a wrong password raise the same
        ``InvalidCredentials``; the hash check runs in both cases.
        """

        user = self.find_user(identifier)
        if user is None:
            dummy_verify()
            logger.info("Rejected credentials: no available user for identifier")
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.info("Rejected credentials for user %s", user.id)
            raise InvalidCredentials()
        return user
