"""Application service: the commands and queries exposed by the users service."""
from __future__ import annotations

import logging
import uuid
from typing import Optional

from .auth import decode_base64_password, get_password_hash
from .credentials import CredentialVerifier
from .errors import ConflictError, NotFound
from .models import RoleEnum, User
from .schemas import CreateClientCommand, CreateEmployeeCommand, Token, TokensCommand, UpdateUserCommand, UserCommand
from .store import UserCommandStore
from .tokens import TokenIssuer
from .validators import (
    ensure_valid,
    validate_create_client,
    validate_create_employee,
    validate_tokens_command,
    validate_update_user,
    validate_user_id,
)

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, store: UserCommandStore, issuer: TokenIssuer) -> None:
        self._store = store
        self._issuer = issuer
        self._verifier = CredentialVerifier(store)

    def create_client(self, command: CreateClientCommand) -> User:
        ensure_valid(validate_create_client, command)
        return self._register(command, RoleEnum.CLIENT)

    def create_employee(self, command: CreateEmployeeCommand) -> User:
        ensure_valid(validate_create_employee, command)
        return self._register(command, command.role)

    def update_user(self, command: UpdateUserCommand) -> Optional[User]:
        """Overwrite an available user. Missing or deleted targets are skipped silently."""

        ensure_valid(validate_update_user, command)
        user_id = uuid.UUID(command.id.strip())
        target = self._store.get_by_id(user_id)
        if target is None or not target.is_available:
            logger.info("Skipped update of missing or unavailable user %s", user_id)
            return None
        if self._store.exists_active_by_email_or_national_id(
            command.email.strip(), command.national_id, exclude_id=user_id
        ):
            raise ConflictError()
        return self._store.update(self._build_user(command, command.role, user_id))

    def delete_user(self, user_id: str) -> None:
        ensure_valid(validate_user_id, user_id)
        self._store.soft_delete(uuid.UUID(user_id.strip()))

    def get_user_by_id(self, user_id: str) -> User:
        ensure_valid(validate_user_id, user_id)
        user = self._store.get_by_id(uuid.UUID(user_id.strip()))
        if user is None:
            raise NotFound()
        return user

    def generate_tokens(self, command: TokensCommand) -> Token:
        ensure_valid(validate_tokens_command, command)
        password = decode_base64_password(command.password_base64)
        user = self._verifier.verify(command.user, password)
        issued = self._issuer.issue(user)
        return Token(access_token=issued.access_token, expires_in=issued.expires_in)

    def _register(self, command: UserCommand, role: RoleEnum) -> User:
        # Check-then-insert; the partial unique indexes catch a lost race.
        if self._store.exists_active_by_email_or_national_id(command.email.strip(), command.national_id):
            raise ConflictError()
        return self._store.create(self._build_user(command, role))

    @staticmethod
    def _build_user(command: UserCommand, role: RoleEnum, user_id: Optional[uuid.UUID] = None) -> User:
        user = User(
            name=command.name.strip(),
            email=command.email.strip(),
            national_id=command.national_id,
            role=role,
            password_hash=get_password_hash(decode_base64_password(command.password_base64)),
            is_available=True,
        )
        if user_id is not None:
            user.id = user_id
        return user
