"""Structural checks run on every command before it reaches the store or the verifier.

Each validator returns the full list of violated rules so callers see every
problem at once; ``ensure_valid`` turns a non-empty list into a ``ValidationError``.
"""
from __future__ import annotations

import uuid
from typing import Callable, List, Optional, TypeVar

from email_validator import EmailNotValidError, validate_email

from .auth import is_base64_string
from .errors import FieldError, ValidationError
from .models import RoleEnum, only_digits
from .schemas import CreateClientCommand, CreateEmployeeCommand, TokensCommand, UpdateUserCommand, UserCommand

NATIONAL_ID_LENGTH = 11
NAME_MAX_LENGTH = 150
EMAIL_MAX_LENGTH = 255

EMPLOYEE_ROLES = frozenset({RoleEnum.EMPLOYEE, RoleEnum.ADMIN})

C = TypeVar("C")


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _is_uuid(value: Optional[str]) -> bool:
    if _blank(value):
        return False
    try:
        uuid.UUID(value.strip())
    except ValueError:
        return False
    return True


def _is_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_tokens_command(command: TokensCommand) -> List[FieldError]:
    errors: List[FieldError] = []
    if _blank(command.user):
        errors.append(FieldError("user", "The 'user' field is required."))
    if _blank(command.password_base64):
        errors.append(FieldError("password_base64", "The password is required."))
    elif not is_base64_string(command.password_base64):
        errors.append(FieldError("password_base64", "The password must be base64 encoded."))
    return errors


def _validate_user_fields(command: UserCommand) -> List[FieldError]:
    errors: List[FieldError] = []

    if _blank(command.name):
        errors.append(FieldError("name", "The name is required."))
    elif len(command.name.strip()) > NAME_MAX_LENGTH:
        errors.append(FieldError("name", f"The name must have at most {NAME_MAX_LENGTH} characters."))

    if _blank(command.email):
        errors.append(FieldError("email", "The e-mail is required."))
    elif len(command.email) > EMAIL_MAX_LENGTH or not _is_email(command.email.strip()):
        errors.append(FieldError("email", "The e-mail is not valid."))

    if _blank(command.national_id):
        errors.append(FieldError("national_id", "The national id is required."))
    elif len(only_digits(command.national_id)) != NATIONAL_ID_LENGTH:
        errors.append(FieldError("national_id", f"The national id must have {NATIONAL_ID_LENGTH} digits."))

    if _blank(command.password_base64):
        errors.append(FieldError("password_base64", "The password is required."))
    elif not is_base64_string(command.password_base64):
        errors.append(FieldError("password_base64", "The password must be base64 encoded."))

    return errors


def validate_create_client(command: CreateClientCommand) -> List[FieldError]:
    return _validate_user_fields(command)


def validate_create_employee(command: CreateEmployeeCommand) -> List[FieldError]:
    errors = _validate_user_fields(command)
    if command.role not in EMPLOYEE_ROLES:
        errors.append(FieldError("role", "An employee must have the 'employee' or 'admin' role."))
    return errors


def validate_update_user(command: UpdateUserCommand) -> List[FieldError]:
    errors: List[FieldError] = []
    if not _is_uuid(command.id):
        errors.append(FieldError("id", "The id must be a valid UUID."))
    errors.extend(_validate_user_fields(command))
    if command.role is None:
        errors.append(FieldError("role", "The role is required."))
    return errors


def validate_user_id(user_id: Optional[str]) -> List[FieldError]:
    if not _is_uuid(user_id):
        return [FieldError("id", "The id must be a valid UUID.")]
    return []


def ensure_valid(validator: Callable[[C], List[FieldError]], command: C) -> C:
    """Run ``validator`` and raise one ``ValidationError`` listing every violation."""

    errors = validator(command)
    if errors:
        raise ValidationError(errors)
    return command
