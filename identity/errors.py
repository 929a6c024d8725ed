"""Error taxonomy of the users service and the FastAPI handlers mapping it to HTTP."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Sequence

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class IdentityError(Exception):
    """Base class for every error raised by the identity package."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class ValidationError(IdentityError):
    """Malformed input. Carries every violated rule, not only the first one."""

    detail = "Validation failed"

    def __init__(self, errors: Sequence[FieldError], detail: str | None = None) -> None:
        super().__init__(detail)
        self.errors: List[FieldError] = list(errors)


class InvalidCredentials(IdentityError):
    """Identifier/password pair did not resolve to an available user.

    The message never reveals whether the identifier or the password was wrong.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid credentials"


class InvalidTokenError(IdentityError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid token"


class PermissionDenied(IdentityError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Insufficient permissions"


class NotFound(IdentityError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "User not found"


class ConflictError(IdentityError):
    status_code = status.HTTP_409_CONFLICT
    detail = "A user with this email or national id already exists"


class ConfigurationError(RuntimeError):
    """Missing or invalid startup configuration. Never handled: the process must not start."""


def identity_error_handler(_: Request, exc: IdentityError) -> JSONResponse:
    content: dict = {"detail": exc.detail}
    headers = None
    if isinstance(exc, ValidationError):
        content["errors"] = [asdict(error) for error in exc.errors]
    if isinstance(exc, InvalidTokenError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


def apply_error_handlers(app: FastAPI) -> None:
    """Attach the identity error handlers to an app."""

    app.add_exception_handler(IdentityError, identity_error_handler)
