"""Pydantic schemas for the commands, queries and responses of the users service."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .models import RoleEnum


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class TokensCommand(BaseModel):
    user: Optional[str] = Field(
        None,
        description="Login identifier: a national id (CPF) or an e-mail.",
        examples=["82909117006", "admin@admin.com"],
    )
    password_base64: Optional[str] = Field(
        None,
        description="Base64-encoded password.",
        examples=["YWRtaW4xMjM="],
    )


class UserCommand(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    national_id: Optional[str] = Field(None, examples=["111.222.333-44"])
    password_base64: Optional[str] = Field(None, description="Base64-encoded password.")


class CreateClientCommand(UserCommand):
    pass


class CreateEmployeeCommand(UserCommand):
    role: RoleEnum = RoleEnum.EMPLOYEE


class UpdateUserCommand(UserCommand):
    id: Optional[str] = None
    role: Optional[RoleEnum] = None


class UserRead(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    national_id: str
    role: RoleEnum
    is_available: bool
    created_at: datetime
    last_updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ValidationErrorItem(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    detail: str
    errors: list[ValidationErrorItem] = []
