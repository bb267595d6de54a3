from __future__ import annotations

import re

from pydantic import Field, field_validator

from policy_admin.models.enums import AdminRole
from policy_admin.schemas.base import CamelModel, UtcDateTime

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def normalize_email(value: str) -> str:
    return value.strip().lower()


def _checked_email(value: str) -> str:
    value = normalize_email(value)
    if not value:
        raise ValueError("Please provide email and password")
    if not EMAIL_RE.match(value):
        raise ValueError("Please provide a valid email")
    return value


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _checked_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Please provide email and password")
        return v


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str


class AdminCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    role: AdminRole = AdminRole.EDITOR

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _checked_email(v)


class AdminStatusUpdate(CamelModel):
    is_active: bool


class AdminRead(CamelModel):
    id: int
    name: str
    email: str
    role: AdminRole
    is_active: bool
    last_login: UtcDateTime | None = None
    created_at: UtcDateTime
