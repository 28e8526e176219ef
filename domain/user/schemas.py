"""User domain schemas."""

import re
import uuid
from typing import Optional

from pydantic import field_validator

from core.dates import IsoDateTime
from domain.common import ApiModel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip().lower() or None


class RegisterRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v):
        return normalize_email(v)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v):
        return v.strip() if v else v


class LoginRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v):
        return normalize_email(v)


class ResendVerificationRequest(ApiModel):
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v):
        return normalize_email(v)


class UserResponse(ApiModel):
    id: uuid.UUID
    email: str
    name: str
    email_verified: bool = False
    email_verified_at: Optional[IsoDateTime] = None
    created_at: IsoDateTime
    updated_at: IsoDateTime


class UserEnvelope(ApiModel):
    user: UserResponse
