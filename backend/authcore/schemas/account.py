"""Account schemas"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: str) -> str:
    """Trim and lower-case an email, rejecting malformed addresses"""
    email = value.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")
    return email


class RegisterRequest(BaseModel):
    """Local sign-up input"""
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return normalize_email(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def _trimmed(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Must be a non-empty string")
        return v


class LoginRequest(BaseModel):
    """Password login input"""
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return v.strip().lower()


class ProfileUpdate(BaseModel):
    """Mutable profile fields; unknown fields are rejected"""
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = None
    avatar_url: Optional[str] = Field(None, max_length=500)

    @field_validator("first_name", "last_name")
    @classmethod
    def _trimmed(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Must be a non-empty string")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return normalize_email(v) if v is not None else v


class OAuthProfile(BaseModel):
    """Identity profile already verified by an external provider"""
    external_id: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=320)
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = Field(None, max_length=500)


class AccountResponse(BaseModel):
    """Account as returned to callers; never carries the password hash"""
    id: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    avatar_url: Optional[str]
    auth_origin: str
    email_confirmed: bool
    has_password: bool
    last_login_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class AccountPage(BaseModel):
    """Paginated account listing"""
    items: List[AccountResponse]
    total: int
    page: int
    limit: int
    pages: int


class AccountStats(BaseModel):
    """Account counts by origin and confirmation"""
    total: int
    by_origin: dict
    confirmed: int
    unconfirmed: int
