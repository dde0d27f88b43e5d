"""
Pydantic models for user accounts.

``UserRecord`` is the decrypted, in-process view of a stored user document;
``PublicUser`` is the projection that is safe to embed in tokens and return
to clients.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_REGEX = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#])[A-Za-z\d@$!%*?&#]{8,}$"
)
FULLNAME_MIN_LEN = 3
PASSWORD_POLICY = (
    "Password must be at least 8 characters long and contain an uppercase letter, "
    "a lowercase letter, a number and one of @$!%*?&#"
)


class Role(str, Enum):
    """Account role."""
    USER = "user"
    ADMIN = "admin"


class SessionState(str, Enum):
    """
    Server-side session state of a user.

    A user holds at most one refresh token at a time; issuing a new one
    replaces the previous one.
    """
    ACTIVE = "active"
    SIGNED_OUT = "signed_out"


def validate_email_shape(value: str) -> str:
    value = value.strip()
    if not EMAIL_REGEX.match(value):
        raise ValueError(f"{value} is not a valid email address!")
    return value


def validate_password_strength(value: str) -> str:
    if not PASSWORD_REGEX.match(value):
        raise ValueError(PASSWORD_POLICY)
    return value


class UserCreate(BaseModel):
    """Candidate for a new user record."""
    fullname: str = Field(..., description="Full name of the user")
    email: str = Field(..., description="Email address, used as login")
    password: str = Field(..., description="Plaintext password")
    role: Role = Field(default=Role.USER, description="Account role")

    @field_validator("fullname")
    @classmethod
    def validate_fullname(cls, v: str) -> str:
        v = v.strip()
        if len(v) < FULLNAME_MIN_LEN:
            raise ValueError(f"Fullname must be at least {FULLNAME_MIN_LEN} characters long")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_shape(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class PublicUser(BaseModel):
    """Public projection of a user: no password, salt or token material."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique user identifier")
    fullname: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    role: Role = Field(..., description="Account role")
    created_at: Optional[datetime] = Field(None, alias="createdAt", description="Creation timestamp")

    def to_claims(self) -> Dict[str, Any]:
        """JSON-safe form used as the ``user`` claim of a token."""
        return self.model_dump(mode="json", by_alias=True)


class UserRecord(BaseModel):
    """Decrypted user record as loaded from the users collection."""

    id: str
    fullname: str
    email: str
    password: str = Field(..., repr=False, description="SHA-256 of password + salt")
    salt: str = Field(..., repr=False)
    role: Role = Role.USER
    refresh_token: Optional[str] = Field(None, repr=False, description="Encrypted refresh token")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def session_state(self) -> SessionState:
        return SessionState.ACTIVE if self.refresh_token else SessionState.SIGNED_OUT

    @property
    def has_active_session(self) -> bool:
        return self.session_state is SessionState.ACTIVE

    def public(self) -> PublicUser:
        return PublicUser(
            id=self.id,
            fullname=self.fullname,
            email=self.email,
            role=self.role,
            created_at=self.created_at,
        )
