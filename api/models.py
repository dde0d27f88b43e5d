"""
API request and response schemas.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from accounts.models import (
    FULLNAME_MIN_LEN,
    PublicUser,
    Role,
    validate_email_shape,
    validate_password_strength,
)


class CamelModel(BaseModel):
    """Accepts both field names and their camelCase aliases."""
    model_config = ConfigDict(populate_by_name=True)


class SignupRequest(BaseModel):
    """Signup body."""
    fullname: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")

    @field_validator("fullname")
    @classmethod
    def validate_fullname(cls, v: str) -> str:
        if len(v.strip()) < FULLNAME_MIN_LEN:
            raise ValueError(f"Fullname must be at least {FULLNAME_MIN_LEN} characters long")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_shape(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class CreateUserRequest(SignupRequest):
    """Admin user creation body."""
    role: Role = Field(default=Role.USER, description="Account role")


class SigninRequest(BaseModel):
    """Signin body. Shape is not validated beyond presence so failures stay a uniform 401."""
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., alias="currentPassword", min_length=1)
    new_password: str = Field(..., alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


class UpdateUserRequest(BaseModel):
    fullname: Optional[str] = Field(None, description="New full name")
    role: Optional[Role] = Field(None, description="New role")


class UserResponse(CamelModel):
    """Public user projection as returned to clients."""
    id: str
    fullname: str
    email: str
    role: Role
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        return cls(**user.model_dump())


class UserEnvelope(BaseModel):
    message: str
    user: UserResponse


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    page: int
    limit: int


class AccessTokenResponse(CamelModel):
    message: str
    access_token: str = Field(..., alias="accessToken")


class TokenPairResponse(CamelModel):
    message: str
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class MessageResponse(BaseModel):
    message: str


class DataResponse(BaseModel):
    """Success envelope used by the catalog and report endpoints."""
    status: str = "success"
    message: Optional[str] = None
    data: Any = None
    error: Optional[Any] = None


class ErrorDetail(BaseModel):
    code: int = Field(..., description="HTTP status code")
    type: str = Field(..., description="Machine-readable error kind")
    details: Any = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Error envelope returned for every failed request."""
    status: str = "error"
    message: str
    data: None = None
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
