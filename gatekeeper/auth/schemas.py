"""
Gatekeeper - Authentication Request/Response Schemas

Pydantic models for the inputs and result envelopes of AuthService.
Separates the public contract from the internal User record.
"""

import re
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator

from gatekeeper.auth.models import User


T = TypeVar("T")

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")


class ApiResponse(BaseModel, Generic[T]):
    """
    Standard result envelope for every AuthService operation.

    Callers must treat success=False the same way whatever the cause.
    """
    success: bool
    message: str = ""
    data: Optional[T] = None
    errors: Optional[List[str]] = None

    @classmethod
    def success_result(cls, data: T, message: str = "Operation completed successfully") -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def error_result(cls, message: str, errors: Optional[List[str]] = None) -> "ApiResponse[T]":
        return cls(success=False, message=message, errors=errors)


class LoginRequest(BaseModel):
    """Input for AuthService.login."""
    username_or_email: str = Field(..., min_length=1, description="Username or email address")
    password: str = Field(..., min_length=1, description="User password")
    remember_me: bool = Field(default=False, description="Issue a long-lived token")

    @field_validator("username_or_email")
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username or email is required")
        return v


class RegisterRequest(BaseModel):
    """Input for AuthService.register."""
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=100)
    password: str = Field(..., min_length=1)
    confirm_password: str
    full_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def username_format(cls, v: str) -> str:
        v = v.strip()
        if not re.match(r"^[A-Za-z0-9_.-]{3,50}$", v):
            raise ValueError("Username may only contain letters, digits, '_', '.' and '-'")
        return v

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        """Basic email format validation (allows .local for development)."""
        v = v.strip()
        if not _EMAIL_RE.match(v):
            raise ValueError("Invalid email format")
        return v.lower()

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserInfo(BaseModel):
    """Sanitized user view. Never carries the stored credential."""
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: str
    email_confirmed: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserInfo":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            role=user.role.value,
            email_confirmed=user.email_confirmed,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )


class LoginResponse(BaseModel):
    """Payload of a successful login."""
    token: str = Field(..., description="Signed bearer token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_at: datetime = Field(..., description="Token expiry (UTC)")
    user: UserInfo
