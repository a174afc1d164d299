"""
Gatekeeper - Authentication Domain Models

Plain pydantic records for users. Persistence is owned by the caller's
UserStore implementation; nothing here knows about a database.

Security:
- Passwords are held only as PBKDF2 credentials (password_hash)
- All timestamps are timezone-aware UTC
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """User roles carried in tokens. New accounts get USER."""
    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """
    User account as seen by the authentication core.

    Attributes:
        id: Store-assigned identifier (None until persisted)
        username: Login name (unique, case-insensitive)
        email: Email address (unique, case-insensitive)
        password_hash: Stored PBKDF2 credential (never exposed)
        full_name: Optional display name
        role: RBAC role
        is_active: Inactive users cannot log in or use tokens
        email_confirmed: Whether the email address has been confirmed
        created_at: Account creation timestamp (UTC)
        last_login_at: Last successful login (UTC), None if never
    """
    id: Optional[int] = None
    username: str
    email: str
    password_hash: str = Field(..., repr=False)
    full_name: Optional[str] = None
    role: Role = Role.USER
    is_active: bool = True
    email_confirmed: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    last_login_at: Optional[datetime] = None
