"""
Gatekeeper - Authentication Package

Credential and session-token core with:
- PBKDF2-SHA256 password hashing and strength policy
- Signed, expiring JWT bearer tokens
- Login / registration orchestration over a pluggable user store
"""

from gatekeeper.auth.models import User, Role
from gatekeeper.auth.password import PasswordService, PasswordPolicyResult, PasswordViolation
from gatekeeper.auth.tokens import TokenService, TokenClaims, TokenPurpose
from gatekeeper.auth.service import AuthService
from gatekeeper.auth.store import UserStore

__all__ = [
    "User",
    "Role",
    "PasswordService",
    "PasswordPolicyResult",
    "PasswordViolation",
    "TokenService",
    "TokenClaims",
    "TokenPurpose",
    "AuthService",
    "UserStore",
]
