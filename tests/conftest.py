"""
Gatekeeper - Test Configuration

Pytest fixtures for authentication testing.
Provides settings, a controllable clock, an in-memory user store and
service fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import pytest

from gatekeeper.auth.models import Role, User, utcnow
from gatekeeper.auth.password import PasswordService
from gatekeeper.auth.service import AuthService
from gatekeeper.auth.tokens import TokenService
from gatekeeper.config import Settings


TEST_SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"

# Fewer PBKDF2 rounds keep the suite fast; the format is unchanged
TEST_ITERATIONS = 1_000


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryUserStore:
    """Dict-backed UserStore used in place of a real database."""

    def __init__(self):
        self.users: Dict[int, User] = {}
        self._next_id = 1
        self.last_login_updates = []

    def add(self, user: User) -> User:
        """Synchronous insert for fixtures."""
        stored = user.model_copy(update={"id": self._next_id})
        self.users[stored.id] = stored
        self._next_id += 1
        return stored

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    async def get_by_username_or_email(self, identifier: str) -> Optional[User]:
        needle = identifier.lower()
        for user in self.users.values():
            if user.username.lower() == needle or user.email.lower() == needle:
                return user
        return None

    async def create(self, user: User) -> User:
        return self.add(user)

    async def update(self, user: User) -> User:
        self.users[user.id] = user
        return user

    async def update_last_login(self, user_id: int) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.users[user_id] = user.model_copy(update={"last_login_at": utcnow()})
        self.last_login_updates.append(user_id)
        return True

    async def update_email_confirmation(self, user_id: int, confirmed: bool) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.users[user_id] = user.model_copy(update={"email_confirmed": confirmed})
        return True

    async def is_username_unique(self, username: str, exclude_id: Optional[int] = None) -> bool:
        return not any(
            u.username.lower() == username.lower() and u.id != exclude_id
            for u in self.users.values()
        )

    async def is_email_unique(self, email: str, exclude_id: Optional[int] = None) -> bool:
        return not any(
            u.email.lower() == email.lower() and u.id != exclude_id
            for u in self.users.values()
        )


@pytest.fixture
def settings() -> Settings:
    """Settings with a test secret, independent of the environment."""
    return Settings(
        SECRET_KEY=TEST_SECRET_KEY,
        JWT_ISSUER="gatekeeper-test",
        JWT_AUDIENCE="gatekeeper-test-users",
        ACCESS_TOKEN_EXPIRE_MINUTES=15,
        REMEMBER_ME_EXPIRE_DAYS=30,
        PASSWORD_HASH_ITERATIONS=TEST_ITERATIONS,
        _env_file=None,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def password_service() -> PasswordService:
    return PasswordService(iterations=TEST_ITERATIONS)


@pytest.fixture
def token_service(settings, clock) -> TokenService:
    return TokenService(settings, clock=clock)


@pytest.fixture
def store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def auth_service(store, password_service, token_service) -> AuthService:
    return AuthService(store, password_service, token_service)


def make_user(
    password_service: PasswordService,
    username: str,
    email: str,
    password: str,
    role: Role = Role.USER,
    is_active: bool = True,
) -> User:
    """Build an unsaved user with a hashed password."""
    return User(
        username=username,
        email=email,
        password_hash=password_service.hash(password),
        role=role,
        is_active=is_active,
    )


@pytest.fixture
def test_user(store, password_service) -> User:
    """Active user 'bob' with password 'BobPass#2468'."""
    return store.add(make_user(password_service, "bob", "bob@test.com", "BobPass#2468"))


@pytest.fixture
def test_admin(store, password_service) -> User:
    """Active admin 'root' with password 'AdminPass#97'."""
    return store.add(
        make_user(password_service, "root", "root@test.com", "AdminPass#97", role=Role.ADMIN)
    )


@pytest.fixture
def inactive_user(store, password_service) -> User:
    """Deactivated user 'carol' with password 'CarolPass#97'."""
    return store.add(
        make_user(password_service, "carol", "carol@test.com", "CarolPass#97", is_active=False)
    )
