"""
Gatekeeper - User Store Interface

The authentication core does not persist users. The host application
supplies an object satisfying UserStore (ORM repository, HTTP client, ...).

Contract:
- Every method is awaitable
- Lookups return None on not-found, never raise
- Username and email comparisons are case-insensitive
"""

from typing import Optional, Protocol

from gatekeeper.auth.models import User


class UserStore(Protocol):
    """Persistence collaborator consumed by AuthService."""

    async def get_by_id(self, user_id: int) -> Optional[User]:
        ...

    async def get_by_username_or_email(self, identifier: str) -> Optional[User]:
        ...

    async def create(self, user: User) -> User:
        """Persist a new user and return it with its id assigned."""
        ...

    async def update(self, user: User) -> User:
        """Replace the stored record for user.id."""
        ...

    async def update_last_login(self, user_id: int) -> bool:
        ...

    async def update_email_confirmation(self, user_id: int, confirmed: bool) -> bool:
        ...

    async def is_username_unique(self, username: str, exclude_id: Optional[int] = None) -> bool:
        ...

    async def is_email_unique(self, email: str, exclude_id: Optional[int] = None) -> bool:
        ...
