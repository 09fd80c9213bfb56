"""Identity provider protocol.

The invitation flow needs a handful of identity operations: find a user,
create one with a password, mark the email verified and open a session for
auto-login. Anything satisfying this protocol can back it.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel

from bizcore.db.models.user import User


class IssuedSession(BaseModel):
    """A bearer session handed to a client."""

    token: str
    user_id: UUID
    expires_at: datetime


@runtime_checkable
class IdentityProvider(Protocol):
    """Interface the invitation service and API use for identity.

    Implementations that share the caller's database session must only flush,
    never commit, so user creation joins the caller's transaction.
    """

    async def get_user(self, user_id: UUID) -> User | None:
        """Get a user by id."""
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        """Get a user by email (case-insensitive)."""
        ...

    async def create_user(self, email: str, name: str, password: str) -> User:
        """Create a user with a hashed password."""
        ...

    async def mark_verified(self, user: User) -> None:
        """Mark the user's email address as verified."""
        ...

    async def create_session(self, user_id: UUID) -> IssuedSession:
        """Open a new bearer session for the user."""
        ...

    async def get_user_for_session(self, token: str) -> User | None:
        """Return the user owning an unexpired session token, else None."""
        ...
