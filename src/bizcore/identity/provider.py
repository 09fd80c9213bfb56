"""Database-backed identity provider."""

import secrets
from datetime import timedelta
from uuid import UUID

from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.config.settings import Settings, get_settings
from bizcore.core.exceptions import InvalidInputError
from bizcore.core.logging import get_logger
from bizcore.db.models.base import utcnow
from bizcore.db.models.user import User, UserSession
from bizcore.db.repositories.workspace import UserRepository, UserSessionRepository
from bizcore.identity.protocol import IssuedSession

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


class DatabaseIdentityProvider:
    """Identity provider storing users and sessions in the application database.

    Writes are flushed on the given session; the caller commits.
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.users = UserRepository(db)
        self.sessions = UserSessionRepository(db)

    async def get_user(self, user_id: UUID) -> User | None:
        return await self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self.users.get_by_email(email)

    async def create_user(self, email: str, name: str, password: str) -> User:
        """Create a user.

        Raises:
            InvalidInputError: If the name is empty or the password too short
        """
        if not name or not name.strip():
            raise InvalidInputError("Name is required", field="name")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
            )

        user = await self.users.create(
            User(
                email=email.strip().lower(),
                name=name.strip(),
                password_hash=hash_password(password),
                email_verified=False,
            )
        )
        logger.info("user_created", user_id=str(user.id))
        return user

    async def mark_verified(self, user: User) -> None:
        user.email_verified = True
        await self.db.flush()

    async def create_session(self, user_id: UUID) -> IssuedSession:
        session = await self.sessions.create(
            UserSession(
                token=secrets.token_urlsafe(32),
                user_id=user_id,
                expires_at=utcnow() + timedelta(days=self.settings.session_ttl_days),
            )
        )
        return IssuedSession(
            token=session.token, user_id=session.user_id, expires_at=session.expires_at
        )

    async def get_user_for_session(self, token: str) -> User | None:
        if not token:
            return None
        session = await self.sessions.get_by_token(token)
        if session is None or session.expires_at <= utcnow():
            return None
        return await self.users.get(session.user_id)
