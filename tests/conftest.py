"""Pytest fixtures for Bizcore tests."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from bizcore.api.app import create_app
from bizcore.config.settings import Settings
from bizcore.db.config import close_db, create_all, create_engine_from_settings, create_session_factory
from bizcore.db.models.user import User
from bizcore.db.models.workspace import Company, Workspace, WorkspaceMember, WorkspaceRole
from bizcore.db.repositories.workspace import MemberRepository
from bizcore.identity.provider import DatabaseIdentityProvider
from bizcore.invitations.email import LoggingEmailSender
from bizcore.invitations.service import InvitationService
from bizcore.tenancy.access import RestrictedToCompany
from bizcore.tenancy.workspaces import WorkspaceService

TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings for tests: a throwaway SQLite file per test."""
    return Settings(
        ENVIRONMENT="test",
        DEBUG=True,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'bizcore.db'}",
        app_base_url="https://app.example.com",
        log_level="DEBUG",
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine with all tables."""
    engine = create_engine_from_settings(test_settings)
    await create_all(engine)

    yield engine

    await close_db(engine)


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Seed data
# =============================================================================


@dataclass
class Seed:
    """One workspace with two companies and a user for every role.

    ``restricted`` is a member confined to ``company``; ``outsider`` has no
    access at all.
    """

    owner: User
    admin: User
    member: User
    viewer: User
    restricted: User
    outsider: User
    workspace: Workspace
    company: Company
    other_company: Company


@pytest.fixture
def make_user(db_session: AsyncSession, test_settings: Settings):
    """Factory creating a user with the shared test password."""
    identity = DatabaseIdentityProvider(db_session, test_settings)

    async def _make(email: str, name: str | None = None) -> User:
        return await identity.create_user(email, name or email.split("@")[0].title(), TEST_PASSWORD)

    return _make


@pytest.fixture
def add_member(db_session: AsyncSession):
    """Factory inserting a membership row, optionally restricted to one company."""
    members = MemberRepository(db_session)

    async def _add(
        workspace: Workspace,
        user: User,
        role: WorkspaceRole = WorkspaceRole.MEMBER,
        restricted_to: Company | None = None,
    ) -> WorkspaceMember:
        permissions = (
            RestrictedToCompany(restricted_to.id).to_permissions() if restricted_to else None
        )
        return await members.create(
            WorkspaceMember(
                workspace_id=workspace.id,
                user_id=user.id,
                role=role.value,
                permissions=permissions,
            )
        )

    return _add


@pytest_asyncio.fixture
async def seed(db_session: AsyncSession, make_user, add_member) -> Seed:
    """Committed tenant fixture shared by service and API tests."""
    owner = await make_user("owner@example.com", "Olivia Owner")
    admin = await make_user("admin@example.com", "Adam Admin")
    member = await make_user("member@example.com", "Mia Member")
    viewer = await make_user("viewer@example.com", "Victor Viewer")
    restricted = await make_user("restricted@example.com", "Rita Restricted")
    outsider = await make_user("outsider@example.com", "Oscar Outsider")

    workspaces = WorkspaceService(db_session)
    workspace = await workspaces.create_workspace(owner.id, "Acme Group")
    company = await workspaces.add_company(workspace, "Luna Denta Teknoloji")
    other_company = await workspaces.add_company(workspace, "Aydoğanlar Sağlık")

    await add_member(workspace, admin, WorkspaceRole.ADMIN)
    await add_member(workspace, member, WorkspaceRole.MEMBER)
    await add_member(workspace, viewer, WorkspaceRole.VIEWER)
    await add_member(workspace, restricted, WorkspaceRole.MEMBER, restricted_to=company)
    await db_session.commit()

    return Seed(
        owner=owner,
        admin=admin,
        member=member,
        viewer=viewer,
        restricted=restricted,
        outsider=outsider,
        workspace=workspace,
        company=company,
        other_company=other_company,
    )


@pytest_asyncio.fixture
async def restricted_admin(db_session: AsyncSession, make_user, add_member, seed: Seed) -> User:
    """An admin confined to the seed workspace's first company."""
    user = await make_user("radmin@example.com", "Rana Restricted-Admin")
    await add_member(seed.workspace, user, WorkspaceRole.ADMIN, restricted_to=seed.company)
    await db_session.commit()
    return user


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def email_sender() -> LoggingEmailSender:
    return LoggingEmailSender()


@pytest.fixture
def invitation_service(
    db_session: AsyncSession, email_sender: LoggingEmailSender, test_settings: Settings
) -> InvitationService:
    return InvitationService(db_session, email_sender, settings=test_settings)


# =============================================================================
# API test fixtures
# =============================================================================


@pytest.fixture
def test_app(
    test_settings: Settings, test_engine: AsyncEngine, email_sender: LoggingEmailSender
) -> FastAPI:
    """Create a FastAPI test application bound to the test database."""
    return create_app(settings=test_settings, engine=test_engine, email_sender=email_sender)


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Provides an httpx.AsyncClient configured to call the test application
    directly without network overhead.
    """
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def auth_headers(db_session: AsyncSession, test_settings: Settings):
    """Factory opening a committed session for a user and returning its headers."""
    identity = DatabaseIdentityProvider(db_session, test_settings)

    async def _headers(user: User) -> dict[str, str]:
        issued = await identity.create_session(user.id)
        await db_session.commit()
        return {"Authorization": f"Bearer {issued.token}"}

    return _headers
