"""Unit tests for WorkspaceService."""

import pytest

from bizcore.core.audit import AuditLogger
from bizcore.core.exceptions import InvalidInputError
from bizcore.db.models.audit import AuditEventType
from bizcore.db.repositories.workspace import CompanyRepository
from bizcore.tenancy.workspaces import WorkspaceService, WorkspaceSlugTakenError


@pytest.mark.asyncio
async def test_create_workspace_derives_slug(db_session, make_user):
    """Test the slug is derived from the name when not given."""
    owner = await make_user("founder@example.com")

    workspace = await WorkspaceService(db_session).create_workspace(owner.id, "Öztürk Holding")

    assert workspace.slug == "ozturk-holding"
    assert workspace.owner_id == owner.id


@pytest.mark.asyncio
async def test_create_workspace_normalizes_explicit_slug(db_session, make_user):
    owner = await make_user("founder@example.com")

    workspace = await WorkspaceService(db_session).create_workspace(
        owner.id, "Anything", slug="My-Team"
    )

    assert workspace.slug == "my-team"


@pytest.mark.asyncio
async def test_create_workspace_duplicate_slug(db_session, seed):
    with pytest.raises(WorkspaceSlugTakenError) as exc_info:
        await WorkspaceService(db_session).create_workspace(seed.outsider.id, "ACME group")

    assert exc_info.value.slug == "acme-group"


@pytest.mark.asyncio
async def test_create_workspace_unusable_slug(db_session, make_user):
    owner = await make_user("founder@example.com")

    with pytest.raises(InvalidInputError):
        await WorkspaceService(db_session).create_workspace(owner.id, "!!!")


@pytest.mark.asyncio
async def test_add_company_stores_slug(db_session, seed):
    """Test the company slug is stored once at creation."""
    company = await WorkspaceService(db_session).add_company(seed.workspace, " Marmara Diş Deposu ")

    assert company.name == "Marmara Diş Deposu"
    assert company.slug == "marmara"
    companies = await CompanyRepository(db_session).list_for_workspace(seed.workspace.id)
    assert [c.id for c in companies][-1] == company.id


@pytest.mark.asyncio
async def test_add_company_rejects_blank_name(db_session, seed):
    with pytest.raises(InvalidInputError):
        await WorkspaceService(db_session).add_company(seed.workspace, "   ")


@pytest.mark.asyncio
async def test_workspace_creation_is_audited(db_session, seed):
    events = await AuditLogger(db_session).query_events(
        workspace_id=seed.workspace.id, event_type=AuditEventType.WORKSPACE_CREATED
    )

    assert len(events) == 1
    assert events[0].event_data["slug"] == "acme-group"
    assert events[0].user_id == seed.owner.id
