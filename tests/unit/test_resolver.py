"""Unit tests for IdentityResolver."""

import pytest
from uuid_utils.compat import uuid7

from bizcore.core.exceptions import CompanyNotFoundError, WorkspaceNotFoundError
from bizcore.db.models.workspace import Company
from bizcore.tenancy.resolver import IdentityResolver, company_slug
from bizcore.tenancy.workspaces import WorkspaceService


@pytest.mark.asyncio
class TestResolveWorkspace:
    """Tests for workspace resolution."""

    async def test_resolve_by_id(self, db_session, seed):
        """Test a workspace id resolves to the workspace."""
        resolver = IdentityResolver(db_session)

        workspace = await resolver.resolve_workspace(str(seed.workspace.id))

        assert workspace.id == seed.workspace.id

    async def test_resolve_by_slug_case_insensitive(self, db_session, seed):
        """Test slugs match regardless of case."""
        resolver = IdentityResolver(db_session)

        workspace = await resolver.resolve_workspace("ACME-Group")

        assert workspace.id == seed.workspace.id

    async def test_unknown_reference_raises(self, db_session, seed):
        resolver = IdentityResolver(db_session)

        with pytest.raises(WorkspaceNotFoundError):
            await resolver.resolve_workspace("no-such-workspace")

    async def test_unknown_uuid_raises(self, db_session, seed):
        """Test a well-formed but unknown id is not found."""
        resolver = IdentityResolver(db_session)

        with pytest.raises(WorkspaceNotFoundError):
            await resolver.resolve_workspace(str(uuid7()))

    @pytest.mark.parametrize("reference", ["", "   "])
    async def test_blank_reference_raises(self, db_session, reference):
        resolver = IdentityResolver(db_session)

        with pytest.raises(WorkspaceNotFoundError):
            await resolver.resolve_workspace(reference)


@pytest.mark.asyncio
class TestResolveCompany:
    """Tests for company resolution inside a workspace."""

    async def test_resolve_by_id(self, db_session, seed):
        resolver = IdentityResolver(db_session)

        company = await resolver.resolve_company(str(seed.company.id), seed.workspace)

        assert company.id == seed.company.id

    async def test_resolve_by_stored_slug(self, db_session, seed):
        resolver = IdentityResolver(db_session)

        company = await resolver.resolve_company("aydoganlar", seed.workspace)

        assert company.id == seed.other_company.id

    async def test_resolve_by_slug_case_insensitive(self, db_session, seed):
        resolver = IdentityResolver(db_session)

        company = await resolver.resolve_company("LUNA", seed.workspace)

        assert company.id == seed.company.id

    async def test_resolve_by_derived_slug_when_none_stored(self, db_session, seed):
        """Test companies without a stored slug resolve by the derived slug."""
        legacy = Company(name="Özgür Lojistik", slug=None)
        await WorkspaceService(db_session).companies.add_to_workspace(legacy, seed.workspace.id)
        await db_session.commit()
        resolver = IdentityResolver(db_session)

        company = await resolver.resolve_company("ozgur", seed.workspace)

        assert company.id == legacy.id
        assert company_slug(company) == "ozgur"

    async def test_duplicate_slug_resolves_oldest(self, db_session, seed):
        """Test the oldest company wins when two share a first word."""
        service = WorkspaceService(db_session)
        await service.add_company(seed.workspace, "Luna Optik")
        await db_session.commit()
        resolver = IdentityResolver(db_session)

        company = await resolver.resolve_company("luna", seed.workspace)

        assert company.id == seed.company.id

    async def test_company_of_other_workspace_not_found_by_id(self, db_session, seed):
        """Test a company id from another workspace never resolves."""
        service = WorkspaceService(db_session)
        foreign_workspace = await service.create_workspace(seed.outsider.id, "Other Group")
        foreign = await service.add_company(foreign_workspace, "Foreign Company")
        await db_session.commit()
        resolver = IdentityResolver(db_session)

        with pytest.raises(CompanyNotFoundError) as exc_info:
            await resolver.resolve_company(str(foreign.id), seed.workspace)

        assert exc_info.value.workspace_id == seed.workspace.id

    async def test_company_of_other_workspace_not_found_by_slug(self, db_session, seed):
        service = WorkspaceService(db_session)
        foreign_workspace = await service.create_workspace(seed.outsider.id, "Other Group")
        await service.add_company(foreign_workspace, "Foreign Company")
        await db_session.commit()
        resolver = IdentityResolver(db_session)

        with pytest.raises(CompanyNotFoundError):
            await resolver.resolve_company("foreign", seed.workspace)

    async def test_resolve_scope(self, db_session, seed):
        resolver = IdentityResolver(db_session)

        scope = await resolver.resolve_scope("acme-group", "luna")

        assert scope.workspace.id == seed.workspace.id
        assert scope.company is not None
        assert scope.company.id == seed.company.id

    async def test_resolve_scope_without_company(self, db_session, seed):
        resolver = IdentityResolver(db_session)

        scope = await resolver.resolve_scope("acme-group")

        assert scope.company is None
