"""Unit tests for BusinessEntityService."""

import pytest
from pydantic import ValidationError

from bizcore.core.audit import AuditLogger
from bizcore.core.exceptions import (
    DuplicateEntityCodeError,
    DuplicateTaxNumberError,
    EntityNotFoundError,
)
from bizcore.db.models.audit import AuditEventType
from bizcore.db.models.business_entity import BusinessEntityType
from bizcore.entities.service import BusinessEntityService
from bizcore.entities.types import BusinessEntityCreate


@pytest.fixture
def service(db_session) -> BusinessEntityService:
    return BusinessEntityService(db_session)


def _create(entity_type: str, name: str, **fields) -> BusinessEntityCreate:
    return BusinessEntityCreate(entity_type=entity_type, name=name, **fields)


class TestBusinessEntityCreate:
    """Tests for the create input model."""

    def test_strips_values(self):
        data = _create("customer", "  Anadolu Medikal  ", tax_number="  ", customer_code=" C-1 ")

        assert data.name == "Anadolu Medikal"
        assert data.tax_number is None
        assert data.customer_code == "C-1"

    def test_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            _create("customer", "   ")

    def test_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            _create("partner", "Anadolu Medikal")

    @pytest.mark.parametrize(
        "field,value",
        [("discount_rate", 150), ("quality_rating", 6), ("default_currency", "TL")],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            _create("supplier", "Anadolu Medikal", **{field: value})


@pytest.mark.asyncio
class TestCreate:
    """Tests for BusinessEntityService.create."""

    async def test_create_customer(self, service, db_session, seed):
        info = await service.create(
            seed.workspace.id,
            seed.company.id,
            _create("customer", "Anadolu Medikal", tax_number="1234567890", customer_code="C-1"),
            created_by=seed.member.id,
        )

        assert info.entity_type == BusinessEntityType.CUSTOMER
        assert info.company_id == seed.company.id
        assert info.status == "active"
        assert info.customer_code == "C-1"
        assert info.source_customer_id is None

        events = await AuditLogger(db_session).query_events(
            workspace_id=seed.workspace.id, event_type=AuditEventType.ENTITY_CREATED
        )
        assert events[0].resource_id == str(info.id)
        assert events[0].user_id == seed.member.id

    async def test_tax_number_unique_across_workspace(self, service, seed):
        first = await service.create(
            seed.workspace.id, seed.company.id, _create("customer", "Anadolu Medikal", tax_number="111")
        )

        with pytest.raises(DuplicateTaxNumberError) as exc_info:
            await service.create(
                seed.workspace.id,
                seed.other_company.id,
                _create("supplier", "Anadolu Tedarik", tax_number="111"),
            )

        assert exc_info.value.existing_entity_id == first.id

    async def test_customer_code_unique_per_company(self, service, seed):
        await service.create(
            seed.workspace.id, seed.company.id, _create("customer", "Alpha", customer_code="C-1")
        )

        with pytest.raises(DuplicateEntityCodeError) as exc_info:
            await service.create(
                seed.workspace.id, seed.company.id, _create("both", "Beta", customer_code="C-1")
            )

        assert exc_info.value.code_type == "customer_code"

    async def test_same_code_allowed_in_other_company(self, service, seed):
        await service.create(
            seed.workspace.id, seed.company.id, _create("customer", "Alpha", customer_code="C-1")
        )

        info = await service.create(
            seed.workspace.id, seed.other_company.id, _create("customer", "Alpha", customer_code="C-1")
        )

        assert info.company_id == seed.other_company.id

    async def test_codes_checked_per_role(self, service, seed):
        """Test a supplier code does not collide with a customer code."""
        await service.create(
            seed.workspace.id, seed.company.id, _create("customer", "Alpha", customer_code="X-1")
        )

        info = await service.create(
            seed.workspace.id, seed.company.id, _create("supplier", "Beta", supplier_code="X-1")
        )

        assert info.supplier_code == "X-1"

    async def test_supplier_code_conflicts_with_both(self, service, seed):
        await service.create(
            seed.workspace.id, seed.company.id, _create("both", "Alpha", supplier_code="S-9")
        )

        with pytest.raises(DuplicateEntityCodeError) as exc_info:
            await service.create(
                seed.workspace.id, seed.company.id, _create("supplier", "Beta", supplier_code="S-9")
            )

        assert exc_info.value.code_type == "supplier_code"


@pytest.mark.asyncio
class TestReadAndDelete:
    """Tests for get, list and soft_delete."""

    async def test_get(self, service, seed):
        created = await service.create(seed.workspace.id, seed.company.id, _create("supplier", "Alpha"))

        info = await service.get(seed.workspace.id, seed.company.id, created.id)

        assert info.name == "Alpha"

    async def test_get_from_other_company(self, service, seed):
        created = await service.create(seed.workspace.id, seed.company.id, _create("supplier", "Alpha"))

        with pytest.raises(EntityNotFoundError):
            await service.get(seed.workspace.id, seed.other_company.id, created.id)

    async def test_soft_delete_frees_tax_number(self, service, db_session, seed):
        created = await service.create(
            seed.workspace.id, seed.company.id, _create("customer", "Alpha", tax_number="222")
        )

        await service.soft_delete(seed.workspace.id, seed.company.id, created.id, deleted_by=seed.admin.id)

        with pytest.raises(EntityNotFoundError):
            await service.get(seed.workspace.id, seed.company.id, created.id)
        replacement = await service.create(
            seed.workspace.id, seed.company.id, _create("customer", "Alpha Yeni", tax_number="222")
        )
        assert replacement.id != created.id
        events = await AuditLogger(db_session).query_events(event_type=AuditEventType.ENTITY_DELETED)
        assert events[0].resource_id == str(created.id)

    async def test_soft_delete_twice(self, service, seed):
        created = await service.create(seed.workspace.id, seed.company.id, _create("customer", "Alpha"))
        await service.soft_delete(seed.workspace.id, seed.company.id, created.id)

        with pytest.raises(EntityNotFoundError):
            await service.soft_delete(seed.workspace.id, seed.company.id, created.id)

    async def test_list_role_filter_includes_both(self, service, seed):
        for entity_type, name in [("customer", "Alpha"), ("supplier", "Beta"), ("both", "Gamma")]:
            await service.create(seed.workspace.id, seed.company.id, _create(entity_type, name))
        await service.create(seed.workspace.id, seed.other_company.id, _create("customer", "Delta"))

        customers = await service.list(seed.workspace.id, seed.company.id, role=BusinessEntityType.CUSTOMER)
        suppliers = await service.list(seed.workspace.id, seed.company.id, role=BusinessEntityType.SUPPLIER)
        both = await service.list(seed.workspace.id, seed.company.id, role=BusinessEntityType.BOTH)
        everything = await service.list(seed.workspace.id, seed.company.id)

        assert [e.name for e in customers] == ["Alpha", "Gamma"]
        assert [e.name for e in suppliers] == ["Beta", "Gamma"]
        assert [e.name for e in both] == ["Gamma"]
        assert [e.name for e in everything] == ["Alpha", "Beta", "Gamma"]

    async def test_list_search_and_paging(self, service, seed):
        for name in ["Marmara Lojistik", "Ege Lojistik", "Karadeniz Gıda"]:
            await service.create(seed.workspace.id, seed.company.id, _create("supplier", name))

        found = await service.list(seed.workspace.id, seed.company.id, search="lojistik")
        page = await service.list(seed.workspace.id, seed.company.id, limit=1, offset=1)

        assert [e.name for e in found] == ["Ege Lojistik", "Marmara Lojistik"]
        assert [e.name for e in page] == ["Karadeniz Gıda"]

    async def test_list_search_treats_wildcards_literally(self, service, seed):
        for name in ["100% Organik", "1000 Organik", "Ana_Depo", "AnaXDepo"]:
            await service.create(seed.workspace.id, seed.company.id, _create("supplier", name))

        percent = await service.list(seed.workspace.id, seed.company.id, search="100%")
        underscore = await service.list(seed.workspace.id, seed.company.id, search="a_d")

        assert [e.name for e in percent] == ["100% Organik"]
        assert [e.name for e in underscore] == ["Ana_Depo"]
