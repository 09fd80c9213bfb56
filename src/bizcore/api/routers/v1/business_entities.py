"""Business entity API endpoints.

- GET /v1/workspaces/{workspace_ref}/companies/{company_ref}/business-entities
- POST /v1/workspaces/{workspace_ref}/companies/{company_ref}/business-entities
- GET /v1/workspaces/{workspace_ref}/companies/{company_ref}/business-entities/{entity_id}
- DELETE /v1/workspaces/{workspace_ref}/companies/{company_ref}/business-entities/{entity_id}
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from bizcore.api.dependencies import (
    CompanyAccess,
    CurrentCompany,
    CurrentUserId,
    CurrentWorkspace,
    DbSession,
    get_entity_service,
)
from bizcore.api.schemas.entities import BusinessEntityListResponse
from bizcore.api.schemas.errors import APIError
from bizcore.core.exceptions import AccessDeniedError
from bizcore.db.models.business_entity import BusinessEntityType
from bizcore.db.models.workspace import Company, Workspace, WorkspaceRole
from bizcore.entities.service import BusinessEntityService
from bizcore.entities.types import BusinessEntityCreate, BusinessEntityInfo
from bizcore.tenancy.access import AccessDecision, DenialReason

router = APIRouter(
    prefix="/workspaces/{workspace_ref}/companies/{company_ref}/business-entities",
    tags=["business-entities"],
)

EntityServiceDep = Annotated[BusinessEntityService, Depends(get_entity_service)]


def _require_writer(decision: AccessDecision, workspace: Workspace, company: Company) -> None:
    """Viewers may read but not change business entities."""
    if decision.role is WorkspaceRole.VIEWER:
        raise AccessDeniedError(
            workspace.id, DenialReason.INSUFFICIENT_ROLE.value, company_id=company.id
        )


@router.get("", response_model=BusinessEntityListResponse, summary="List business entities")
async def list_business_entities(
    workspace: CurrentWorkspace,
    company: CurrentCompany,
    decision: CompanyAccess,
    service: EntityServiceDep,
    role: Annotated[BusinessEntityType | None, Query()] = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> BusinessEntityListResponse:
    """List live entities; ``role=customer`` and ``role=supplier`` include ``both``."""
    entities = await service.list(
        workspace.id, company.id, role=role, search=search, limit=limit, offset=offset
    )
    return BusinessEntityListResponse(
        entities=entities, count=len(entities), limit=limit, offset=offset
    )


@router.post(
    "",
    response_model=BusinessEntityInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Create a business entity",
    responses={
        403: {"model": APIError, "description": "No write access to this company"},
        409: {"model": APIError, "description": "Tax number or code already in use"},
    },
)
async def create_business_entity(
    body: BusinessEntityCreate,
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    company: CurrentCompany,
    decision: CompanyAccess,
    service: EntityServiceDep,
    db: DbSession,
) -> BusinessEntityInfo:
    _require_writer(decision, workspace, company)
    entity = await service.create(workspace.id, company.id, body, created_by=user_id)
    await db.commit()
    return entity


@router.get(
    "/{entity_id}",
    response_model=BusinessEntityInfo,
    summary="Get a business entity",
    responses={404: {"model": APIError, "description": "Entity not found"}},
)
async def get_business_entity(
    entity_id: UUID,
    workspace: CurrentWorkspace,
    company: CurrentCompany,
    decision: CompanyAccess,
    service: EntityServiceDep,
) -> BusinessEntityInfo:
    return await service.get(workspace.id, company.id, entity_id)


@router.delete(
    "/{entity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a business entity",
    responses={404: {"model": APIError, "description": "Entity not found"}},
)
async def delete_business_entity(
    entity_id: UUID,
    user_id: CurrentUserId,
    workspace: CurrentWorkspace,
    company: CurrentCompany,
    decision: CompanyAccess,
    service: EntityServiceDep,
    db: DbSession,
) -> Response:
    """Soft-delete; the tax number and codes become available again."""
    _require_writer(decision, workspace, company)
    await service.soft_delete(workspace.id, company.id, entity_id, deleted_by=user_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
