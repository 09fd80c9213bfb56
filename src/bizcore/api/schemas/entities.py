"""API schemas for business entity endpoints."""

from pydantic import BaseModel

from bizcore.entities.types import BusinessEntityInfo


class BusinessEntityListResponse(BaseModel):
    entities: list[BusinessEntityInfo]
    count: int
    limit: int
    offset: int
