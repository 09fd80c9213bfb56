"""API v1 routers."""

from fastapi import APIRouter

from .business_entities import router as business_entities_router
from .invitations import public_router as public_invitations_router
from .invitations import router as invitations_router
from .members import router as members_router

# Create v1 router that includes all v1 endpoints
router = APIRouter(prefix="/v1")

router.include_router(invitations_router)
router.include_router(public_invitations_router)
router.include_router(members_router)
router.include_router(business_entities_router)

__all__ = [
    "business_entities_router",
    "invitations_router",
    "members_router",
    "public_invitations_router",
    "router",
]
