"""Tenant resolution, access evaluation and membership management."""

from bizcore.tenancy.access import (
    UNRESTRICTED,
    AccessDecision,
    AccessEvaluator,
    AccessScope,
    DenialReason,
    RestrictedToCompany,
    Unrestricted,
    decode_access_scope,
)
from bizcore.tenancy.members import MemberInfo, MembershipService, parse_assignable_role
from bizcore.tenancy.resolver import IdentityResolver, ResolvedScope, company_slug
from bizcore.tenancy.slug import derive_company_slug, slugify
from bizcore.tenancy.workspaces import WorkspaceService, WorkspaceSlugTakenError

__all__ = [
    "UNRESTRICTED",
    "AccessDecision",
    "AccessEvaluator",
    "AccessScope",
    "DenialReason",
    "IdentityResolver",
    "MemberInfo",
    "MembershipService",
    "ResolvedScope",
    "RestrictedToCompany",
    "Unrestricted",
    "WorkspaceService",
    "WorkspaceSlugTakenError",
    "company_slug",
    "decode_access_scope",
    "derive_company_slug",
    "parse_assignable_role",
    "slugify",
]
