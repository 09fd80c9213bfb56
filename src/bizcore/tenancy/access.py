"""Access evaluation for workspace and company scopes.

A user may act in a workspace if they own it or hold a membership row. A
member whose permission blob carries ``restrictedToCompany`` is confined to
that one company. The blob is decoded into an :class:`AccessScope` once, at
this boundary; nothing downstream inspects the raw blob.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.core.exceptions import AccessDeniedError
from bizcore.core.logging import get_logger
from bizcore.db.models.workspace import ADMIN_ROLES, Company, Workspace, WorkspaceRole
from bizcore.db.repositories.workspace import MemberRepository

logger = get_logger(__name__)

RESTRICTED_TO_COMPANY_KEY = "restrictedToCompany"


# =============================================================================
# Access scope
# =============================================================================


@dataclass(frozen=True)
class Unrestricted:
    """The user may act on every company of the workspace."""

    def permits(self, company_id: UUID) -> bool:
        return True

    def to_permissions(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class RestrictedToCompany:
    """The user may only act on one company of the workspace."""

    company_id: UUID

    def permits(self, company_id: UUID) -> bool:
        return company_id == self.company_id

    def to_permissions(self) -> dict[str, Any]:
        return {RESTRICTED_TO_COMPANY_KEY: str(self.company_id)}


AccessScope = Unrestricted | RestrictedToCompany

UNRESTRICTED = Unrestricted()


def decode_access_scope(blob: Any) -> AccessScope:
    """Decode a membership permission blob into an access scope.

    The blob may be None, a dict, or a JSON string encoding a dict. Anything
    that cannot be read, or a ``restrictedToCompany`` value that is not a
    UUID, decodes to :data:`UNRESTRICTED` and is logged as a warning.
    """
    if blob is None or blob == "":
        return UNRESTRICTED

    data = blob
    if isinstance(blob, str):
        try:
            data = json.loads(blob)
        except ValueError:
            logger.warning("permission_blob_unparseable", blob=blob[:200])
            return UNRESTRICTED

    if not isinstance(data, dict):
        logger.warning("permission_blob_malformed", blob_type=type(data).__name__)
        return UNRESTRICTED

    restricted = data.get(RESTRICTED_TO_COMPANY_KEY)
    if not restricted:
        return UNRESTRICTED

    try:
        return RestrictedToCompany(company_id=UUID(str(restricted)))
    except ValueError:
        logger.warning("permission_blob_invalid_company", restricted_to_company=str(restricted))
        return UNRESTRICTED


# =============================================================================
# Decisions
# =============================================================================


class DenialReason(str, Enum):
    """Why access was refused."""

    NOT_A_MEMBER = "not_a_member"
    OUTSIDE_COMPANY_SCOPE = "outside_company_scope"
    INSUFFICIENT_ROLE = "insufficient_role"


class AccessDecision(BaseModel):
    """Outcome of evaluating a user against a workspace (and company)."""

    model_config = ConfigDict(frozen=True)

    granted: bool
    role: WorkspaceRole | None = None
    scope: AccessScope = UNRESTRICTED
    reason: DenialReason | None = None

    @property
    def is_admin(self) -> bool:
        return self.granted and self.role in ADMIN_ROLES


class AccessEvaluator:
    """Decides whether a user may act in a workspace or company scope.

    Non-membership and a company outside a member's restriction are both
    reported as denials (Forbidden), never as not-found.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.members = MemberRepository(db)

    async def evaluate(
        self,
        user_id: UUID,
        workspace: Workspace,
        company: Company | None = None,
    ) -> AccessDecision:
        """Evaluate access without raising.

        Args:
            user_id: The acting user
            workspace: The resolved workspace
            company: The resolved company, if the request targets one

        Returns:
            AccessDecision describing the outcome
        """
        if workspace.owner_id == user_id:
            return AccessDecision(granted=True, role=WorkspaceRole.OWNER, scope=UNRESTRICTED)

        membership = await self.members.get_membership(workspace.id, user_id)
        if membership is None:
            return AccessDecision(granted=False, reason=DenialReason.NOT_A_MEMBER)

        scope = decode_access_scope(membership.permissions)
        role = WorkspaceRole(membership.role)
        if company is not None and not scope.permits(company.id):
            return AccessDecision(
                granted=False,
                role=role,
                scope=scope,
                reason=DenialReason.OUTSIDE_COMPANY_SCOPE,
            )

        return AccessDecision(granted=True, role=role, scope=scope)

    async def authorize(
        self,
        user_id: UUID,
        workspace: Workspace,
        company: Company | None = None,
    ) -> AccessDecision:
        """Evaluate access and raise if denied.

        Raises:
            AccessDeniedError: If the user may not act in the scope
        """
        decision = await self.evaluate(user_id, workspace, company)
        if not decision.granted:
            self._deny(user_id, workspace, company, decision.reason)
        return decision

    async def require_admin(
        self,
        user_id: UUID,
        workspace: Workspace,
        company: Company | None = None,
    ) -> AccessDecision:
        """Authorize and additionally require the owner or admin role.

        Without a company the action is workspace-wide, which a member
        confined to one company may never take, whatever their role.

        Raises:
            AccessDeniedError: If denied, granted with a non-admin role, or
                workspace-wide for a company-restricted member
        """
        decision = await self.authorize(user_id, workspace, company)
        if decision.role not in ADMIN_ROLES:
            self._deny(user_id, workspace, company, DenialReason.INSUFFICIENT_ROLE)
        if company is None and isinstance(decision.scope, RestrictedToCompany):
            self._deny(user_id, workspace, None, DenialReason.OUTSIDE_COMPANY_SCOPE)
        return decision

    def _deny(
        self,
        user_id: UUID,
        workspace: Workspace,
        company: Company | None,
        reason: DenialReason | None,
    ) -> None:
        reason_value = reason.value if reason else DenialReason.NOT_A_MEMBER.value
        company_id = company.id if company is not None else None
        logger.info(
            "access_denied",
            user_id=str(user_id),
            workspace_id=str(workspace.id),
            company_id=str(company_id) if company_id else None,
            reason=reason_value,
        )
        raise AccessDeniedError(workspace.id, reason_value, company_id=company_id)
