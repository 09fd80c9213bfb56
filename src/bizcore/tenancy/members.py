"""Workspace membership management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.core.audit import AuditLogger
from bizcore.core.exceptions import InvalidInputError, MemberNotFoundError
from bizcore.core.logging import get_logger
from bizcore.db.models.audit import AuditEventType
from bizcore.db.models.workspace import ASSIGNABLE_ROLES, Workspace, WorkspaceMember, WorkspaceRole
from bizcore.db.repositories.workspace import MemberRepository, UserRepository
from bizcore.tenancy.access import AccessEvaluator, RestrictedToCompany, decode_access_scope

logger = get_logger(__name__)


class MemberInfo(BaseModel):
    """A workspace member as shown to other members."""

    user_id: UUID
    name: str
    email: str
    role: WorkspaceRole
    is_owner: bool = False
    restricted_to_company: UUID | None = None
    invited_by: UUID | None = None
    joined_at: datetime | None = None


def parse_assignable_role(role: str | WorkspaceRole) -> WorkspaceRole:
    """Validate a role that can be stored on a membership or invitation.

    Raises:
        InvalidInputError: If the role is unknown or is ``owner``
    """
    try:
        parsed = WorkspaceRole(role)
    except ValueError:
        parsed = None
    if parsed not in ASSIGNABLE_ROLES:
        allowed = ", ".join(sorted(r.value for r in ASSIGNABLE_ROLES))
        raise InvalidInputError(f"Invalid role '{role}'; expected one of: {allowed}", field="role")
    return parsed


def _member_info(member: WorkspaceMember, name: str, email: str) -> MemberInfo:
    scope = decode_access_scope(member.permissions)
    return MemberInfo(
        user_id=member.user_id,
        name=name,
        email=email,
        role=WorkspaceRole(member.role),
        restricted_to_company=scope.company_id if isinstance(scope, RestrictedToCompany) else None,
        invited_by=member.invited_by,
        joined_at=member.joined_at,
    )


class MembershipService:
    """Lists, re-roles and removes workspace members.

    Changes are flushed; the caller owns the transaction. The owner is not a
    membership row and can never be re-roled or removed.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditLogger(db)
        self.access = AccessEvaluator(db)
        self.members = MemberRepository(db)
        self.users = UserRepository(db)

    async def list_members(self, actor_id: UUID, workspace: Workspace) -> list[MemberInfo]:
        """List the owner followed by members in join order.

        Any user with access to the workspace may list its members.

        Raises:
            AccessDeniedError: If the actor has no access to the workspace
        """
        await self.access.authorize(actor_id, workspace)

        result: list[MemberInfo] = []
        owner = await self.users.get(workspace.owner_id)
        if owner is not None:
            result.append(
                MemberInfo(
                    user_id=owner.id,
                    name=owner.name,
                    email=owner.email,
                    role=WorkspaceRole.OWNER,
                    is_owner=True,
                    joined_at=workspace.created_at,
                )
            )
        for member, user in await self.members.list_with_users(workspace.id):
            result.append(_member_info(member, user.name, user.email))
        return result

    async def change_role(
        self,
        actor_id: UUID,
        workspace: Workspace,
        user_id: UUID,
        role: str | WorkspaceRole,
    ) -> MemberInfo:
        """Change a member's role.

        Args:
            actor_id: The acting user (must be owner or admin)
            workspace: The workspace
            user_id: The member to change
            role: New role (admin, member or viewer)

        Returns:
            The updated member

        Raises:
            AccessDeniedError: If the actor is not owner or admin
            InvalidInputError: If the role is invalid or the target is the owner
            MemberNotFoundError: If the user is not a member
        """
        await self.access.require_admin(actor_id, workspace)
        new_role = parse_assignable_role(role)
        member = await self._get_target(workspace, user_id, action="changed")

        old_role = member.role
        member.role = new_role.value
        await self.db.flush()

        await self.audit.log_event(
            AuditEventType.MEMBER_ROLE_CHANGED,
            {"user_id": str(user_id), "old_role": old_role, "new_role": new_role.value},
            workspace_id=workspace.id,
            user_id=actor_id,
            resource_type="workspace_member",
            resource_id=member.id,
        )
        logger.info(
            "member_role_changed",
            workspace_id=str(workspace.id),
            member_user_id=str(user_id),
            old_role=old_role,
            new_role=new_role.value,
        )

        user = await self.users.get(user_id)
        return _member_info(member, user.name if user else "", user.email if user else "")

    async def remove_member(self, actor_id: UUID, workspace: Workspace, user_id: UUID) -> None:
        """Remove a member from the workspace.

        Raises:
            AccessDeniedError: If the actor is not owner or admin
            InvalidInputError: If the target is the owner
            MemberNotFoundError: If the user is not a member
        """
        await self.access.require_admin(actor_id, workspace)
        member = await self._get_target(workspace, user_id, action="removed")

        member_id = member.id
        role = member.role
        await self.members.delete(member)

        await self.audit.log_event(
            AuditEventType.MEMBER_REMOVED,
            {"user_id": str(user_id), "role": role},
            workspace_id=workspace.id,
            user_id=actor_id,
            resource_type="workspace_member",
            resource_id=member_id,
        )
        logger.info(
            "member_removed",
            workspace_id=str(workspace.id),
            member_user_id=str(user_id),
        )

    async def _get_target(self, workspace: Workspace, user_id: UUID, action: str) -> WorkspaceMember:
        if user_id == workspace.owner_id:
            raise InvalidInputError(
                f"The workspace owner cannot be {action}", field="user_id"
            )
        member = await self.members.get_membership(workspace.id, user_id)
        if member is None:
            raise MemberNotFoundError(user_id)
        return member
