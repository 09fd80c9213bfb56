"""Invitation repository."""

from typing import Any
from uuid import UUID

from sqlalchemy import Select, select, update

from bizcore.db.models.invitation import Invitation, InvitationStatus, InvitationType
from bizcore.db.repositories.base import BaseRepository


class InvitationRepository(BaseRepository[Invitation]):
    """Invitation lookups and guarded status transitions.

    ``transition`` updates rows without touching objects already loaded in the
    session, so every read here refreshes the identity map
    (``populate_existing``) and never returns a stale status.
    """

    def _select(self) -> Select:
        return select(Invitation).execution_options(populate_existing=True)

    async def get_fresh(self, invitation_id: UUID) -> Invitation | None:
        result = await self.db.execute(self._select().where(Invitation.id == invitation_id))
        return result.scalar_one_or_none()

    async def get_by_token(self, token: str) -> Invitation | None:
        result = await self.db.execute(self._select().where(Invitation.token == token))
        return result.scalar_one_or_none()

    async def get_in_workspace(self, invitation_id: UUID, workspace_id: UUID) -> Invitation | None:
        stmt = self._select().where(
            Invitation.id == invitation_id,
            Invitation.workspace_id == workspace_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_pending(
        self,
        email: str,
        invitation_type: InvitationType,
        workspace_id: UUID,
        company_id: UUID | None = None,
    ) -> Invitation | None:
        """Find the pending invitation for an email in a scope.

        Workspace invitations are unique per (email, workspace); company
        invitations per (email, company).
        """
        stmt = self._select().where(
            Invitation.email == email,
            Invitation.type == invitation_type.value,
            Invitation.status == InvitationStatus.PENDING.value,
        )
        if invitation_type is InvitationType.COMPANY:
            stmt = stmt.where(Invitation.company_id == company_id)
        else:
            stmt = stmt.where(Invitation.workspace_id == workspace_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def list_for_workspace(
        self,
        workspace_id: UUID,
        status: InvitationStatus | None = None,
    ) -> list[Invitation]:
        """Invitations of a workspace, newest first."""
        stmt = self._select().where(Invitation.workspace_id == workspace_id)
        if status is not None:
            stmt = stmt.where(Invitation.status == status.value)
        stmt = stmt.order_by(Invitation.created_at.desc(), Invitation.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_by_status(
        self,
        status: InvitationStatus,
        workspace_id: UUID | None = None,
    ) -> list[Invitation]:
        """Invitations in ``status``, oldest first."""
        stmt = self._select().where(Invitation.status == status.value)
        if workspace_id is not None:
            stmt = stmt.where(Invitation.workspace_id == workspace_id)
        stmt = stmt.order_by(Invitation.created_at, Invitation.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def transition(
        self,
        invitation_id: UUID,
        from_status: InvitationStatus,
        to_status: InvitationStatus,
        **values: Any,
    ) -> bool:
        """Move an invitation between states only if it is still in ``from_status``.

        This is a single ``UPDATE ... WHERE status = :from_status`` so two
        concurrent callers cannot both succeed.

        Returns:
            True if exactly one row changed, False if the status had moved on
        """
        stmt = (
            update(Invitation)
            .where(Invitation.id == invitation_id, Invitation.status == from_status.value)
            .values(status=to_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1
