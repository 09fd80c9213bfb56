"""Invitation lifecycle: issue, resend, preview, accept.

States::

    pending -> accepted_pending_membership -> accepted
    pending -> expired

Expiry is lazy: a pending invitation past ``expires_at`` is flipped to
``expired`` the next time anything touches it.

Acceptance runs as two committed steps. Step one creates the user (if
needed) and moves the invitation out of ``pending`` with a guarded update, so
only one concurrent acceptance can win. Step two inserts the membership and
marks the invitation ``accepted``. If step two fails the invitation stays in
``accepted_pending_membership``, where ``complete_pending_memberships`` or
``resume_acceptance`` can finish it.
"""

import secrets
from datetime import timedelta
from uuid import UUID

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.config.settings import Settings, get_settings
from bizcore.core.audit import AuditLogger
from bizcore.core.exceptions import (
    AlreadyMemberError,
    DuplicateInvitationError,
    InvalidInputError,
    InvitationAlreadyUsedError,
    InvitationExpiredError,
    InvitationNotFoundError,
    MembershipProvisioningError,
    WorkspaceNotFoundError,
)
from bizcore.core.logging import get_logger
from bizcore.db.models.audit import AuditEventType, AuditSeverity
from bizcore.db.models.base import utcnow
from bizcore.db.models.invitation import Invitation, InvitationStatus, InvitationType
from bizcore.db.models.workspace import Company, Workspace, WorkspaceMember
from bizcore.db.repositories.invitation import InvitationRepository
from bizcore.db.repositories.workspace import (
    CompanyRepository,
    MemberRepository,
    WorkspaceRepository,
)
from bizcore.identity.protocol import IdentityProvider
from bizcore.identity.provider import DatabaseIdentityProvider
from bizcore.invitations.email import EmailSender, render_invitation_email
from bizcore.invitations.types import (
    AcceptanceResult,
    CompanySummary,
    InvitationIssueResult,
    InvitationPreview,
    InvitationSummary,
    UserSummary,
    WorkspaceSummary,
)
from bizcore.observability.metrics import record_invitation_acceptance, record_invitation_issued
from bizcore.tenancy.access import AccessEvaluator, RestrictedToCompany
from bizcore.tenancy.members import parse_assignable_role

logger = get_logger(__name__)

_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def normalize_email(email: str | None) -> str:
    """Validate an email address and return it lowercased.

    Raises:
        InvalidInputError: If the address is malformed
    """
    candidate = (email or "").strip()
    try:
        return _EMAIL_ADAPTER.validate_python(candidate).lower()
    except ValidationError as e:
        raise InvalidInputError(f"Invalid email address: {candidate!r}", field="email") from e


def _redact(token: str) -> str:
    return f"{token[:6]}..." if token else "<empty>"


class InvitationService:
    """Issues invitations and turns accepted ones into memberships.

    Unlike most services this one commits: issuance must be durable before
    the email goes out, and each acceptance step is its own transaction.
    """

    def __init__(
        self,
        db: AsyncSession,
        email_sender: EmailSender,
        identity_provider: IdentityProvider | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.email_sender = email_sender
        self.identity = identity_provider or DatabaseIdentityProvider(db, self.settings)
        self.audit = AuditLogger(db)
        self.access = AccessEvaluator(db)
        self.invitations = InvitationRepository(db)
        self.members = MemberRepository(db)
        self.workspaces = WorkspaceRepository(db)
        self.companies = CompanyRepository(db)

    # =========================================================================
    # Issuance
    # =========================================================================

    async def invite(
        self,
        inviter_id: UUID,
        email: str,
        role: str,
        workspace: Workspace,
        company: Company | None = None,
        message: str | None = None,
    ) -> InvitationIssueResult:
        """Issue an invitation to a workspace, or to one company of it.

        Args:
            inviter_id: The acting user (must be owner or admin for the scope)
            email: The invitee's address
            role: admin, member or viewer
            workspace: The resolved workspace
            company: The resolved company for a company invitation
            message: Optional personal note included in the email

        Returns:
            InvitationIssueResult; ``email_sent`` is False if delivery failed

        Raises:
            AccessDeniedError: If the inviter may not invite into the scope
            InvalidInputError: If the role or email is invalid
            DuplicateInvitationError: If a live pending invitation exists
        """
        await self.access.require_admin(inviter_id, workspace, company)
        parsed_role = parse_assignable_role(role)
        normalized = normalize_email(email)
        invitation_type = InvitationType.COMPANY if company is not None else InvitationType.WORKSPACE
        workspace_id = workspace.id
        workspace_name = workspace.name
        company_id = company.id if company is not None else None
        company_name = company.name if company is not None else None

        pending = await self.invitations.find_pending(
            normalized, invitation_type, workspace_id, company_id
        )
        if pending is not None:
            if self._is_past_expiry(pending):
                await self._expire(pending)
            else:
                raise DuplicateInvitationError(normalized, pending.id)

        token = secrets.token_urlsafe(32)
        invitation = await self.invitations.create(
            Invitation(
                token=token,
                email=normalized,
                type=invitation_type.value,
                role=parsed_role.value,
                workspace_id=workspace_id,
                company_id=company_id,
                invited_by=inviter_id,
                status=InvitationStatus.PENDING.value,
                message=message or None,
                expires_at=utcnow() + timedelta(days=self.settings.invitation_ttl_days),
            )
        )
        await self.audit.log_event(
            AuditEventType.INVITATION_ISSUED,
            {
                "email": normalized,
                "type": invitation_type.value,
                "role": parsed_role.value,
                "company_id": str(company_id) if company_id else None,
            },
            workspace_id=workspace_id,
            user_id=inviter_id,
            resource_type="invitation",
            resource_id=invitation.id,
        )
        summary = InvitationSummary.model_validate(invitation)
        await self.db.commit()

        logger.info(
            "invitation_issued",
            invitation_id=str(summary.id),
            workspace_id=str(workspace_id),
            company_id=str(company_id) if company_id else None,
            role=parsed_role.value,
        )

        inviter = await self.identity.get_user(inviter_id)
        return await self._deliver(
            summary,
            token,
            workspace_name=workspace_name,
            company_name=company_name,
            inviter_name=inviter.name if inviter is not None else None,
            resent=False,
        )

    async def resend(
        self, actor_id: UUID, workspace: Workspace, invitation_id: UUID
    ) -> InvitationIssueResult:
        """Send the email for a pending invitation again.

        Raises:
            AccessDeniedError: If the actor is not owner or admin for the scope
            InvitationNotFoundError: If the invitation is not in this workspace
            InvitationAlreadyUsedError: If it is no longer pending
            InvitationExpiredError: If it expired (it is flipped to expired)
        """
        await self.access.authorize(actor_id, workspace)
        workspace_name = workspace.name

        invitation = await self.invitations.get_in_workspace(invitation_id, workspace.id)
        if invitation is None:
            raise InvitationNotFoundError(invitation_id)

        company = None
        if invitation.company_id is not None:
            company = await self.companies.get(invitation.company_id)
        await self.access.require_admin(actor_id, workspace, company)

        if invitation.status != InvitationStatus.PENDING.value:
            raise InvitationAlreadyUsedError(invitation.id, invitation.status)
        if self._is_past_expiry(invitation):
            await self._expire_and_raise(invitation)

        await self.audit.log_event(
            AuditEventType.INVITATION_RESENT,
            {"email": invitation.email},
            workspace_id=invitation.workspace_id,
            user_id=actor_id,
            resource_type="invitation",
            resource_id=invitation.id,
        )
        summary = InvitationSummary.model_validate(invitation)
        token = invitation.token
        await self.db.commit()

        inviter = await self.identity.get_user(actor_id)
        return await self._deliver(
            summary,
            token,
            workspace_name=workspace_name,
            company_name=company.name if company is not None else None,
            inviter_name=inviter.name if inviter is not None else None,
            resent=True,
        )

    async def list_invitations(
        self,
        actor_id: UUID,
        workspace: Workspace,
        status: InvitationStatus | None = None,
    ) -> list[InvitationSummary]:
        """List a workspace's invitations, newest first.

        Pending invitations past their expiry are flipped to expired first,
        so a ``pending`` filter only returns usable invitations.

        Raises:
            AccessDeniedError: If the actor is not owner or admin
        """
        await self.access.require_admin(actor_id, workspace)

        stale = [
            invitation
            for invitation in await self.invitations.list_by_status(
                InvitationStatus.PENDING, workspace.id
            )
            if self._is_past_expiry(invitation)
        ]
        if stale:
            for invitation in stale:
                await self._expire(invitation)
            await self.db.commit()

        invitations = await self.invitations.list_for_workspace(workspace.id, status)
        return [InvitationSummary.model_validate(invitation) for invitation in invitations]

    async def get_preview(self, token: str) -> InvitationPreview:
        """Public lookup behind the accept page.

        Raises:
            InvitationNotFoundError: If the token is unknown
            InvitationAlreadyUsedError: If the invitation is no longer pending
            InvitationExpiredError: If it expired (it is flipped to expired)
        """
        invitation = await self._get_pending_by_token(token)

        workspace = await self.workspaces.get(invitation.workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError(invitation.workspace_id)
        company = None
        if invitation.company_id is not None:
            company = await self.companies.get(invitation.company_id)
        inviter = await self.identity.get_user(invitation.invited_by)

        return InvitationPreview(
            email=invitation.email,
            type=InvitationType(invitation.type),
            role=invitation.role,
            message=invitation.message,
            expires_at=invitation.expires_at,
            workspace=WorkspaceSummary.model_validate(workspace),
            company=CompanySummary.model_validate(company) if company is not None else None,
            inviter=UserSummary.model_validate(inviter) if inviter is not None else None,
        )

    # =========================================================================
    # Acceptance
    # =========================================================================

    async def accept(self, token: str, name: str, password: str) -> AcceptanceResult:
        """Accept an invitation, creating the account if the email is new.

        Args:
            token: The invitation token from the email link
            name: Display name for a new account
            password: Password for a new account (ignored for existing users)

        Returns:
            AcceptanceResult with the user, workspace, company and, for new
            accounts, a session token for auto-login

        Raises:
            InvitationNotFoundError: If the token is unknown
            InvitationAlreadyUsedError: If it is not pending, or a concurrent
                acceptance won
            InvitationExpiredError: If it expired (it is flipped to expired)
            AlreadyMemberError: If the existing user already belongs to the workspace
            InvalidInputError: If a new account's name or password is invalid
            MembershipProvisioningError: If the membership could not be created;
                the invitation stays in accepted_pending_membership
        """
        invitation = await self._get_pending_by_token(token)
        invitation_id = invitation.id
        email = invitation.email

        workspace = await self.workspaces.get(invitation.workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError(invitation.workspace_id)
        workspace_summary = WorkspaceSummary.model_validate(workspace)
        company_summary = await self._landing_company(invitation)

        # Step one: identity plus pending -> accepted_pending_membership
        created_user = False
        session_token = None
        try:
            user = await self.identity.get_user_by_email(email)
            if user is not None:
                if await self._is_member(workspace, user.id):
                    raise AlreadyMemberError(workspace_summary.id, user.id)
            else:
                user = await self.identity.create_user(email, name, password)
                await self.identity.mark_verified(user)
                session = await self.identity.create_session(user.id)
                session_token = session.token
                created_user = True

            user_summary = UserSummary.model_validate(user)
            moved = await self.invitations.transition(
                invitation_id,
                InvitationStatus.PENDING,
                InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP,
                responded_at=utcnow(),
                accepted_by=user_summary.id,
            )
            if not moved:
                raise InvitationAlreadyUsedError(
                    invitation_id, InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP.value
                )
            await self.db.commit()
        except IntegrityError as e:
            # A concurrent acceptance created the account for this email first
            await self.db.rollback()
            record_invitation_acceptance(InvitationAlreadyUsedError.__name__)
            logger.info(
                "invitation_acceptance_lost_race",
                invitation_id=str(invitation_id),
                error=str(e.orig),
            )
            raise InvitationAlreadyUsedError(
                invitation_id, InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP.value
            ) from e
        except Exception as e:
            await self.db.rollback()
            record_invitation_acceptance(type(e).__name__)
            raise

        logger.info(
            "invitation_acceptance_recorded",
            invitation_id=str(invitation_id),
            user_id=str(user_summary.id),
            created_user=created_user,
        )

        # Step two: membership plus accepted_pending_membership -> accepted
        await self._provision_membership(invitation_id)
        record_invitation_acceptance("accepted")

        return AcceptanceResult(
            invitation_id=invitation_id,
            user=user_summary,
            workspace=workspace_summary,
            company=company_summary,
            session_token=session_token,
            created_user=created_user,
        )

    async def resume_acceptance(self, token: str) -> AcceptanceResult:
        """Retry membership provisioning for one accepted invitation.

        Raises:
            InvitationNotFoundError: If the token is unknown
            InvitationAlreadyUsedError: If the invitation is not awaiting its membership
            MembershipProvisioningError: If provisioning fails again
        """
        invitation = await self.invitations.get_by_token(token)
        if invitation is None:
            raise InvitationNotFoundError(_redact(token))
        if invitation.status != InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP.value:
            raise InvitationAlreadyUsedError(invitation.id, invitation.status)

        invitation_id = invitation.id
        workspace = await self.workspaces.get(invitation.workspace_id)
        user = await self.identity.get_user(invitation.accepted_by)
        if workspace is None or user is None:
            raise MembershipProvisioningError(invitation_id, "workspace or user no longer exists")
        workspace_summary = WorkspaceSummary.model_validate(workspace)
        user_summary = UserSummary.model_validate(user)
        company_summary = await self._landing_company(invitation)

        await self._provision_membership(invitation_id)
        record_invitation_acceptance("resumed")

        return AcceptanceResult(
            invitation_id=invitation_id,
            user=user_summary,
            workspace=workspace_summary,
            company=company_summary,
        )

    async def complete_pending_memberships(self, workspace_id: UUID | None = None) -> int:
        """Retry membership provisioning for every invitation stuck after step one.

        Failures are logged and left in place for the next run.

        Returns:
            Number of invitations completed
        """
        stuck = await self.invitations.list_by_status(
            InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP, workspace_id
        )
        invitation_ids = [invitation.id for invitation in stuck]

        completed = 0
        for invitation_id in invitation_ids:
            try:
                await self._provision_membership(invitation_id)
            except MembershipProvisioningError:
                continue
            completed += 1

        logger.info(
            "pending_memberships_completed",
            workspace_id=str(workspace_id) if workspace_id else None,
            found=len(invitation_ids),
            completed=completed,
        )
        return completed

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _provision_membership(self, invitation_id: UUID) -> None:
        """Saga step two, in its own transaction."""
        try:
            invitation = await self.invitations.get_fresh(invitation_id)
            if invitation is None:
                raise InvitationNotFoundError(invitation_id)
            if invitation.accepted_by is None:
                raise InvitationAlreadyUsedError(invitation_id, invitation.status)

            workspace_id = invitation.workspace_id
            user_id = invitation.accepted_by
            permissions = None
            if invitation.type == InvitationType.COMPANY.value and invitation.company_id:
                permissions = RestrictedToCompany(invitation.company_id).to_permissions()

            member = await self.members.get_membership(workspace_id, user_id)
            if member is None:
                member = await self.members.create(
                    WorkspaceMember(
                        workspace_id=workspace_id,
                        user_id=user_id,
                        role=invitation.role,
                        permissions=permissions,
                        invited_by=invitation.invited_by,
                        joined_at=utcnow(),
                    )
                )

            moved = await self.invitations.transition(
                invitation_id,
                InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP,
                InvitationStatus.ACCEPTED,
            )
            if not moved:
                raise InvitationAlreadyUsedError(invitation_id, invitation.status)

            await self.audit.log_event(
                AuditEventType.INVITATION_ACCEPTED,
                {"email": invitation.email, "role": invitation.role, "type": invitation.type},
                workspace_id=workspace_id,
                user_id=user_id,
                resource_type="invitation",
                resource_id=invitation_id,
            )
            await self.audit.log_event(
                AuditEventType.MEMBER_JOINED,
                {"user_id": str(user_id), "role": invitation.role, "permissions": permissions},
                workspace_id=workspace_id,
                user_id=user_id,
                resource_type="workspace_member",
                resource_id=member.id,
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "membership_provisioning_failed",
                invitation_id=str(invitation_id),
                error_type=type(e).__name__,
                error=str(e),
            )
            record_invitation_acceptance("provisioning_failed")
            raise MembershipProvisioningError(invitation_id, str(e)) from e

        logger.info(
            "invitation_accepted",
            invitation_id=str(invitation_id),
            workspace_id=str(workspace_id),
            user_id=str(user_id),
        )

    async def _get_pending_by_token(self, token: str) -> Invitation:
        invitation = await self.invitations.get_by_token(token)
        if invitation is None:
            raise InvitationNotFoundError(_redact(token))
        if invitation.status != InvitationStatus.PENDING.value:
            raise InvitationAlreadyUsedError(invitation.id, invitation.status)
        if self._is_past_expiry(invitation):
            await self._expire_and_raise(invitation)
        return invitation

    async def _landing_company(self, invitation: Invitation) -> CompanySummary | None:
        """The invited company, or the workspace's first company."""
        if invitation.company_id is not None:
            company = await self.companies.get(invitation.company_id)
        else:
            companies = await self.companies.list_for_workspace(invitation.workspace_id)
            company = companies[0] if companies else None
        return CompanySummary.model_validate(company) if company is not None else None

    async def _is_member(self, workspace: Workspace, user_id: UUID) -> bool:
        if workspace.owner_id == user_id:
            return True
        return await self.members.get_membership(workspace.id, user_id) is not None

    @staticmethod
    def _is_past_expiry(invitation: Invitation) -> bool:
        return invitation.expires_at <= utcnow()

    async def _expire(self, invitation: Invitation) -> None:
        """Flip a pending invitation to expired (flushed, not committed)."""
        invitation_id = invitation.id
        moved = await self.invitations.transition(
            invitation_id, InvitationStatus.PENDING, InvitationStatus.EXPIRED
        )
        if not moved:
            return
        await self.audit.log_event(
            AuditEventType.INVITATION_EXPIRED,
            {"email": invitation.email, "expires_at": invitation.expires_at.isoformat()},
            severity=AuditSeverity.INFO,
            workspace_id=invitation.workspace_id,
            resource_type="invitation",
            resource_id=invitation_id,
        )
        logger.info("invitation_expired", invitation_id=str(invitation_id))

    async def _expire_and_raise(self, invitation: Invitation) -> None:
        invitation_id = invitation.id
        expires_at = invitation.expires_at
        await self._expire(invitation)
        await self.db.commit()
        record_invitation_acceptance("expired")
        raise InvitationExpiredError(invitation_id, expires_at)

    async def _deliver(
        self,
        summary: InvitationSummary,
        token: str,
        *,
        workspace_name: str,
        company_name: str | None,
        inviter_name: str | None,
        resent: bool,
    ) -> InvitationIssueResult:
        """Send the invitation email; failures are reported, not raised."""
        invite_url = self.settings.invitation_url(token)
        subject, html = render_invitation_email(
            product_name=self.settings.product_name,
            workspace_name=workspace_name,
            company_name=company_name,
            inviter_name=inviter_name,
            invite_url=invite_url,
            expires_at=summary.expires_at,
            message=summary.message,
            resent=resent,
        )

        email_error = None
        try:
            await self.email_sender.send(summary.email, subject, html)
        except Exception as e:
            email_error = str(e) or type(e).__name__
            logger.warning(
                "invitation_email_failed",
                invitation_id=str(summary.id),
                error_type=type(e).__name__,
                error=email_error,
            )
        else:
            logger.info("invitation_email_sent", invitation_id=str(summary.id), resent=resent)

        record_invitation_issued(summary.type.value, email_error is None)
        return InvitationIssueResult(
            invitation=summary,
            token=token,
            invitation_url=invite_url,
            email_sent=email_error is None,
            email_error=email_error,
        )
