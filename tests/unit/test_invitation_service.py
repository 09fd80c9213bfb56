"""Unit tests for InvitationService."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import update
from uuid_utils.compat import uuid7

from bizcore.core.audit import AuditLogger
from bizcore.core.exceptions import (
    AccessDeniedError,
    AlreadyMemberError,
    DuplicateInvitationError,
    InvalidInputError,
    InvitationAlreadyUsedError,
    InvitationExpiredError,
    InvitationNotFoundError,
    MembershipProvisioningError,
)
from bizcore.db.models.audit import AuditEventType
from bizcore.db.models.base import utcnow
from bizcore.db.models.invitation import Invitation, InvitationStatus, InvitationType
from bizcore.db.models.workspace import WorkspaceRole
from bizcore.db.repositories.invitation import InvitationRepository
from bizcore.db.repositories.workspace import MemberRepository, UserRepository
from bizcore.identity.provider import DatabaseIdentityProvider
from bizcore.invitations.email import EmailDeliveryError
from bizcore.invitations.service import InvitationService, normalize_email
from bizcore.tenancy.access import AccessEvaluator, RestrictedToCompany, decode_access_scope

NEW_EMAIL = "new.hire@example.com"
NEW_PASSWORD = "welcome-aboard"


class FailingEmailSender:
    async def send(self, to: str, subject: str, html: str) -> str | None:
        raise EmailDeliveryError("provider down", status_code=503)


async def _expire_now(db_session, invitation_id) -> None:
    await db_session.execute(
        update(Invitation)
        .where(Invitation.id == invitation_id)
        .values(expires_at=utcnow() - timedelta(minutes=1))
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()


class TestNormalizeEmail:
    """Tests for normalize_email."""

    def test_lowercases_and_strips(self):
        assert normalize_email("  New.Hire@Example.COM ") == NEW_EMAIL

    @pytest.mark.parametrize("email", [None, "", "not-an-email", "a@", "@example.com"])
    def test_rejects_malformed(self, email):
        with pytest.raises(InvalidInputError) as exc_info:
            normalize_email(email)

        assert exc_info.value.field == "email"


# =============================================================================
# Issuance
# =============================================================================


@pytest.mark.asyncio
class TestInvite:
    """Tests for InvitationService.invite."""

    async def test_workspace_invitation(self, invitation_service, seed, email_sender, test_settings):
        result = await invitation_service.invite(
            seed.admin.id, " New.Hire@Example.com", "member", seed.workspace, message="Welcome!"
        )

        assert result.email_sent
        assert result.email_error is None
        assert result.invitation.email == NEW_EMAIL
        assert result.invitation.type == InvitationType.WORKSPACE
        assert result.invitation.role == WorkspaceRole.MEMBER
        assert result.invitation.status == InvitationStatus.PENDING
        assert result.invitation.company_id is None
        assert result.invitation_url == f"https://app.example.com/invite/{result.token}"
        assert result.invitation.expires_at > utcnow() + timedelta(
            days=test_settings.invitation_ttl_days - 1
        )

        assert len(email_sender.sent) == 1
        sent = email_sender.sent[0]
        assert sent.to == NEW_EMAIL
        assert sent.subject == "Invitation to join Acme Group on Bizcore"
        assert "Adam Admin" in sent.html
        assert "Welcome!" in sent.html

    async def test_company_invitation(self, invitation_service, seed, email_sender):
        result = await invitation_service.invite(
            seed.owner.id, NEW_EMAIL, "viewer", seed.workspace, company=seed.company
        )

        assert result.invitation.type == InvitationType.COMPANY
        assert result.invitation.company_id == seed.company.id
        assert result.invitation.role == WorkspaceRole.VIEWER
        assert email_sender.sent[0].subject == "Invitation to join Luna Denta Teknoloji on Bizcore"

    async def test_invitation_is_committed_and_audited(self, invitation_service, db_session, seed):
        result = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        stored = await InvitationRepository(db_session).get_fresh(result.invitation.id)
        assert stored is not None
        assert stored.token == result.token
        events = await AuditLogger(db_session).query_events(
            workspace_id=seed.workspace.id, event_type=AuditEventType.INVITATION_ISSUED
        )
        assert events[0].resource_id == str(result.invitation.id)
        assert events[0].user_id == seed.admin.id

    async def test_tokens_are_unique(self, invitation_service, seed):
        first = await invitation_service.invite(seed.admin.id, "a@example.com", "member", seed.workspace)
        second = await invitation_service.invite(seed.admin.id, "b@example.com", "member", seed.workspace)

        assert first.token != second.token
        assert len(first.token) >= 32

    async def test_email_failure_keeps_invitation(self, db_session, seed, test_settings):
        """Test a delivery failure is reported without losing the invitation."""
        service = InvitationService(db_session, FailingEmailSender(), settings=test_settings)

        result = await service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        assert not result.email_sent
        assert "provider down" in result.email_error
        stored = await InvitationRepository(db_session).get_fresh(result.invitation.id)
        assert stored.status == InvitationStatus.PENDING.value

    @pytest.mark.parametrize("user_attr", ["member", "viewer", "outsider"])
    async def test_non_admins_cannot_invite(self, invitation_service, seed, user_attr):
        with pytest.raises(AccessDeniedError):
            await invitation_service.invite(
                getattr(seed, user_attr).id, NEW_EMAIL, "member", seed.workspace
            )

    async def test_restricted_member_cannot_invite_to_other_company(self, invitation_service, seed):
        with pytest.raises(AccessDeniedError) as exc_info:
            await invitation_service.invite(
                seed.restricted.id, NEW_EMAIL, "member", seed.workspace, company=seed.other_company
            )

        assert exc_info.value.reason == "outside_company_scope"

    async def test_owner_role_cannot_be_granted(self, invitation_service, seed):
        with pytest.raises(InvalidInputError) as exc_info:
            await invitation_service.invite(seed.owner.id, NEW_EMAIL, "owner", seed.workspace)

        assert exc_info.value.field == "role"

    async def test_invalid_email(self, invitation_service, seed):
        with pytest.raises(InvalidInputError) as exc_info:
            await invitation_service.invite(seed.owner.id, "nobody", "member", seed.workspace)

        assert exc_info.value.field == "email"

    @pytest.mark.parametrize("user_attr", ["owner", "member", "restricted"])
    async def test_existing_member_is_rejected_at_acceptance(
        self, invitation_service, db_session, seed, user_attr
    ):
        """Test inviting a member succeeds but accepting cannot duplicate the membership."""
        user = getattr(seed, user_attr)
        user_id = user.id
        issued = await invitation_service.invite(
            seed.admin.id, user.email.upper(), "member", seed.workspace
        )

        with pytest.raises(AlreadyMemberError) as exc_info:
            await invitation_service.accept(issued.token, "", "")

        assert exc_info.value.user_id == user_id
        stored = await InvitationRepository(db_session).get_fresh(issued.invitation.id)
        assert stored.status == InvitationStatus.PENDING.value

    async def test_reinvite_after_acceptance(self, invitation_service, seed):
        first = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        await invitation_service.accept(first.token, "New Hire", NEW_PASSWORD)

        second = await invitation_service.invite(
            seed.admin.id, NEW_EMAIL, "admin", seed.workspace, company=seed.company
        )
        third = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "viewer", seed.workspace)

        assert second.invitation.status == InvitationStatus.PENDING
        assert third.invitation.id not in (first.invitation.id, second.invitation.id)

    async def test_restricted_admin_cannot_invite_workspace_wide(
        self, invitation_service, seed, restricted_admin
    ):
        with pytest.raises(AccessDeniedError) as exc_info:
            await invitation_service.invite(restricted_admin.id, NEW_EMAIL, "admin", seed.workspace)

        assert exc_info.value.reason == "outside_company_scope"

    async def test_restricted_admin_invites_to_own_company(
        self, invitation_service, db_session, seed, restricted_admin
    ):
        issued = await invitation_service.invite(
            restricted_admin.id, NEW_EMAIL, "admin", seed.workspace, company=seed.company
        )
        result = await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        decision = await AccessEvaluator(db_session).evaluate(
            result.user.id, seed.workspace, seed.other_company
        )
        assert not decision.granted
        assert decision.scope == RestrictedToCompany(seed.company.id)

    async def test_duplicate_pending_invitation(self, invitation_service, seed):
        first = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        with pytest.raises(DuplicateInvitationError) as exc_info:
            await invitation_service.invite(seed.owner.id, NEW_EMAIL, "viewer", seed.workspace)

        assert exc_info.value.existing_invitation_id == first.invitation.id

    async def test_workspace_and_company_invitations_are_separate_scopes(
        self, invitation_service, seed
    ):
        await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        result = await invitation_service.invite(
            seed.admin.id, NEW_EMAIL, "member", seed.workspace, company=seed.company
        )

        assert result.invitation.type == InvitationType.COMPANY

    async def test_expired_pending_invitation_is_replaced(self, invitation_service, db_session, seed):
        """Test an expired pending invitation no longer blocks a new one."""
        first = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        await _expire_now(db_session, first.invitation.id)

        second = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        assert second.invitation.id != first.invitation.id
        old = await InvitationRepository(db_session).get_fresh(first.invitation.id)
        assert old.status == InvitationStatus.EXPIRED.value


@pytest.mark.asyncio
class TestResend:
    """Tests for InvitationService.resend."""

    async def test_resend_pending(self, invitation_service, seed, email_sender):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        result = await invitation_service.resend(seed.owner.id, seed.workspace, issued.invitation.id)

        assert result.email_sent
        assert result.token == issued.token
        assert len(email_sender.sent) == 2
        assert email_sender.sent[1].subject.endswith("(resent)")

    async def test_resend_unknown(self, invitation_service, seed):
        with pytest.raises(InvitationNotFoundError):
            await invitation_service.resend(seed.owner.id, seed.workspace, uuid7())

    async def test_resend_accepted(self, invitation_service, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        with pytest.raises(InvitationAlreadyUsedError) as exc_info:
            await invitation_service.resend(seed.owner.id, seed.workspace, issued.invitation.id)

        assert exc_info.value.status == InvitationStatus.ACCEPTED.value

    async def test_resend_expired(self, invitation_service, db_session, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        await _expire_now(db_session, issued.invitation.id)

        with pytest.raises(InvitationExpiredError):
            await invitation_service.resend(seed.owner.id, seed.workspace, issued.invitation.id)

        stored = await InvitationRepository(db_session).get_fresh(issued.invitation.id)
        assert stored.status == InvitationStatus.EXPIRED.value

    async def test_resend_requires_admin(self, invitation_service, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        with pytest.raises(AccessDeniedError):
            await invitation_service.resend(seed.member.id, seed.workspace, issued.invitation.id)

    async def test_restricted_admin_resends_own_company_invitation(
        self, invitation_service, seed, restricted_admin, email_sender
    ):
        issued = await invitation_service.invite(
            seed.admin.id, NEW_EMAIL, "member", seed.workspace, company=seed.company
        )

        result = await invitation_service.resend(
            restricted_admin.id, seed.workspace, issued.invitation.id
        )

        assert result.email_sent
        assert len(email_sender.sent) == 2

    async def test_restricted_admin_cannot_resend_workspace_invitation(
        self, invitation_service, seed, restricted_admin
    ):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        with pytest.raises(AccessDeniedError) as exc_info:
            await invitation_service.resend(
                restricted_admin.id, seed.workspace, issued.invitation.id
            )

        assert exc_info.value.reason == "outside_company_scope"


@pytest.mark.asyncio
class TestListInvitations:
    """Tests for InvitationService.list_invitations."""

    async def test_lists_newest_first(self, invitation_service, seed):
        first = await invitation_service.invite(seed.admin.id, "a@example.com", "member", seed.workspace)
        second = await invitation_service.invite(seed.admin.id, "b@example.com", "member", seed.workspace)

        invitations = await invitation_service.list_invitations(seed.admin.id, seed.workspace)

        assert [i.id for i in invitations] == [second.invitation.id, first.invitation.id]

    async def test_stale_pending_flipped_to_expired(self, invitation_service, db_session, seed):
        stale = await invitation_service.invite(seed.admin.id, "a@example.com", "member", seed.workspace)
        fresh = await invitation_service.invite(seed.admin.id, "b@example.com", "member", seed.workspace)
        await _expire_now(db_session, stale.invitation.id)

        pending = await invitation_service.list_invitations(
            seed.admin.id, seed.workspace, InvitationStatus.PENDING
        )
        expired = await invitation_service.list_invitations(
            seed.admin.id, seed.workspace, InvitationStatus.EXPIRED
        )

        assert [i.id for i in pending] == [fresh.invitation.id]
        assert [i.id for i in expired] == [stale.invitation.id]
        events = await AuditLogger(db_session).query_events(
            workspace_id=seed.workspace.id, event_type=AuditEventType.INVITATION_EXPIRED
        )
        assert len(events) == 1

    async def test_summaries_carry_no_token(self, invitation_service, seed):
        await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        invitations = await invitation_service.list_invitations(seed.admin.id, seed.workspace)

        assert "token" not in invitations[0].model_dump()

    async def test_viewer_cannot_list(self, invitation_service, seed):
        with pytest.raises(AccessDeniedError):
            await invitation_service.list_invitations(seed.viewer.id, seed.workspace)

    async def test_restricted_admin_cannot_list(self, invitation_service, seed, restricted_admin):
        with pytest.raises(AccessDeniedError):
            await invitation_service.list_invitations(restricted_admin.id, seed.workspace)


# =============================================================================
# Preview and acceptance
# =============================================================================


@pytest.mark.asyncio
class TestPreview:
    """Tests for InvitationService.get_preview."""

    async def test_preview_workspace_invitation(self, invitation_service, seed):
        issued = await invitation_service.invite(
            seed.admin.id, NEW_EMAIL, "admin", seed.workspace, message="Join us"
        )

        preview = await invitation_service.get_preview(issued.token)

        assert preview.email == NEW_EMAIL
        assert preview.role == WorkspaceRole.ADMIN
        assert preview.workspace.slug == "acme-group"
        assert preview.company is None
        assert preview.inviter.name == "Adam Admin"
        assert preview.message == "Join us"

    async def test_preview_company_invitation(self, invitation_service, seed):
        issued = await invitation_service.invite(
            seed.admin.id, NEW_EMAIL, "member", seed.workspace, company=seed.other_company
        )

        preview = await invitation_service.get_preview(issued.token)

        assert preview.company.slug == "aydoganlar"

    async def test_preview_unknown_token(self, invitation_service, seed):
        with pytest.raises(InvitationNotFoundError) as exc_info:
            await invitation_service.get_preview("does-not-exist-token")

        assert "does-not-exist-token" not in str(exc_info.value)

    async def test_preview_expired(self, invitation_service, db_session, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        await _expire_now(db_session, issued.invitation.id)

        with pytest.raises(InvitationExpiredError) as exc_info:
            await invitation_service.get_preview(issued.token)

        assert exc_info.value.invitation_id == issued.invitation.id


@pytest.mark.asyncio
class TestAccept:
    """Tests for InvitationService.accept."""

    async def test_new_user_accepts_workspace_invitation(
        self, invitation_service, db_session, seed, test_settings
    ):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        result = await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        assert result.created_user
        assert result.session_token
        assert result.user.email == NEW_EMAIL
        assert result.workspace.id == seed.workspace.id
        assert result.company.id == seed.company.id

        identity = DatabaseIdentityProvider(db_session, test_settings)
        signed_in = await identity.get_user_for_session(result.session_token)
        assert signed_in.id == result.user.id
        assert signed_in.email_verified

        member = await MemberRepository(db_session).get_membership(seed.workspace.id, result.user.id)
        assert member.role == WorkspaceRole.MEMBER.value
        assert member.invited_by == seed.admin.id
        assert decode_access_scope(member.permissions) == decode_access_scope(None)

        stored = await InvitationRepository(db_session).get_fresh(issued.invitation.id)
        assert stored.status == InvitationStatus.ACCEPTED.value
        assert stored.accepted_by == result.user.id
        assert stored.responded_at is not None

    async def test_company_invitation_restricts_member(self, invitation_service, db_session, seed):
        issued = await invitation_service.invite(
            seed.admin.id, NEW_EMAIL, "member", seed.workspace, company=seed.other_company
        )

        result = await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        assert result.company.id == seed.other_company.id
        member = await MemberRepository(db_session).get_membership(seed.workspace.id, result.user.id)
        assert decode_access_scope(member.permissions) == RestrictedToCompany(seed.other_company.id)

        evaluator = AccessEvaluator(db_session)
        allowed = await evaluator.evaluate(result.user.id, seed.workspace, seed.other_company)
        denied = await evaluator.evaluate(result.user.id, seed.workspace, seed.company)
        assert allowed.granted
        assert not denied.granted

    async def test_existing_user_accepts_without_new_session(
        self, invitation_service, db_session, seed
    ):
        issued = await invitation_service.invite(
            seed.admin.id, seed.outsider.email, "viewer", seed.workspace
        )

        result = await invitation_service.accept(issued.token, "", "")

        assert not result.created_user
        assert result.session_token is None
        assert result.user.id == seed.outsider.id
        member = await MemberRepository(db_session).get_membership(seed.workspace.id, seed.outsider.id)
        assert member.role == WorkspaceRole.VIEWER.value

    async def test_accept_is_audited(self, invitation_service, db_session, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        result = await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        audit = AuditLogger(db_session)
        accepted = await audit.query_events(event_type=AuditEventType.INVITATION_ACCEPTED)
        joined = await audit.query_events(event_type=AuditEventType.MEMBER_JOINED)
        assert accepted[0].resource_id == str(issued.invitation.id)
        assert joined[0].user_id == result.user.id

    async def test_accept_twice(self, invitation_service, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        with pytest.raises(InvitationAlreadyUsedError):
            await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

    async def test_concurrent_account_creation_conflicts(
        self, invitation_service, db_session, seed, make_user
    ):
        """Test losing the race to create the invitee's account fails as already used."""
        workspace_id = seed.workspace.id
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        await make_user(NEW_EMAIL, "Other Tab")
        await db_session.commit()

        with patch.object(
            invitation_service.identity, "get_user_by_email", AsyncMock(return_value=None)
        ):
            with pytest.raises(InvitationAlreadyUsedError):
                await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        stored = await InvitationRepository(db_session).get_fresh(issued.invitation.id)
        assert stored.status == InvitationStatus.PENDING.value
        winner = await UserRepository(db_session).get_by_email(NEW_EMAIL)
        assert await MemberRepository(db_session).get_membership(workspace_id, winner.id) is None

    async def test_accept_unknown_token(self, invitation_service, seed):
        with pytest.raises(InvitationNotFoundError):
            await invitation_service.accept("unknown-token", "New Hire", NEW_PASSWORD)

    async def test_accept_expired(self, invitation_service, db_session, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        await _expire_now(db_session, issued.invitation.id)

        with pytest.raises(InvitationExpiredError):
            await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        stored = await InvitationRepository(db_session).get_fresh(issued.invitation.id)
        assert stored.status == InvitationStatus.EXPIRED.value
        assert await UserRepository(db_session).get_by_email(NEW_EMAIL) is None

    async def test_invalid_password_leaves_invitation_pending(
        self, invitation_service, db_session, seed
    ):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        invitation_id = issued.invitation.id

        with pytest.raises(InvalidInputError):
            await invitation_service.accept(issued.token, "New Hire", "short")

        stored = await InvitationRepository(db_session).get_fresh(invitation_id)
        assert stored.status == InvitationStatus.PENDING.value
        assert await UserRepository(db_session).get_by_email(NEW_EMAIL) is None

    async def test_user_who_joined_meanwhile_is_rejected(
        self, invitation_service, db_session, seed, add_member
    ):
        """Test acceptance fails if the invitee became a member after issuance."""
        issued = await invitation_service.invite(
            seed.admin.id, seed.outsider.email, "member", seed.workspace
        )
        await add_member(seed.workspace, seed.outsider)
        await db_session.commit()

        with pytest.raises(AlreadyMemberError):
            await invitation_service.accept(issued.token, "", "")


@pytest.mark.asyncio
class TestAcceptanceRecovery:
    """Tests for the two-step acceptance when step two fails."""

    async def _accept_with_failing_membership(self, invitation_service, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        with patch.object(
            MemberRepository,
            "create",
            new_callable=AsyncMock,
            side_effect=RuntimeError("connection reset"),
        ):
            with pytest.raises(MembershipProvisioningError) as exc_info:
                await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)
        return issued, exc_info.value

    async def test_failed_provisioning_keeps_intermediate_state(
        self, invitation_service, db_session, seed
    ):
        workspace_id = seed.workspace.id
        issued, error = await self._accept_with_failing_membership(invitation_service, seed)

        assert error.invitation_id == issued.invitation.id
        stored = await InvitationRepository(db_session).get_fresh(issued.invitation.id)
        assert stored.status == InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP.value
        user = await UserRepository(db_session).get_by_email(NEW_EMAIL)
        assert user is not None
        assert stored.accepted_by == user.id
        assert await MemberRepository(db_session).get_membership(workspace_id, user.id) is None

    async def test_retry_through_accept_is_rejected(self, invitation_service, seed):
        issued, _ = await self._accept_with_failing_membership(invitation_service, seed)

        with pytest.raises(InvitationAlreadyUsedError) as exc_info:
            await invitation_service.accept(issued.token, "New Hire", NEW_PASSWORD)

        assert exc_info.value.status == InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP.value

    async def test_resume_acceptance_completes_membership(
        self, invitation_service, db_session, seed
    ):
        workspace_id = seed.workspace.id
        issued, _ = await self._accept_with_failing_membership(invitation_service, seed)

        result = await invitation_service.resume_acceptance(issued.token)

        assert result.user.email == NEW_EMAIL
        assert result.session_token is None
        member = await MemberRepository(db_session).get_membership(workspace_id, result.user.id)
        assert member is not None
        stored = await InvitationRepository(db_session).get_fresh(issued.invitation.id)
        assert stored.status == InvitationStatus.ACCEPTED.value

    async def test_complete_pending_memberships(self, invitation_service, db_session, seed):
        workspace_id = seed.workspace.id
        issued, _ = await self._accept_with_failing_membership(invitation_service, seed)

        completed = await invitation_service.complete_pending_memberships(workspace_id)

        assert completed == 1
        stored = await InvitationRepository(db_session).get_fresh(issued.invitation.id)
        assert stored.status == InvitationStatus.ACCEPTED.value
        assert await invitation_service.complete_pending_memberships(workspace_id) == 0

    async def test_resume_on_pending_invitation_rejected(self, invitation_service, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)

        with pytest.raises(InvitationAlreadyUsedError):
            await invitation_service.resume_acceptance(issued.token)


@pytest.mark.asyncio
class TestGuardedTransition:
    """Tests for the compare-and-set status update behind acceptance."""

    async def test_only_first_transition_wins(self, invitation_service, db_session, seed):
        issued = await invitation_service.invite(seed.admin.id, NEW_EMAIL, "member", seed.workspace)
        repository = InvitationRepository(db_session)

        first = await repository.transition(
            issued.invitation.id, InvitationStatus.PENDING, InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP
        )
        second = await repository.transition(
            issued.invitation.id, InvitationStatus.PENDING, InvitationStatus.ACCEPTED_PENDING_MEMBERSHIP
        )

        assert first is True
        assert second is False
