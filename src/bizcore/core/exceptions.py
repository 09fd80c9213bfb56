"""Core exceptions for tenant resolution, access control and invitations.

Every domain error belongs to one of a small set of kinds (not found,
unauthorized, forbidden, conflict, expired, invalid input). The API layer maps
kinds to transport codes; services only raise.
"""

from datetime import datetime
from uuid import UUID

from bizcore.utils.exceptions import BizcoreError


class ContextNotSetError(BizcoreError):
    """Raised when attempting to access request context that is not set."""

    def __init__(self, message: str = "Request context is not set"):
        super().__init__(message)


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(BizcoreError):
    """Base class for lookups that matched nothing."""

    resource: str = "resource"

    def __init__(self, reference: UUID | str):
        super().__init__(f"{self.resource.capitalize()} not found: {reference}")
        self.reference = reference

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.args[0]}"


class WorkspaceNotFoundError(NotFoundError):
    """Raised when a workspace id or slug does not resolve."""

    resource = "workspace"


class CompanyNotFoundError(NotFoundError):
    """Raised when a company reference does not resolve inside a workspace.

    Attributes:
        workspace_id: The workspace the lookup was scoped to
    """

    resource = "company"

    def __init__(self, reference: UUID | str, workspace_id: UUID | None = None):
        super().__init__(reference)
        self.workspace_id = workspace_id


class InvitationNotFoundError(NotFoundError):
    """Raised when an invitation token or id does not exist."""

    resource = "invitation"


class MemberNotFoundError(NotFoundError):
    """Raised when a user has no membership row in the workspace."""

    resource = "member"


class EntityNotFoundError(NotFoundError):
    """Raised when a business entity does not exist in the given scope."""

    resource = "business entity"


# =============================================================================
# Authentication & authorization
# =============================================================================


class AuthenticationError(BizcoreError):
    """Raised when no authenticated identity is available.

    Attributes:
        reason: The specific reason authentication failed
    """

    def __init__(self, reason: str = "Authentication failed"):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"AuthenticationError: {self.args[0]}"


class AccessDeniedError(BizcoreError):
    """Raised when an authenticated user may not act in a scope.

    Non-members, members outside their company restriction and members with an
    insufficient role all surface as this error, never as a not-found.

    Attributes:
        workspace_id: The resolved workspace
        reason: Machine-readable denial reason
        company_id: The resolved company, if the request named one
    """

    def __init__(
        self,
        workspace_id: UUID,
        reason: str,
        company_id: UUID | None = None,
    ):
        super().__init__(f"Access denied to workspace {workspace_id}: {reason}")
        self.workspace_id = workspace_id
        self.reason = reason
        self.company_id = company_id

    def __str__(self) -> str:
        return f"AccessDeniedError: {self.args[0]}"


# =============================================================================
# Conflicts
# =============================================================================


class ConflictError(BizcoreError):
    """Base class for uniqueness and state conflicts."""

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.args[0]}"


class DuplicateInvitationError(ConflictError):
    """Raised when a pending invitation already exists for the email and scope.

    Attributes:
        email: The invited address
        existing_invitation_id: The pending invitation that blocks issuance
    """

    def __init__(self, email: str, existing_invitation_id: UUID):
        super().__init__(f"An invitation is already pending for {email}")
        self.email = email
        self.existing_invitation_id = existing_invitation_id


class AlreadyMemberError(ConflictError):
    """Raised when the invited user is already a member of the workspace.

    Attributes:
        workspace_id: The target workspace
        user_id: The existing member
    """

    def __init__(self, workspace_id: UUID, user_id: UUID):
        super().__init__(f"User {user_id} is already a member of workspace {workspace_id}")
        self.workspace_id = workspace_id
        self.user_id = user_id


class InvitationAlreadyUsedError(ConflictError):
    """Raised when an invitation is no longer pending.

    Attributes:
        invitation_id: The invitation
        status: Its current status
    """

    def __init__(self, invitation_id: UUID, status: str):
        super().__init__(f"Invitation {invitation_id} is not pending (status: {status})")
        self.invitation_id = invitation_id
        self.status = status


class DuplicateTaxNumberError(ConflictError):
    """Raised when a tax number is already used by another entity in the workspace."""

    def __init__(self, tax_number: str, existing_entity_id: UUID):
        super().__init__(f"Tax number {tax_number} already belongs to entity {existing_entity_id}")
        self.tax_number = tax_number
        self.existing_entity_id = existing_entity_id


class DuplicateEntityCodeError(ConflictError):
    """Raised when a customer or supplier code is already used in the company.

    Attributes:
        code_type: "customer_code" or "supplier_code"
        code: The duplicated value
        existing_entity_id: The entity that holds the code
    """

    def __init__(self, code_type: str, code: str, existing_entity_id: UUID):
        super().__init__(f"{code_type} {code} already belongs to entity {existing_entity_id}")
        self.code_type = code_type
        self.code = code
        self.existing_entity_id = existing_entity_id


# =============================================================================
# Expiry, validation, provisioning
# =============================================================================


class InvitationExpiredError(BizcoreError):
    """Raised when an invitation is used after its expiry.

    Attributes:
        invitation_id: The expired invitation
        expired_at: When it expired
    """

    def __init__(self, invitation_id: UUID, expired_at: datetime):
        super().__init__(f"Invitation {invitation_id} expired at {expired_at.isoformat()}")
        self.invitation_id = invitation_id
        self.expired_at = expired_at

    def __str__(self) -> str:
        return f"InvitationExpiredError: {self.args[0]}"


class InvalidInputError(BizcoreError):
    """Raised when input has the wrong shape (e.g. an unknown role).

    Attributes:
        field: The offending field
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        return f"InvalidInputError: {self.args[0]}"


class MembershipProvisioningError(BizcoreError):
    """Raised when an accepted invitation could not be turned into a membership.

    The invitation is left in ``accepted_pending_membership`` so the step can
    be retried.

    Attributes:
        invitation_id: The invitation awaiting its membership row
    """

    def __init__(self, invitation_id: UUID, cause: str):
        super().__init__(f"Membership for invitation {invitation_id} was not provisioned: {cause}")
        self.invitation_id = invitation_id
        self.cause = cause

    def __str__(self) -> str:
        return f"MembershipProvisioningError: {self.args[0]}"
