"""Audit trail for tenant-level changes.

Invitations, membership changes, workspace setup and business entity writes all
record an ``AuditEvent`` through ``AuditLogger``. Events are added to the
caller's session and flushed, so they commit or roll back together with the
change they describe.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.core.context import current_correlation_id, get_current_context_or_none
from bizcore.db.models.audit import AuditEvent, AuditEventType, AuditSeverity

MAX_QUERY_LIMIT = 1000


def _value(member: AuditEventType | AuditSeverity | str) -> str:
    return member.value if isinstance(member, AuditEventType | AuditSeverity) else member


class AuditLogger:
    """Writes and reads audit events within one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_event(
        self,
        event_type: AuditEventType | str,
        event_data: dict[str, Any],
        *,
        correlation_id: UUID | None = None,
        severity: AuditSeverity | str = AuditSeverity.INFO,
        workspace_id: UUID | None = None,
        user_id: UUID | None = None,
        resource_type: str | None = None,
        resource_id: UUID | str | None = None,
    ) -> AuditEvent:
        """Append an audit event.

        Values not passed explicitly are taken from the current request
        context: the correlation id, the acting user and the actor type. Outside
        a request (consolidation batches) a fresh correlation id is used.

        Args:
            event_type: What happened, e.g. ``invitation.issued``
            event_data: JSON-serializable details
            correlation_id: Overrides the context's correlation id
            severity: Event severity (default: info)
            workspace_id: Workspace the event belongs to
            user_id: Acting user; defaults to the context's actor
            resource_type: Kind of resource, e.g. ``invitation``
            resource_id: Id of the resource

        Returns:
            The flushed AuditEvent
        """
        ctx = get_current_context_or_none()
        if user_id is None and ctx is not None:
            user_id = ctx.actor_id

        event = AuditEvent(
            event_type=_value(event_type),
            severity=_value(severity),
            workspace_id=workspace_id,
            user_id=user_id,
            correlation_id=correlation_id or current_correlation_id(),
            actor_type=ctx.actor_type.value if ctx is not None else None,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            event_data=event_data,
        )
        self.db.add(event)
        await self.db.flush()
        return event

    async def query_events(
        self,
        workspace_id: UUID | None = None,
        event_type: AuditEventType | str | None = None,
        resource_id: UUID | str | None = None,
        correlation_id: UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditEvent]:
        """Filter audit events, newest first.

        ``limit`` is capped at 1000.
        """
        conditions = []
        if workspace_id is not None:
            conditions.append(AuditEvent.workspace_id == workspace_id)
        if event_type is not None:
            conditions.append(AuditEvent.event_type == _value(event_type))
        if resource_id is not None:
            conditions.append(AuditEvent.resource_id == str(resource_id))
        if correlation_id is not None:
            conditions.append(AuditEvent.correlation_id == correlation_id)
        if start_date is not None:
            conditions.append(AuditEvent.created_at >= start_date)
        if end_date is not None:
            conditions.append(AuditEvent.created_at <= end_date)

        stmt = (
            select(AuditEvent)
            .where(*conditions)
            .order_by(AuditEvent.created_at.desc(), AuditEvent.audit_id.desc())
            .limit(min(limit, MAX_QUERY_LIMIT))
            .offset(offset)
        )
        return await self._all(stmt)

    async def history(self, resource_type: str, resource_id: UUID | str) -> list[AuditEvent]:
        """Every event recorded for one resource, oldest first.

        Used to show how an invitation moved through its states or how an
        entity was created and merged.
        """
        stmt = (
            select(AuditEvent)
            .where(
                AuditEvent.resource_type == resource_type,
                AuditEvent.resource_id == str(resource_id),
            )
            .order_by(AuditEvent.created_at, AuditEvent.audit_id)
        )
        return await self._all(stmt)

    async def _all(self, stmt: Select) -> list[AuditEvent]:
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
