from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.audit import AuditEvent
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.event import EventType
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditRecord:
    type: EventType
    document_id: uuid.UUID | None
    principal_id: uuid.UUID | None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    details: dict = field(default_factory=dict)


class AuditEvents(ListResponseMixin):
    @staticmethod
    def record(event: AuditRecord) -> None:
        """Queue an audit record for storage.

        Raises if the broker rejects the task; callers that must not fail
        wrap this call.
        """
        from app.tasks.audit import store_audit_event

        store_audit_event.delay(
            event_type=event.type.value,
            document_id=str(event.document_id) if event.document_id else None,
            principal_id=str(event.principal_id) if event.principal_id else None,
            occurred_at=event.timestamp.isoformat(),
            details=event.details,
        )
        logger.debug(
            "Queued audit event %s for document %s",
            event.type.value,
            event.document_id,
        )

    @staticmethod
    def get(db: Session, event_id: str) -> AuditEvent:
        audit_event = db.get(AuditEvent, coerce_uuid(event_id))
        if not audit_event:
            raise HTTPException(status_code=404, detail="Audit event not found")
        return audit_event

    @staticmethod
    def list(
        db: Session,
        document_id: str | None,
        principal_id: str | None,
        event_type: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[AuditEvent]:
        stmt = select(AuditEvent)
        if document_id is not None:
            stmt = stmt.where(AuditEvent.document_id == coerce_uuid(document_id))
        if principal_id is not None:
            stmt = stmt.where(AuditEvent.principal_id == coerce_uuid(principal_id))
        if event_type is not None:
            stmt = stmt.where(AuditEvent.event_type == event_type)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "occurred_at": AuditEvent.occurred_at,
                "created_at": AuditEvent.created_at,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()


audit_events = AuditEvents()
