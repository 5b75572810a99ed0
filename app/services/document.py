"""Document queries and metadata edits.

Status, custody and sequence belong to the derivation engine and are never
written here.
"""

import logging

from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.records import Document, DocumentPriority, DocumentStatus, Principal
from app.schemas.records import DocumentUpdate
from app.services.audit import AuditRecord, audit_events
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.document_status import EDITABLE_STATUSES
from app.services.event import EventType
from app.services.permissions import Permission
from app.services.response import ListResponseMixin
from app.services.role_assignment import RoleAssignment

logger = logging.getLogger(__name__)

_LEDGER_FIELDS = frozenset({"status", "current_area_id", "last_sequence"})


def _parse_enum(enum_cls, value, label):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label}")


class Documents(ListResponseMixin):
    @staticmethod
    def get(db: Session, document_id: str) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise HTTPException(status_code=404, detail="Document not found")
        return document

    @staticmethod
    def list(
        db: Session,
        status: str | None,
        current_area_id: str | None,
        priority: str | None,
        search: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Document]:
        stmt = select(Document)
        status_value = _parse_enum(DocumentStatus, status, "status")
        if status_value is not None:
            stmt = stmt.where(Document.status == status_value)
        if current_area_id is not None:
            stmt = stmt.where(Document.current_area_id == coerce_uuid(current_area_id))
        priority_value = _parse_enum(DocumentPriority, priority, "priority")
        if priority_value is not None:
            stmt = stmt.where(Document.priority == priority_value)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(Document.code.ilike(pattern), Document.subject.ilike(pattern))
            )
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "created_at": Document.created_at,
                "updated_at": Document.updated_at,
                "code": Document.code,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update(
        db: Session, document_id: str, principal: Principal, payload: DocumentUpdate
    ) -> Document:
        document = Documents.get(db, document_id)
        assignment = RoleAssignment.resolve(principal)
        if not assignment.can_act_on(Permission.EDIT):
            raise HTTPException(status_code=403, detail="EDIT permission required")
        if not assignment.holds_area(document.current_area_id):
            raise HTTPException(
                status_code=403, detail="Document is held by another area"
            )
        if document.status not in EDITABLE_STATUSES:
            raise HTTPException(
                status_code=409,
                detail=f"Document cannot be edited in status {document.status.value}",
            )

        data = payload.model_dump(exclude_unset=True)
        for key, value in data.items():
            if key in _LEDGER_FIELDS:
                continue
            setattr(document, key, value)
        db.commit()
        db.refresh(document)
        logger.info("Updated metadata of document %s", document.id)

        try:
            audit_events.record(
                AuditRecord(
                    type=EventType.document_updated,
                    document_id=document.id,
                    principal_id=principal.id,
                    details={"fields": sorted(data)},
                )
            )
        except Exception:
            logger.exception("Failed to queue audit event for document %s", document.id)
        return document


documents = Documents()
