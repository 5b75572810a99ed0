from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability
from app.models.records import Principal
from app.schemas.common import ListResponse
from app.schemas.records import AuditEventRead
from app.services.audit import audit_events
from app.services.permissions import Permission

router = APIRouter(prefix="/audit-events", tags=["audit"])

require_auditor = require_capability(Permission.AUDIT)


@router.get("/{event_id}", response_model=AuditEventRead)
def get_audit_event(
    event_id: str,
    _: Principal = Depends(require_auditor),
    db: Session = Depends(get_db),
):
    return audit_events.get(db, event_id)


@router.get("", response_model=ListResponse[AuditEventRead])
def list_audit_events(
    document_id: str | None = None,
    principal_id: str | None = None,
    event_type: str | None = None,
    order_by: str = Query(default="occurred_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_auditor),
    db: Session = Depends(get_db),
):
    return audit_events.list_response(
        db,
        document_id,
        principal_id,
        event_type,
        order_by,
        order_dir,
        limit,
        offset,
    )
