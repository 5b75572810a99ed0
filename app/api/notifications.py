from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_principal
from app.models.records import Principal
from app.schemas.common import ListResponse
from app.schemas.notification import (
    MarkReadRequest,
    NotificationRead,
    UnreadCountResponse,
)
from app.services.notification import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    principal: Principal = Depends(require_principal), db: Session = Depends(get_db)
):
    count = notifications.unread_count(db, str(principal.id))
    return {"count": count}


@router.get("", response_model=ListResponse[NotificationRead])
def list_notifications(
    document_id: str | None = None,
    event_type: str | None = None,
    is_read: bool | None = None,
    is_active: bool | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=25, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return notifications.list_response(
        db,
        str(principal.id),
        document_id,
        event_type,
        is_read,
        is_active,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.post("/mark-read")
def mark_read(
    payload: MarkReadRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    count = notifications.mark_read(
        db, [str(nid) for nid in payload.notification_ids], str(principal.id)
    )
    return {"marked": count}


@router.post("/mark-all-read")
def mark_all_read(
    principal: Principal = Depends(require_principal), db: Session = Depends(get_db)
):
    count = notifications.mark_all_read(db, str(principal.id))
    return {"marked": count}


@router.get("/{notification_id}", response_model=NotificationRead)
def get_notification(
    notification_id: str,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    notification = notifications.get(db, notification_id)
    if notification.principal_id != principal.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def dismiss_notification(
    notification_id: str,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    notifications.dismiss(db, notification_id, str(principal.id))
