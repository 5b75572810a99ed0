from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.records import Notification, Principal
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.event import EventType
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


class Notifications(ListResponseMixin):
    @staticmethod
    def notify(
        area_id: uuid.UUID | str,
        document_id: uuid.UUID | str,
        event_type: EventType,
    ) -> None:
        """Queue in-app notifications for every principal of an area.

        Raises if the broker rejects the task; callers that must not fail
        wrap this call.
        """
        from app.tasks.notifications import dispatch_area_notifications

        dispatch_area_notifications.delay(
            area_id=str(area_id),
            document_id=str(document_id),
            event_type=event_type.value,
        )
        logger.debug(
            "Queued %s notifications for area %s", event_type.value, area_id
        )

    @staticmethod
    def get(db: Session, notification_id: str) -> Notification:
        notification = db.get(Notification, coerce_uuid(notification_id))
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        return notification

    @staticmethod
    def list(
        db: Session,
        principal_id: str | None,
        document_id: str | None,
        event_type: str | None,
        is_read: bool | None,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> List[Notification]:
        query = db.query(Notification)
        if principal_id is not None:
            query = query.filter(Notification.principal_id == coerce_uuid(principal_id))
        if document_id is not None:
            query = query.filter(Notification.document_id == coerce_uuid(document_id))
        if event_type is not None:
            query = query.filter(Notification.event_type == event_type)
        if is_read is not None:
            query = query.filter(Notification.is_read == is_read)
        if is_active is None:
            query = query.filter(Notification.is_active.is_(True))
        else:
            query = query.filter(Notification.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": Notification.created_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def mark_read(
        db: Session, notification_ids: List[str], principal_id: str | None = None
    ) -> int:
        now = datetime.now(timezone.utc)
        count = 0
        for nid in notification_ids:
            notification = db.get(Notification, coerce_uuid(nid))
            if not notification or notification.is_read:
                continue
            if principal_id is not None and str(notification.principal_id) != str(
                principal_id
            ):
                continue
            notification.is_read = True
            notification.read_at = now
            count += 1
        db.commit()
        logger.info("Marked %d notifications as read", count)
        return count

    @staticmethod
    def mark_all_read(db: Session, principal_id: str) -> int:
        if not db.get(Principal, coerce_uuid(principal_id)):
            raise HTTPException(status_code=404, detail="Principal not found")
        now = datetime.now(timezone.utc)
        notifications = (
            db.query(Notification)
            .filter(
                Notification.principal_id == coerce_uuid(principal_id),
                Notification.is_read.is_(False),
                Notification.is_active.is_(True),
            )
            .all()
        )
        for n in notifications:
            n.is_read = True
            n.read_at = now
        db.commit()
        logger.info(
            "Marked all %d notifications as read for principal %s",
            len(notifications),
            principal_id,
        )
        return len(notifications)

    @staticmethod
    def unread_count(db: Session, principal_id: str) -> int:
        if not db.get(Principal, coerce_uuid(principal_id)):
            raise HTTPException(status_code=404, detail="Principal not found")
        return (
            db.query(Notification)
            .filter(
                Notification.principal_id == coerce_uuid(principal_id),
                Notification.is_read.is_(False),
                Notification.is_active.is_(True),
            )
            .count()
        )

    @staticmethod
    def dismiss(
        db: Session, notification_id: str, principal_id: str | None = None
    ) -> None:
        notification = db.get(Notification, coerce_uuid(notification_id))
        if not notification or (
            principal_id is not None
            and str(notification.principal_id) != str(principal_id)
        ):
            raise HTTPException(status_code=404, detail="Notification not found")
        notification.is_active = False
        db.commit()
        logger.info("Dismissed notification %s", notification_id)


notifications = Notifications()
