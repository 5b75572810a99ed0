import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)

_EVENT_TITLES = {
    "document.received": "Documento recibido",
    "document.derivation_requested": "Documento derivado a su área",
    "document.derivation_confirmed": "Derivación confirmada",
    "document.completed": "Documento completado",
    "document.rejected": "Documento rechazado",
    "document.archived": "Documento archivado",
}


@celery_app.task(
    name="app.tasks.notifications.dispatch_area_notifications", ignore_result=True
)
def dispatch_area_notifications(
    area_id: str,
    document_id: str,
    event_type: str,
) -> None:
    """Create in-app notifications for the principals of an area.

    Blocked and inactive principals are skipped.
    """
    if not area_id:
        return

    from app.db import SessionLocal

    db = SessionLocal()
    try:
        _dispatch(db, area_id, document_id, event_type)
    except Exception as e:
        db.rollback()
        logger.exception("Failed to dispatch notifications for %s: %s", event_type, e)
    finally:
        db.close()


def _dispatch(
    db: "Session",  # type: ignore[name-defined]  # noqa: F821
    area_id: str,
    document_id: str,
    event_type: str,
) -> int:
    from app.models.records import Document, Notification, Principal
    from app.services.common import coerce_uuid

    area_uuid = coerce_uuid(area_id)
    doc_uuid = coerce_uuid(document_id)
    document = db.get(Document, doc_uuid) if doc_uuid else None
    code = document.code if document else str(document_id)

    recipients = (
        db.query(Principal)
        .filter(
            Principal.area_id == area_uuid,
            Principal.is_active.is_(True),
            Principal.is_blocked.is_(False),
        )
        .all()
    )

    for principal in recipients:
        db.add(
            Notification(
                principal_id=principal.id,
                area_id=area_uuid,
                document_id=doc_uuid,
                title=_EVENT_TITLES.get(
                    event_type, event_type.replace(".", " ").title()
                ),
                body=f"Event {event_type} on document {code}",
                event_type=event_type,
            )
        )

    db.commit()
    logger.info(
        "Dispatched %d notifications for event %s to area %s",
        len(recipients),
        event_type,
        area_id,
    )
    return len(recipients)
