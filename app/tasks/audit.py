import logging
from datetime import datetime

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.audit.store_audit_event", ignore_result=True)
def store_audit_event(
    event_type: str,
    document_id: str | None = None,
    principal_id: str | None = None,
    occurred_at: str | None = None,
    details: dict | None = None,
) -> None:
    """Persist one audit record. Never raises."""
    from app.db import SessionLocal

    db = SessionLocal()
    try:
        _store(db, event_type, document_id, principal_id, occurred_at, details)
    except Exception as e:
        db.rollback()
        logger.exception("Failed to store audit event %s: %s", event_type, e)
    finally:
        db.close()


def _store(
    db: "Session",  # type: ignore[name-defined]  # noqa: F821
    event_type: str,
    document_id: str | None,
    principal_id: str | None,
    occurred_at: str | None,
    details: dict | None,
) -> None:
    from app.models.audit import AuditEvent
    from app.services.common import coerce_uuid

    audit_event = AuditEvent(
        event_type=event_type,
        document_id=coerce_uuid(document_id),
        principal_id=coerce_uuid(principal_id),
        details=details or {},
    )
    if occurred_at:
        audit_event.occurred_at = datetime.fromisoformat(occurred_at)
    db.add(audit_event)
    db.commit()
    logger.info("Stored audit event %s for document %s", event_type, document_id)
