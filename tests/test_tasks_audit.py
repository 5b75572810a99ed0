import uuid
from unittest.mock import patch

from app.models.audit import AuditEvent


class TestStoreAuditEvent:
    def test_stores_event(self, db_session, received_document, clerk) -> None:
        from app.tasks.audit import _store

        _store(
            db_session,
            "document.completed",
            str(received_document.id),
            str(clerk.id),
            "2026-03-01T12:00:00+00:00",
            {"sequence": 4},
        )

        event = (
            db_session.query(AuditEvent)
            .filter(
                AuditEvent.document_id == received_document.id,
                AuditEvent.event_type == "document.completed",
            )
            .one()
        )
        assert event.principal_id == clerk.id
        assert event.details == {"sequence": 4}
        assert event.occurred_at.year == 2026

    def test_stores_event_without_references(self, db_session) -> None:
        from app.tasks.audit import _store

        marker = uuid.uuid4().hex
        _store(db_session, "access.denied", None, None, None, {"marker": marker})
        events = (
            db_session.query(AuditEvent)
            .filter(AuditEvent.event_type == "access.denied")
            .all()
        )
        assert any((e.details or {}).get("marker") == marker for e in events)

    def test_task_swallows_errors(self) -> None:
        from app.tasks.audit import store_audit_event

        with patch("app.tasks.audit._store", side_effect=RuntimeError("db down")):
            store_audit_event("document.completed", str(uuid.uuid4()))
