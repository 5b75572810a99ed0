import uuid

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from app.models.records import (
    Area,
    DerivationLedgerEntry,
    Document,
    DocumentAction,
    DocumentOrigin,
    DocumentPriority,
    DocumentStatus,
    Principal,
)


# ---------------------------------------------------------------------------
# Enum Tests
# ---------------------------------------------------------------------------


class TestEnums:
    def test_document_status_values(self) -> None:
        assert {s.value for s in DocumentStatus} == {
            "received",
            "pending_derivation",
            "in_process",
            "derived",
            "completed",
            "archived",
            "rejected",
        }

    def test_document_action_values(self) -> None:
        assert DocumentAction.derive_request.value == "derive_request"
        assert len(DocumentAction) == 6

    def test_priority_and_origin(self) -> None:
        assert DocumentPriority.normal.value == "normal"
        assert DocumentOrigin.external.value == "external"


# ---------------------------------------------------------------------------
# Table Tests
# ---------------------------------------------------------------------------


class TestTables:
    def test_ledger_has_no_updated_at(self) -> None:
        columns = {c.key for c in inspect(DerivationLedgerEntry).columns}
        assert "updated_at" not in columns
        assert {"document_id", "sequence", "resulting_status"} <= columns

    def test_document_metadata_column_name(self) -> None:
        assert inspect(Document).attrs.metadata_.columns[0].name == "metadata"
        assert "metadata_" not in Document.__table__.c


# ---------------------------------------------------------------------------
# Row Tests
# ---------------------------------------------------------------------------


class TestRows:
    def test_area_defaults(self, db_session) -> None:
        suffix = uuid.uuid4().hex[:8]
        area = Area(name=f"Area {suffix}", code=f"A-{suffix}")
        db_session.add(area)
        db_session.flush()
        assert area.is_active is True
        assert area.is_reception is False
        assert area.created_at is not None

    def test_area_code_unique(self, db_session, forensics) -> None:
        db_session.add(Area(name=f"Other {uuid.uuid4().hex}", code=forensics.code))
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_principal_defaults(self, db_session, forensics) -> None:
        principal = Principal(
            first_name="Ana",
            last_name="Quispe",
            email=f"ana-{uuid.uuid4().hex[:8]}@example.com",
            area_id=forensics.id,
        )
        db_session.add(principal)
        db_session.flush()
        assert principal.permission_mask == 0
        assert principal.is_blocked is False
        assert principal.api_key_hash is None

    def test_document_defaults(self, db_session, reception, clerk) -> None:
        document = Document(
            code=f"EXP-{uuid.uuid4().hex[:10]}",
            document_type="Oficio",
            subject="Pericia",
            current_area_id=reception.id,
            received_by=clerk.id,
        )
        db_session.add(document)
        db_session.flush()
        assert document.status == DocumentStatus.received
        assert document.priority == DocumentPriority.normal
        assert document.last_sequence == 0
        assert document.folios == 1

    def test_ledger_sequence_unique_per_document(
        self, db_session, received_document, clerk
    ) -> None:
        db_session.add(
            DerivationLedgerEntry(
                document_id=received_document.id,
                sequence=1,
                action=DocumentAction.receive,
                resulting_status=DocumentStatus.received,
                destination_area_id=received_document.current_area_id,
                principal_id=clerk.id,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_document_ledger_relationship_ordered(
        self, db_session, received_document
    ) -> None:
        db_session.refresh(received_document)
        assert [e.sequence for e in received_document.ledger] == [1]
