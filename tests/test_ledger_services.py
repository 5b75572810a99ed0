import uuid
from unittest.mock import patch

import pytest

from app.models.records import (
    DerivationLedgerEntry,
    Document,
    DocumentAction,
    DocumentStatus,
    LedgerEntryImmutableError,
)
from app.services.derivation_errors import (
    ConcurrencyConflict,
    LedgerIntegrityError,
    NotFound,
)
from app.services.ledger import DerivationLedger, TransitionPlan, derivation_ledger


def _plan(document, principal, destination_id, **overrides):
    data = dict(
        document_id=document.id,
        action=DocumentAction.derive_request,
        principal_id=principal.id,
        expected_status=document.status,
        expected_area_id=document.current_area_id,
        expected_sequence=document.last_sequence,
        resulting_status=DocumentStatus.pending_derivation,
        destination_area_id=destination_id,
    )
    data.update(overrides)
    return TransitionPlan(**data)


def _entry(document_id, sequence, action, from_status, resulting, source, dest):
    return DerivationLedgerEntry(
        id=uuid.uuid4(),
        document_id=document_id,
        sequence=sequence,
        action=action,
        from_status=from_status,
        resulting_status=resulting,
        source_area_id=source,
        destination_area_id=dest,
        principal_id=uuid.uuid4(),
    )


class TestReception:
    def test_reception_writes_first_entry(
        self, db_session, received_document, reception, clerk
    ) -> None:
        entries = derivation_ledger.entries(db_session, received_document.id)
        assert len(entries) == 1
        first = entries[0]
        assert first.sequence == 1
        assert first.action == DocumentAction.receive
        assert first.from_status is None
        assert first.source_area_id is None
        assert first.destination_area_id == reception.id
        assert first.principal_id == clerk.id
        assert received_document.last_sequence == 1
        assert received_document.status == DocumentStatus.received


class TestCommitTransition:
    def test_appends_and_updates_document(
        self, db_session, received_document, clerk, forensics
    ) -> None:
        entry = derivation_ledger.commit_transition(
            db_session, _plan(received_document, clerk, forensics.id)
        )
        assert entry.sequence == 2
        assert entry.from_status == DocumentStatus.received
        document = db_session.get(Document, received_document.id)
        db_session.refresh(document)
        assert document.status == DocumentStatus.pending_derivation
        assert document.current_area_id == forensics.id
        assert document.last_sequence == 2

    def test_stale_plan_conflicts_without_writing(
        self, db_session, received_document, clerk, forensics
    ) -> None:
        stale = _plan(received_document, clerk, forensics.id, expected_sequence=0)
        with pytest.raises(ConcurrencyConflict):
            derivation_ledger.commit_transition(db_session, stale)
        assert len(derivation_ledger.entries(db_session, received_document.id)) == 1

    def test_second_commit_of_same_plan_conflicts(
        self, db_session, received_document, clerk, forensics
    ) -> None:
        plan = _plan(received_document, clerk, forensics.id)
        derivation_ledger.commit_transition(db_session, plan)
        with pytest.raises(ConcurrencyConflict):
            derivation_ledger.commit_transition(db_session, plan)
        assert len(derivation_ledger.entries(db_session, received_document.id)) == 2

    def test_failure_between_append_and_update_leaves_no_partial_state(
        self, db_session, received_document, clerk, forensics, reception
    ) -> None:
        doc_id = received_document.id
        with patch.object(
            DerivationLedger,
            "apply_document_state",
            side_effect=RuntimeError("storage failure"),
        ):
            with pytest.raises(RuntimeError):
                derivation_ledger.commit_transition(
                    db_session, _plan(received_document, clerk, forensics.id)
                )

        assert len(derivation_ledger.entries(db_session, doc_id)) == 1
        document = derivation_ledger.load_document(db_session, doc_id)
        assert document.status == DocumentStatus.received
        assert document.current_area_id == reception.id
        assert document.last_sequence == 1

    def test_missing_document(self, db_session, received_document, clerk, forensics) -> None:
        plan = _plan(received_document, clerk, forensics.id, document_id=uuid.uuid4())
        with pytest.raises(NotFound):
            derivation_ledger.commit_transition(db_session, plan)


class TestImmutability:
    def test_update_rejected(self, db_session, received_document) -> None:
        entry = derivation_ledger.entries(db_session, received_document.id)[0]
        entry.note = "rewritten"
        with pytest.raises(LedgerEntryImmutableError):
            db_session.flush()
        db_session.rollback()

    def test_delete_rejected(self, db_session, received_document) -> None:
        entry = derivation_ledger.entries(db_session, received_document.id)[0]
        db_session.delete(entry)
        with pytest.raises(LedgerEntryImmutableError):
            db_session.flush()
        db_session.rollback()


class TestReplay:
    def test_replay_rebuilds_state(
        self, db_session, received_document, clerk, forensics
    ) -> None:
        derivation_ledger.commit_transition(
            db_session, _plan(received_document, clerk, forensics.id)
        )
        state = derivation_ledger.verify(db_session, received_document.id)
        assert state.status == DocumentStatus.pending_derivation
        assert state.area_id == forensics.id
        assert state.sequence == 2

    def test_gap_detected(self) -> None:
        doc_id, a, b = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        entries = [
            _entry(doc_id, 1, DocumentAction.receive, None, DocumentStatus.received, None, a),
            _entry(
                doc_id,
                3,
                DocumentAction.derive_request,
                DocumentStatus.received,
                DocumentStatus.pending_derivation,
                a,
                b,
            ),
        ]
        with pytest.raises(LedgerIntegrityError):
            DerivationLedger.replay(entries)

    def test_must_start_with_reception(self) -> None:
        doc_id, a, b = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        entries = [
            _entry(
                doc_id,
                1,
                DocumentAction.derive_request,
                DocumentStatus.received,
                DocumentStatus.pending_derivation,
                a,
                b,
            )
        ]
        with pytest.raises(LedgerIntegrityError):
            DerivationLedger.replay(entries)

    def test_illegal_step_detected(self) -> None:
        doc_id, a = uuid.uuid4(), uuid.uuid4()
        entries = [
            _entry(doc_id, 1, DocumentAction.receive, None, DocumentStatus.received, None, a),
            _entry(
                doc_id,
                2,
                DocumentAction.complete,
                DocumentStatus.received,
                DocumentStatus.completed,
                a,
                a,
            ),
        ]
        with pytest.raises(LedgerIntegrityError):
            DerivationLedger.replay(entries)

    def test_broken_continuity_detected(self) -> None:
        doc_id, a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        entries = [
            _entry(doc_id, 1, DocumentAction.receive, None, DocumentStatus.received, None, a),
            _entry(
                doc_id,
                2,
                DocumentAction.derive_request,
                DocumentStatus.received,
                DocumentStatus.pending_derivation,
                c,
                b,
            ),
        ]
        with pytest.raises(LedgerIntegrityError):
            DerivationLedger.replay(entries)

    def test_empty_ledger(self) -> None:
        with pytest.raises(LedgerIntegrityError):
            DerivationLedger.replay([])

    def test_verify_missing_document(self, db_session) -> None:
        with pytest.raises(NotFound):
            derivation_ledger.verify(db_session, uuid.uuid4())


class TestList:
    def test_list_orders_by_sequence(
        self, db_session, received_document, clerk, forensics
    ) -> None:
        derivation_ledger.commit_transition(
            db_session, _plan(received_document, clerk, forensics.id)
        )
        asc = derivation_ledger.list(db_session, str(received_document.id), "asc", 10, 0)
        desc = derivation_ledger.list(db_session, str(received_document.id), "desc", 10, 0)
        assert [e.sequence for e in asc] == [1, 2]
        assert [e.sequence for e in desc] == [2, 1]

    def test_list_unknown_document(self, db_session) -> None:
        with pytest.raises(NotFound):
            derivation_ledger.list(db_session, str(uuid.uuid4()), "asc", 10, 0)

    def test_list_response_envelope(self, db_session, received_document) -> None:
        result = derivation_ledger.list_response(
            db_session, str(received_document.id), "asc", 10, 0
        )
        assert result["count"] == 1
        assert result["limit"] == 10
        assert result["offset"] == 0
