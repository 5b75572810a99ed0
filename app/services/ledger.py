"""Derivation ledger and the persistence port of the derivation engine.

The ledger is append-only. ``commit_transition`` and ``commit_reception`` are
the only writers of ``Document.status``, ``Document.current_area_id`` and
``Document.last_sequence``; each writes the document and its ledger entry in a
single transaction.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.records import (
    Area,
    DerivationLedgerEntry,
    Document,
    DocumentAction,
    DocumentStatus,
    Principal,
)
from app.services.common import apply_pagination, try_coerce_uuid
from app.services.derivation_errors import (
    ConcurrencyConflict,
    DuplicateDocumentCode,
    InvalidTransition,
    LedgerIntegrityError,
    NotFound,
)
from app.services.document_status import INITIAL_STATUS, next_status
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionPlan:
    """A validated transition, pinned to the document state it was checked on."""

    document_id: uuid.UUID
    action: DocumentAction
    principal_id: uuid.UUID
    expected_status: DocumentStatus
    expected_area_id: uuid.UUID
    expected_sequence: int
    resulting_status: DocumentStatus
    destination_area_id: uuid.UUID
    note: str | None = None


@dataclass(frozen=True)
class LedgerState:
    status: DocumentStatus
    area_id: uuid.UUID
    sequence: int


class DerivationLedger(ListResponseMixin):
    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def load_document(db: Session, document_id) -> Document | None:
        doc_uuid = try_coerce_uuid(document_id)
        if doc_uuid is None:
            return None
        return db.get(Document, doc_uuid, populate_existing=True)

    @staticmethod
    def load_principal(db: Session, principal_id) -> Principal | None:
        principal_uuid = try_coerce_uuid(principal_id)
        if principal_uuid is None:
            return None
        return db.get(Principal, principal_uuid, populate_existing=True)

    @staticmethod
    def load_area(db: Session, area_id) -> Area | None:
        area_uuid = try_coerce_uuid(area_id)
        if area_uuid is None:
            return None
        return db.get(Area, area_uuid, populate_existing=True)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    @staticmethod
    def apply_document_state(
        document: Document, entry: DerivationLedgerEntry
    ) -> None:
        document.status = entry.resulting_status
        document.current_area_id = entry.destination_area_id
        document.last_sequence = entry.sequence
        document.updated_at = entry.created_at

    @staticmethod
    def commit_reception(
        db: Session,
        document: Document,
        principal_id: uuid.UUID,
        note: str | None = None,
    ) -> DerivationLedgerEntry:
        now = datetime.now(timezone.utc)
        if document.id is None:
            document.id = uuid.uuid4()
        document.created_at = now
        entry = DerivationLedgerEntry(
            document_id=document.id,
            sequence=1,
            action=DocumentAction.receive,
            from_status=None,
            resulting_status=INITIAL_STATUS,
            source_area_id=None,
            destination_area_id=document.current_area_id,
            principal_id=principal_id,
            note=note,
            created_at=now,
        )
        try:
            db.add(document)
            db.flush()
            db.add(entry)
            db.flush()
            DerivationLedger.apply_document_state(document, entry)
            db.flush()
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateDocumentCode(
                f"A document with code '{document.code}' already exists",
                details={"code": document.code},
            ) from exc
        except Exception:
            db.rollback()
            raise
        db.refresh(entry)
        logger.info("Received document %s (%s)", document.id, document.code)
        return entry

    @staticmethod
    def commit_transition(db: Session, plan: TransitionPlan) -> DerivationLedgerEntry:
        """Append the planned entry and update the document as one unit.

        The row is re-read under ``FOR UPDATE``; if it no longer matches the
        state the plan was validated against, nothing is written and
        ``ConcurrencyConflict`` is raised.
        """
        try:
            document = db.scalars(
                select(Document)
                .where(Document.id == plan.document_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).one_or_none()
            if document is None:
                raise NotFound(f"Document {plan.document_id} not found")
            observed = (
                document.status,
                document.current_area_id,
                document.last_sequence,
            )
            expected = (
                plan.expected_status,
                plan.expected_area_id,
                plan.expected_sequence,
            )
            if observed != expected:
                raise ConcurrencyConflict(
                    f"Document {plan.document_id} changed since it was validated",
                    details={
                        "document_id": str(plan.document_id),
                        "expected_sequence": plan.expected_sequence,
                        "current_sequence": document.last_sequence,
                    },
                )

            entry = DerivationLedgerEntry(
                document_id=plan.document_id,
                sequence=plan.expected_sequence + 1,
                action=plan.action,
                from_status=plan.expected_status,
                resulting_status=plan.resulting_status,
                source_area_id=plan.expected_area_id,
                destination_area_id=plan.destination_area_id,
                principal_id=plan.principal_id,
                note=plan.note,
                created_at=datetime.now(timezone.utc),
            )
            db.add(entry)
            db.flush()
            DerivationLedger.apply_document_state(document, entry)
            db.flush()
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConcurrencyConflict(
                f"Sequence collision on document {plan.document_id}",
                details={"document_id": str(plan.document_id)},
            ) from exc
        except Exception:
            db.rollback()
            raise
        db.refresh(entry)
        logger.info(
            "Committed %s on document %s as sequence %d (%s -> %s)",
            plan.action.value,
            plan.document_id,
            entry.sequence,
            plan.expected_status.value,
            plan.resulting_status.value,
        )
        return entry

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @staticmethod
    def entries(db: Session, document_id) -> list[DerivationLedgerEntry]:
        doc_uuid = try_coerce_uuid(document_id)
        if doc_uuid is None:
            return []
        stmt = (
            select(DerivationLedgerEntry)
            .where(DerivationLedgerEntry.document_id == doc_uuid)
            .order_by(DerivationLedgerEntry.sequence.asc())
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def list(
        db: Session,
        document_id: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[DerivationLedgerEntry]:
        if DerivationLedger.load_document(db, document_id) is None:
            raise NotFound(f"Document {document_id} not found")
        stmt = select(DerivationLedgerEntry).where(
            DerivationLedgerEntry.document_id == try_coerce_uuid(document_id)
        )
        if order_dir == "desc":
            stmt = stmt.order_by(DerivationLedgerEntry.sequence.desc())
        else:
            stmt = stmt.order_by(DerivationLedgerEntry.sequence.asc())
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def replay(entries: list[DerivationLedgerEntry]) -> LedgerState:
        """Rebuild ``(status, area, sequence)`` from entries in sequence order."""
        state: LedgerState | None = None
        for expected_sequence, entry in enumerate(entries, start=1):
            if entry.sequence != expected_sequence:
                raise LedgerIntegrityError(
                    f"Expected sequence {expected_sequence}, found {entry.sequence}",
                    details={"document_id": str(entry.document_id)},
                )
            if state is None:
                if (
                    entry.action != DocumentAction.receive
                    or entry.resulting_status != INITIAL_STATUS
                ):
                    raise LedgerIntegrityError(
                        "Ledger must start with a reception entry",
                        details={"document_id": str(entry.document_id)},
                    )
            else:
                if (
                    entry.from_status != state.status
                    or entry.source_area_id != state.area_id
                ):
                    raise LedgerIntegrityError(
                        f"Entry {entry.sequence} does not continue from entry "
                        f"{state.sequence}",
                        details={"document_id": str(entry.document_id)},
                    )
                try:
                    computed = next_status(state.status, entry.action)
                except InvalidTransition as exc:
                    raise LedgerIntegrityError(
                        f"Entry {entry.sequence} records an illegal transition",
                        details={"document_id": str(entry.document_id)},
                    ) from exc
                if computed != entry.resulting_status:
                    raise LedgerIntegrityError(
                        f"Entry {entry.sequence} records {entry.resulting_status.value}"
                        f", expected {computed.value}",
                        details={"document_id": str(entry.document_id)},
                    )
            state = LedgerState(
                status=entry.resulting_status,
                area_id=entry.destination_area_id,
                sequence=entry.sequence,
            )
        if state is None:
            raise LedgerIntegrityError("Ledger is empty")
        return state

    @staticmethod
    def verify(db: Session, document_id) -> LedgerState:
        document = DerivationLedger.load_document(db, document_id)
        if document is None:
            raise NotFound(f"Document {document_id} not found")
        state = DerivationLedger.replay(DerivationLedger.entries(db, document.id))
        if (state.status, state.area_id, state.sequence) != (
            document.status,
            document.current_area_id,
            document.last_sequence,
        ):
            raise LedgerIntegrityError(
                f"Document {document.id} does not match its ledger",
                details={
                    "document_id": str(document.id),
                    "ledger_status": state.status.value,
                    "document_status": document.status.value,
                },
            )
        return state


derivation_ledger = DerivationLedger()
