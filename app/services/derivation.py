"""Derivation engine.

Every mutation of a document goes through ``Derivations``:

1. load the document and the acting principal (``NotFound``);
2. authorize through ``RoleAssignment`` (``Unauthorized``);
3. check the destination area for derivations (``InvalidDestination``);
4. look the action up in the transition table (``InvalidTransition``);
5. under the per-document lock, commit the ledger entry and the document
   update as one unit, re-checking that the document did not move since
   step 1 (``ConcurrencyConflict``, retried from step 1);
6. after the lock is released, hand the committed entry to the audit and
   notification ports. Their failures are logged and never reach the caller.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.metrics import (
    CONFLICT_RETRIES_TOTAL,
    SIDE_EFFECT_FAILURES_TOTAL,
    TRANSITIONS_TOTAL,
)
from app.models.records import (
    DerivationLedgerEntry,
    Document,
    DocumentAction,
    DocumentStatus,
)
from app.schemas.records import DocumentReceive
from app.services.audit import AuditRecord, audit_events
from app.services.common import try_coerce_uuid
from app.services.derivation_errors import (
    DerivationError,
    DerivationTimeout,
    DuplicateDocumentCode,
    InvalidDestination,
    InvalidTransition,
    NotFound,
    SideEffectFailure,
    Unauthorized,
    is_retryable,
)
from app.services.document_locks import document_locks
from app.services.document_status import next_status
from app.services.event import EventType, event_for_action
from app.services.ledger import TransitionPlan, derivation_ledger
from app.services.notification import notifications
from app.services.permissions import Permission
from app.services.role_assignment import RoleAssignment

logger = logging.getLogger(__name__)

REQUIRED_CAPABILITY: dict[DocumentAction, Permission] = {
    DocumentAction.receive: Permission.CREATE,
    DocumentAction.derive_request: Permission.DERIVE,
    DocumentAction.confirm_derivation: Permission.DERIVE,
    DocumentAction.complete: Permission.EDIT,
    DocumentAction.reject: Permission.EDIT,
    # ADMINISTER holders pass through the override in RoleAssignment
    DocumentAction.archive: Permission.AUDIT,
}

STATUS_ACTIONS = frozenset(
    {
        DocumentAction.confirm_derivation,
        DocumentAction.complete,
        DocumentAction.reject,
        DocumentAction.archive,
    }
)


def required_capability(action: DocumentAction) -> Permission:
    return REQUIRED_CAPABILITY[action]


@dataclass(frozen=True)
class TransitionRequest:
    document_id: str | uuid.UUID
    principal_id: str | uuid.UUID
    action: DocumentAction
    destination_area_id: str | uuid.UUID | None = None
    note: str | None = None


class _Deadline:
    def __init__(self, timeout: float | None):
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(self._expires_at - time.monotonic(), 0.0)

    def check(self, stage: str) -> None:
        if self._expires_at is not None and time.monotonic() >= self._expires_at:
            raise DerivationTimeout(
                f"Request timed out during {stage}; no changes were made",
                details={"stage": stage},
            )


def _lock_timeout(deadline: _Deadline) -> float:
    remaining = deadline.remaining()
    if remaining is None:
        return settings.document_lock_timeout_seconds
    return min(remaining, settings.document_lock_timeout_seconds)


def _emit(port: str, document_id, call) -> None:
    try:
        call()
    except Exception as exc:
        failure = SideEffectFailure(port, exc, details={"document_id": str(document_id)})
        SIDE_EFFECT_FAILURES_TOTAL.labels(port=port).inc()
        logger.exception(
            "%s; transition stays committed",
            failure.message,
            extra={"side_effect_port": failure.port, **failure.details},
        )


class Derivations:
    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @staticmethod
    def receive_document(
        db: Session,
        principal_id: str | uuid.UUID,
        payload: DocumentReceive,
        timeout: float | None = None,
    ) -> DerivationLedgerEntry:
        """Register a new document at the principal's reception desk."""
        deadline = _Deadline(
            settings.derivation_timeout_seconds if timeout is None else timeout
        )
        action = DocumentAction.receive
        try:
            principal = derivation_ledger.load_principal(db, principal_id)
            if principal is None:
                raise NotFound(
                    f"Principal {principal_id} not found",
                    details={"principal_id": str(principal_id)},
                )
            Derivations._authorize(
                RoleAssignment.resolve(principal), action, area_id=None
            )
            area = derivation_ledger.load_area(db, principal.area_id)
            if area is None or not area.is_active or not area.is_reception:
                raise InvalidDestination(
                    "Documents can only be received at an active reception area",
                    details={"area_id": str(principal.area_id)},
                )
            deadline.check("validation")
            if db.scalar(select(Document.id).where(Document.code == payload.code)):
                raise DuplicateDocumentCode(
                    f"A document with code '{payload.code}' already exists",
                    details={"code": payload.code},
                )

            document = Document(
                id=uuid.uuid4(),
                code=payload.code,
                document_type=payload.document_type,
                subject=payload.subject,
                sender=payload.sender,
                folios=payload.folios,
                priority=payload.priority,
                origin=payload.origin,
                observations=payload.observations,
                metadata_=payload.metadata_,
                status=DocumentStatus.received,
                current_area_id=area.id,
                received_by=principal.id,
                last_sequence=0,
            )
            entry = derivation_ledger.commit_reception(
                db, document, principal.id, payload.note
            )
        except Unauthorized as exc:
            db.rollback()
            Derivations._record_denial(principal_id, None, action, exc)
            TRANSITIONS_TOTAL.labels(action=action.value, outcome=exc.code).inc()
            raise
        except DerivationError as exc:
            db.rollback()
            TRANSITIONS_TOTAL.labels(action=action.value, outcome=exc.code).inc()
            raise

        TRANSITIONS_TOTAL.labels(action=action.value, outcome="committed").inc()
        Derivations._emit_side_effects(entry, EventType.document_received)
        return entry

    @staticmethod
    def request_derivation(
        db: Session,
        document_id: str | uuid.UUID,
        principal_id: str | uuid.UUID,
        destination_area_id: str | uuid.UUID,
        note: str | None = None,
        timeout: float | None = None,
    ) -> DerivationLedgerEntry:
        """Route a document from its current area to ``destination_area_id``."""
        request = TransitionRequest(
            document_id=document_id,
            principal_id=principal_id,
            action=DocumentAction.derive_request,
            destination_area_id=destination_area_id,
            note=note,
        )
        return Derivations._execute(db, request, timeout)

    @staticmethod
    def transition_status(
        db: Session,
        document_id: str | uuid.UUID,
        principal_id: str | uuid.UUID,
        action: DocumentAction | str,
        note: str | None = None,
        timeout: float | None = None,
    ) -> DerivationLedgerEntry:
        """Apply a non-routing action: confirm, complete, reject or archive."""
        if not isinstance(action, DocumentAction):
            try:
                action = DocumentAction(action)
            except ValueError:
                raise InvalidTransition(
                    f"Unknown action '{action}'", details={"action": str(action)}
                )
        if action not in STATUS_ACTIONS:
            raise InvalidTransition(
                f"Action '{action.value}' cannot be applied as a status transition",
                details={"action": action.value},
            )
        request = TransitionRequest(
            document_id=document_id,
            principal_id=principal_id,
            action=action,
            note=note,
        )
        return Derivations._execute(db, request, timeout)

    @staticmethod
    def confirm_derivation(
        db: Session,
        document_id: str | uuid.UUID,
        principal_id: str | uuid.UUID,
        note: str | None = None,
        timeout: float | None = None,
    ) -> DerivationLedgerEntry:
        return Derivations.transition_status(
            db,
            document_id,
            principal_id,
            DocumentAction.confirm_derivation,
            note=note,
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _execute(
        db: Session, request: TransitionRequest, timeout: float | None
    ) -> DerivationLedgerEntry:
        deadline = _Deadline(
            settings.derivation_timeout_seconds if timeout is None else timeout
        )
        action = request.action
        attempts = settings.derivation_conflict_retries + 1
        attempt = 0
        lost_race = False
        while True:
            attempt += 1
            try:
                plan = Derivations._validate(db, request, deadline)
                with document_locks.hold(
                    plan.document_id, timeout=_lock_timeout(deadline)
                ):
                    entry = derivation_ledger.commit_transition(db, plan)
            except DerivationError as exc:
                db.rollback()
                if is_retryable(exc) and attempt < attempts:
                    lost_race = True
                    CONFLICT_RETRIES_TOTAL.labels(action=action.value).inc()
                    logger.warning(
                        "Concurrency conflict on document %s (attempt %d/%d); retrying",
                        request.document_id,
                        attempt,
                        attempts,
                    )
                    continue
                if is_retryable(exc):
                    logger.warning(
                        "Giving up on %s for document %s after %d attempts",
                        action.value,
                        request.document_id,
                        attempt,
                    )
                elif isinstance(exc, Unauthorized) and lost_race:
                    # Another request moved the document out of the caller's area
                    logger.info(
                        "%s on document %s lost to a concurrent transition",
                        action.value,
                        request.document_id,
                    )
                elif isinstance(exc, Unauthorized):
                    Derivations._record_denial(
                        request.principal_id, request.document_id, action, exc
                    )
                TRANSITIONS_TOTAL.labels(action=action.value, outcome=exc.code).inc()
                raise
            break

        TRANSITIONS_TOTAL.labels(action=action.value, outcome="committed").inc()
        Derivations._emit_side_effects(entry, event_for_action(action))
        return entry

    @staticmethod
    def _validate(
        db: Session, request: TransitionRequest, deadline: _Deadline
    ) -> TransitionPlan:
        document = derivation_ledger.load_document(db, request.document_id)
        if document is None:
            raise NotFound(
                f"Document {request.document_id} not found",
                details={"document_id": str(request.document_id)},
            )
        principal = derivation_ledger.load_principal(db, request.principal_id)
        if principal is None:
            raise NotFound(
                f"Principal {request.principal_id} not found",
                details={"principal_id": str(request.principal_id)},
            )
        deadline.check("loading")

        Derivations._authorize(
            RoleAssignment.resolve(principal),
            request.action,
            area_id=document.current_area_id,
        )

        destination_id = document.current_area_id
        if request.action == DocumentAction.derive_request:
            destination = derivation_ledger.load_area(db, request.destination_area_id)
            if destination is None:
                raise InvalidDestination(
                    f"Destination area {request.destination_area_id} does not exist",
                    details={"area_id": str(request.destination_area_id)},
                )
            if not destination.is_active:
                raise InvalidDestination(
                    f"Destination area {destination.code} is inactive",
                    details={"area_id": str(destination.id)},
                )
            if destination.id == document.current_area_id:
                raise InvalidDestination(
                    "Destination area must differ from the current area",
                    details={"area_id": str(destination.id)},
                )
            destination_id = destination.id

        resulting_status = next_status(document.status, request.action)
        deadline.check("validation")

        return TransitionPlan(
            document_id=document.id,
            action=request.action,
            principal_id=principal.id,
            expected_status=document.status,
            expected_area_id=document.current_area_id,
            expected_sequence=document.last_sequence,
            resulting_status=resulting_status,
            destination_area_id=destination_id,
            note=request.note,
        )

    @staticmethod
    def _authorize(
        assignment: RoleAssignment,
        action: DocumentAction,
        area_id: uuid.UUID | None,
    ) -> None:
        if assignment.is_blocked:
            raise Unauthorized(
                "Principal is blocked",
                details={"principal_id": str(assignment.principal_id)},
            )
        capability = required_capability(action)
        if not assignment.can_act_on(capability):
            raise Unauthorized(
                f"Principal lacks the {capability.name} permission",
                details={
                    "principal_id": str(assignment.principal_id),
                    "required": capability.name,
                },
            )
        if area_id is not None and not assignment.holds_area(area_id):
            raise Unauthorized(
                "Document is held by another area",
                details={
                    "principal_id": str(assignment.principal_id),
                    "principal_area_id": str(assignment.area_id),
                    "document_area_id": str(area_id),
                },
            )

    @staticmethod
    def _emit_side_effects(entry: DerivationLedgerEntry, event_type: EventType) -> None:
        record = AuditRecord(
            type=event_type,
            document_id=entry.document_id,
            principal_id=entry.principal_id,
            timestamp=entry.created_at,
            details={
                "sequence": entry.sequence,
                "action": entry.action.value,
                "from_status": entry.from_status.value if entry.from_status else None,
                "resulting_status": entry.resulting_status.value,
                "source_area_id": (
                    str(entry.source_area_id) if entry.source_area_id else None
                ),
                "destination_area_id": str(entry.destination_area_id),
                "note": entry.note,
            },
        )
        document_id = entry.document_id
        destination_area_id = entry.destination_area_id
        _emit("audit", document_id, lambda: audit_events.record(record))
        _emit(
            "notification",
            document_id,
            lambda: notifications.notify(destination_area_id, document_id, event_type),
        )

    @staticmethod
    def _record_denial(
        principal_id, document_id, action: DocumentAction, error: Unauthorized
    ) -> None:
        record = AuditRecord(
            type=EventType.access_denied,
            document_id=try_coerce_uuid(document_id),
            principal_id=try_coerce_uuid(principal_id),
            details={"action": action.value, "reason": error.message, **error.details},
        )
        _emit("audit", document_id, lambda: audit_events.record(record))


derivations = Derivations()
