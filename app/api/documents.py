from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability, require_principal
from app.models.records import Principal
from app.schemas.common import ListResponse
from app.schemas.records import (
    DeriveRequest,
    DocumentRead,
    DocumentReceive,
    DocumentUpdate,
    LedgerEntryRead,
    LedgerVerifyResponse,
    TransitionRequest,
)
from app.services import document as document_service
from app.services.derivation import derivations
from app.services.ledger import derivation_ledger
from app.services.permissions import Permission

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
def receive_document(
    payload: DocumentReceive,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    entry = derivations.receive_document(db, principal.id, payload)
    return document_service.documents.get(db, str(entry.document_id))


@router.get("", response_model=ListResponse[DocumentRead])
def list_documents(
    status_filter: str | None = Query(default=None, alias="status"),
    current_area_id: str | None = None,
    priority: str | None = None,
    search: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_capability(Permission.VIEW)),
    db: Session = Depends(get_db),
):
    return document_service.documents.list_response(
        db,
        status_filter,
        current_area_id,
        priority,
        search,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: str,
    _: Principal = Depends(require_capability(Permission.VIEW)),
    db: Session = Depends(get_db),
):
    return document_service.documents.get(db, document_id)


@router.patch("/{document_id}", response_model=DocumentRead)
def update_document(
    document_id: str,
    payload: DocumentUpdate,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return document_service.documents.update(db, document_id, principal, payload)


@router.get("/{document_id}/ledger", response_model=ListResponse[LedgerEntryRead])
def list_ledger(
    document_id: str,
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_capability(Permission.VIEW)),
    db: Session = Depends(get_db),
):
    return derivation_ledger.list_response(db, document_id, order_dir, limit, offset)


@router.get("/{document_id}/ledger/verify", response_model=LedgerVerifyResponse)
def verify_ledger(
    document_id: str,
    _: Principal = Depends(require_capability(Permission.AUDIT)),
    db: Session = Depends(get_db),
):
    state = derivation_ledger.verify(db, document_id)
    return {
        "document_id": document_id,
        "status": state.status,
        "current_area_id": state.area_id,
        "sequence": state.sequence,
    }


@router.post(
    "/{document_id}/derive",
    response_model=LedgerEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def derive_document(
    document_id: str,
    payload: DeriveRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return derivations.request_derivation(
        db, document_id, principal.id, payload.destination_area_id, note=payload.note
    )


@router.post(
    "/{document_id}/transitions",
    response_model=LedgerEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def transition_document(
    document_id: str,
    payload: TransitionRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return derivations.transition_status(
        db, document_id, principal.id, payload.action, note=payload.note
    )
