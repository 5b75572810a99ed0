from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability, require_principal
from app.models.records import Principal
from app.schemas.records import (
    PermissionBatchRequest,
    PermissionBatchResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    RolePresetRead,
)
from app.services.access import access_checks
from app.services.permissions import Permission

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.post("/check", response_model=PermissionCheckResponse)
def check_permission(
    payload: PermissionCheckRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    allowed = access_checks.check(
        db,
        principal,
        payload.capabilities,
        str(payload.document_id) if payload.document_id else None,
    )
    return {"allowed": allowed}


@router.post("/check-batch", response_model=PermissionBatchResponse)
def check_permissions_batch(
    payload: PermissionBatchRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    results = access_checks.check_batch(
        db, principal, payload.capabilities, payload.document_ids
    )
    return {"results": results}


@router.get("/roles", response_model=list[RolePresetRead])
def list_role_presets(
    _: Principal = Depends(require_capability(Permission.ADMINISTER)),
):
    return access_checks.role_presets()
