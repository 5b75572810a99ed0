from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability, require_principal
from app.models.records import Principal
from app.schemas.common import ListResponse
from app.schemas.records import (
    EffectivePermissionsRead,
    PrincipalCreate,
    PrincipalRead,
    PrincipalUpdate,
)
from app.services import principal as principal_service
from app.services.access import access_checks
from app.services.permissions import Permission

router = APIRouter(prefix="/principals", tags=["principals"])

require_admin = require_capability(Permission.ADMINISTER)


@router.post("", response_model=PrincipalRead, status_code=status.HTTP_201_CREATED)
def create_principal(
    payload: PrincipalCreate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return principal_service.principals.create(db, payload)


@router.get("/me", response_model=PrincipalRead)
def get_me(principal: Principal = Depends(require_principal)):
    return principal


@router.get("/me/permissions", response_model=EffectivePermissionsRead)
def get_my_permissions(principal: Principal = Depends(require_principal)):
    return access_checks.effective(principal)


@router.get("/{principal_id}", response_model=PrincipalRead)
def get_principal(
    principal_id: str,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return principal_service.principals.get(db, principal_id)


@router.get("", response_model=ListResponse[PrincipalRead])
def list_principals(
    area_id: str | None = None,
    is_active: bool | None = None,
    is_blocked: bool | None = None,
    order_by: str = Query(default="last_name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return principal_service.principals.list_response(
        db, area_id, is_active, is_blocked, order_by, order_dir, limit, offset
    )


@router.patch("/{principal_id}", response_model=PrincipalRead)
def update_principal(
    principal_id: str,
    payload: PrincipalUpdate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return principal_service.principals.update(db, principal_id, payload)


@router.delete("/{principal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_principal(
    principal_id: str,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    principal_service.principals.delete(db, principal_id)


@router.post("/{principal_id}/block", response_model=PrincipalRead)
def block_principal(
    principal_id: str,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return principal_service.principals.block(db, principal_id)


@router.post("/{principal_id}/unblock", response_model=PrincipalRead)
def unblock_principal(
    principal_id: str,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return principal_service.principals.unblock(db, principal_id)
