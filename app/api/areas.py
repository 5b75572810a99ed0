from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability, require_principal
from app.models.records import Principal
from app.schemas.common import ListResponse
from app.schemas.records import AreaCreate, AreaRead, AreaUpdate, PendingCountResponse
from app.services import area as area_service
from app.services.permissions import Permission

router = APIRouter(prefix="/areas", tags=["areas"])

require_admin = require_capability(Permission.ADMINISTER)


@router.post("", response_model=AreaRead, status_code=status.HTTP_201_CREATED)
def create_area(
    payload: AreaCreate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return area_service.areas.create(db, payload)


@router.get("/{area_id}", response_model=AreaRead)
def get_area(
    area_id: str,
    _: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return area_service.areas.get(db, area_id)


@router.get("", response_model=ListResponse[AreaRead])
def list_areas(
    is_active: bool | None = None,
    is_reception: bool | None = None,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return area_service.areas.list_response(
        db, is_active, is_reception, order_by, order_dir, limit, offset
    )


@router.patch("/{area_id}", response_model=AreaRead)
def update_area(
    area_id: str,
    payload: AreaUpdate,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return area_service.areas.update(db, area_id, payload)


@router.delete("/{area_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_area(
    area_id: str,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    area_service.areas.delete(db, area_id)


@router.get("/{area_id}/pending-count", response_model=PendingCountResponse)
def pending_count(
    area_id: str,
    _: Principal = Depends(require_capability(Permission.VIEW)),
    db: Session = Depends(get_db),
):
    area = area_service.areas.get(db, area_id)
    return {"area_id": area.id, "count": area_service.areas.pending_count(db, area_id)}
