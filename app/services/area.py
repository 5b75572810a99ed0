import logging

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.records import Area, Document, DocumentStatus
from app.schemas.records import AreaCreate, AreaUpdate
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


class Areas(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: AreaCreate) -> Area:
        Areas._ensure_unique(db, payload.name, payload.code)
        area = Area(**payload.model_dump())
        db.add(area)
        db.commit()
        db.refresh(area)
        logger.info("Created area %s (%s)", area.id, area.code)
        return area

    @staticmethod
    def get(db: Session, area_id: str) -> Area:
        area = db.get(Area, coerce_uuid(area_id))
        if not area:
            raise HTTPException(status_code=404, detail="Area not found")
        return area

    @staticmethod
    def list(
        db: Session,
        is_active: bool | None,
        is_reception: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Area]:
        stmt = select(Area)
        if is_active is None:
            stmt = stmt.where(Area.is_active.is_(True))
        else:
            stmt = stmt.where(Area.is_active == is_active)
        if is_reception is not None:
            stmt = stmt.where(Area.is_reception == is_reception)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"name": Area.name, "code": Area.code, "created_at": Area.created_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update(db: Session, area_id: str, payload: AreaUpdate) -> Area:
        area = Areas.get(db, area_id)
        data = payload.model_dump(exclude_unset=True)
        Areas._ensure_unique(
            db, data.get("name"), data.get("code"), exclude_id=area.id
        )
        for key, value in data.items():
            setattr(area, key, value)
        db.commit()
        db.refresh(area)
        logger.info("Updated area %s", area.id)
        return area

    @staticmethod
    def delete(db: Session, area_id: str) -> None:
        """Deactivate an area. Its ledger history stays intact."""
        area = Areas.get(db, area_id)
        area.is_active = False
        db.commit()
        logger.info("Deactivated area %s", area.id)

    @staticmethod
    def pending_count(db: Session, area_id: str) -> int:
        """Documents derived to the area and not yet confirmed by it."""
        area = Areas.get(db, area_id)
        return db.scalar(
            select(func.count(Document.id)).where(
                Document.current_area_id == area.id,
                Document.status == DocumentStatus.pending_derivation,
            )
        )

    @staticmethod
    def _ensure_unique(db: Session, name, code, exclude_id=None) -> None:
        for column, value, label in ((Area.name, name, "name"), (Area.code, code, "code")):
            if value is None:
                continue
            stmt = select(Area.id).where(column == value)
            if exclude_id is not None:
                stmt = stmt.where(Area.id != exclude_id)
            if db.scalar(stmt):
                raise HTTPException(
                    status_code=409, detail=f"Area {label} '{value}' already exists"
                )


areas = Areas()
