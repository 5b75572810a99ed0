import hashlib
import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.records import Area, Principal
from app.schemas.records import PrincipalCreate, PrincipalUpdate
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.permissions import ROLE_PRESETS
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


class Principals(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: PrincipalCreate) -> Principal:
        Principals._ensure_area(db, payload.area_id)
        Principals._ensure_unique_email(db, payload.email)

        data = payload.model_dump(exclude={"role", "api_key"})
        if payload.role is not None:
            preset = ROLE_PRESETS.get(payload.role)
            if preset is None:
                raise HTTPException(
                    status_code=400,
                    detail=f"Unknown role. Allowed: {', '.join(sorted(ROLE_PRESETS))}",
                )
            data["permission_mask"] = data["permission_mask"] | preset.value

        principal = Principal(**data)
        if payload.api_key:
            principal.api_key_hash = hash_api_key(payload.api_key)
        db.add(principal)
        db.commit()
        db.refresh(principal)
        logger.info(
            "Created principal %s in area %s with mask %d",
            principal.id,
            principal.area_id,
            principal.permission_mask,
        )
        return principal

    @staticmethod
    def get(db: Session, principal_id: str) -> Principal:
        principal = db.get(Principal, coerce_uuid(principal_id))
        if not principal:
            raise HTTPException(status_code=404, detail="Principal not found")
        return principal

    @staticmethod
    def get_by_api_key(db: Session, api_key: str) -> Principal | None:
        if not api_key:
            return None
        return db.scalar(
            select(Principal).where(Principal.api_key_hash == hash_api_key(api_key))
        )

    @staticmethod
    def list(
        db: Session,
        area_id: str | None,
        is_active: bool | None,
        is_blocked: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Principal]:
        stmt = select(Principal)
        if area_id is not None:
            stmt = stmt.where(Principal.area_id == coerce_uuid(area_id))
        if is_active is None:
            stmt = stmt.where(Principal.is_active.is_(True))
        else:
            stmt = stmt.where(Principal.is_active == is_active)
        if is_blocked is not None:
            stmt = stmt.where(Principal.is_blocked == is_blocked)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "last_name": Principal.last_name,
                "email": Principal.email,
                "created_at": Principal.created_at,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update(db: Session, principal_id: str, payload: PrincipalUpdate) -> Principal:
        principal = Principals.get(db, principal_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("area_id") is not None:
            Principals._ensure_area(db, data["area_id"])
        if data.get("email") is not None:
            Principals._ensure_unique_email(db, data["email"], exclude_id=principal.id)
        api_key = data.pop("api_key", None)
        for key, value in data.items():
            setattr(principal, key, value)
        if api_key:
            principal.api_key_hash = hash_api_key(api_key)
        db.commit()
        db.refresh(principal)
        logger.info("Updated principal %s", principal.id)
        return principal

    @staticmethod
    def delete(db: Session, principal_id: str) -> None:
        principal = Principals.get(db, principal_id)
        principal.is_active = False
        db.commit()
        logger.info("Deactivated principal %s", principal.id)

    @staticmethod
    def block(db: Session, principal_id: str) -> Principal:
        return Principals._set_blocked(db, principal_id, True)

    @staticmethod
    def unblock(db: Session, principal_id: str) -> Principal:
        return Principals._set_blocked(db, principal_id, False)

    @staticmethod
    def _set_blocked(db: Session, principal_id: str, blocked: bool) -> Principal:
        principal = Principals.get(db, principal_id)
        principal.is_blocked = blocked
        db.commit()
        db.refresh(principal)
        logger.info(
            "%s principal %s", "Blocked" if blocked else "Unblocked", principal.id
        )
        return principal

    @staticmethod
    def _ensure_area(db: Session, area_id) -> None:
        if not db.get(Area, coerce_uuid(area_id)):
            raise HTTPException(status_code=404, detail="Area not found")

    @staticmethod
    def _ensure_unique_email(db: Session, email: str, exclude_id=None) -> None:
        stmt = select(Principal.id).where(Principal.email == email)
        if exclude_id is not None:
            stmt = stmt.where(Principal.id != exclude_id)
        if db.scalar(stmt):
            raise HTTPException(status_code=409, detail="Email already registered")


principals = Principals()
