import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.records import Principal
from app.services.permissions import Permission
from app.services.principal import principals
from app.services.role_assignment import RoleAssignment

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def resolve_principal(db: Session, token: str | None) -> Principal | None:
    """Map an already-issued bearer token to its principal."""
    if not token:
        return None
    return principals.get_by_api_key(db, token)


def require_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    token = credentials.credentials if credentials else None
    principal = resolve_principal(db, token)
    if principal is None:
        raise HTTPException(status_code=401, detail="Invalid or missing token")
    return principal


def require_capability(capability: Permission):
    def _require(principal: Principal = Depends(require_principal)) -> Principal:
        if not RoleAssignment.resolve(principal).can_act_on(capability):
            logger.info(
                "Principal %s denied %s", principal.id, capability.name
            )
            raise HTTPException(
                status_code=403, detail=f"{capability.name} permission required"
            )
        return principal

    return _require
