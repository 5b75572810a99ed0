"""Capability checks for callers of the API.

Answers "may this principal do X (on this document)?" without performing the
action. Decisions go through ``RoleAssignment`` like the derivation engine's;
a document check additionally requires the principal's area to hold it.
"""

import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.records import Document, Principal
from app.services.common import coerce_uuid
from app.services.permissions import (
    ALL_PERMISSIONS,
    ROLE_PRESETS,
    Permission,
    combine,
    permission_names,
)
from app.services.role_assignment import RoleAssignment

logger = logging.getLogger(__name__)


def parse_capabilities(names: list[str]) -> Permission:
    unknown = [name for name in names if name.upper() not in Permission.__members__]
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Unknown capability {', '.join(unknown)}. Allowed: "
                f"{', '.join(permission_names(ALL_PERMISSIONS))}"
            ),
        )
    return combine(*(Permission[name.upper()] for name in names))


class AccessChecks:
    @staticmethod
    def effective(principal: Principal) -> dict:
        assignment = RoleAssignment.resolve(principal)
        return {
            "principal_id": principal.id,
            "area_id": principal.area_id,
            "permission_mask": int(assignment.permission_mask),
            "is_blocked": assignment.is_blocked,
            "assigned": permission_names(assignment.permission_mask),
            "effective": [
                name
                for name in permission_names(ALL_PERMISSIONS)
                if assignment.can_act_on(Permission[name])
            ],
        }

    @staticmethod
    def check(
        db: Session,
        principal: Principal,
        capabilities: list[str],
        document_id: str | None = None,
    ) -> bool:
        required = parse_capabilities(capabilities)
        assignment = RoleAssignment.resolve(principal)
        if document_id is None:
            return assignment.can_act_on(required)
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise HTTPException(status_code=404, detail="Document not found")
        return assignment.can_act_on(required) and assignment.holds_area(
            document.current_area_id
        )

    @staticmethod
    def check_batch(
        db: Session,
        principal: Principal,
        capabilities: list[str],
        document_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, bool]:
        """Check one capability set against many documents.

        Unknown documents are reported as not allowed.
        """
        required = parse_capabilities(capabilities)
        assignment = RoleAssignment.resolve(principal)
        capable = assignment.can_act_on(required)
        ids = [coerce_uuid(document_id) for document_id in document_ids]
        held = dict(
            db.execute(
                select(Document.id, Document.current_area_id).where(Document.id.in_(ids))
            ).all()
        )
        results = {
            document_id: capable
            and document_id in held
            and assignment.holds_area(held[document_id])
            for document_id in ids
        }
        logger.debug(
            "Checked %s for principal %s on %d documents",
            capabilities,
            principal.id,
            len(ids),
        )
        return results

    @staticmethod
    def role_presets() -> list[dict]:
        return [
            {
                "role": role,
                "permission_mask": int(mask),
                "permissions": permission_names(mask),
            }
            for role, mask in sorted(ROLE_PRESETS.items())
        ]


access_checks = AccessChecks()
