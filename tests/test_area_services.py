import uuid

import pytest
from fastapi import HTTPException

from app.schemas.records import AreaCreate, AreaUpdate
from app.services.area import areas
from app.services.derivation import derivations


def _payload(**overrides):
    suffix = uuid.uuid4().hex[:8]
    data = {"name": f"Area {suffix}", "code": f"C-{suffix}"}
    data.update(overrides)
    return AreaCreate(**data)


class TestAreasService:
    def test_create(self, db_session) -> None:
        area = areas.create(db_session, _payload(is_reception=True))
        assert area.id is not None
        assert area.is_reception is True
        assert area.is_active is True

    def test_create_duplicate_code(self, db_session) -> None:
        payload = _payload()
        areas.create(db_session, payload)
        with pytest.raises(HTTPException) as exc:
            areas.create(db_session, _payload(code=payload.code))
        assert exc.value.status_code == 409

    def test_get_not_found(self, db_session) -> None:
        with pytest.raises(HTTPException) as exc:
            areas.get(db_session, str(uuid.uuid4()))
        assert exc.value.status_code == 404

    def test_update(self, db_session, make_area) -> None:
        area = make_area()
        updated = areas.update(db_session, str(area.id), AreaUpdate(area_type="lab"))
        assert updated.area_type == "lab"

    def test_update_rejects_taken_name(self, db_session, make_area) -> None:
        first, second = make_area(), make_area()
        with pytest.raises(HTTPException) as exc:
            areas.update(db_session, str(second.id), AreaUpdate(name=first.name))
        assert exc.value.status_code == 409

    def test_delete_deactivates(self, db_session, make_area) -> None:
        area = make_area()
        areas.delete(db_session, str(area.id))
        assert areas.get(db_session, str(area.id)).is_active is False

    def test_list_filters_reception(self, db_session, make_area) -> None:
        desk = make_area(is_reception=True)
        make_area()
        result = areas.list(db_session, None, True, "name", "asc", 10000, 0)
        assert desk.id in {a.id for a in result}
        assert all(a.is_reception for a in result)

    def test_list_inactive(self, db_session, make_area) -> None:
        closed = make_area(is_active=False)
        open_area = make_area()
        result = areas.list(db_session, False, None, "created_at", "desc", 10000, 0)
        ids = {a.id for a in result}
        assert closed.id in ids
        assert open_area.id not in ids

    def test_list_invalid_order_by(self, db_session) -> None:
        with pytest.raises(HTTPException) as exc:
            areas.list(db_session, None, None, "bogus", "asc", 10, 0)
        assert exc.value.status_code == 400

    def test_pending_count(
        self, db_session, received_document, clerk, forensics
    ) -> None:
        assert areas.pending_count(db_session, str(forensics.id)) == 0
        derivations.request_derivation(
            db_session, received_document.id, clerk.id, forensics.id
        )
        assert areas.pending_count(db_session, str(forensics.id)) == 1
