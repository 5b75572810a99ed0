import os
import tempfile
import uuid

_DB_DIR = tempfile.mkdtemp(prefix="oficri-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.db import Base, SessionLocal, engine  # noqa: E402
from app.models.records import Area, Document, Principal  # noqa: E402
from app.schemas.records import DocumentReceive  # noqa: E402
from app.services.permissions import ALL_PERMISSIONS, ROLE_PRESETS  # noqa: E402
from app.services.principal import hash_api_key  # noqa: E402

MESA_PARTES = int(ROLE_PRESETS["mesa_partes"])
AREA_RESPONSABLE = int(ROLE_PRESETS["area_responsable"])
ADMIN = int(ALL_PERMISSIONS)


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_area(db_session):
    def _make(is_reception=False, is_active=True, name=None):
        suffix = uuid.uuid4().hex[:8]
        area = Area(
            name=name or f"Area {suffix}",
            code=f"AR-{suffix}",
            area_type="reception" if is_reception else "operational",
            is_reception=is_reception,
            is_active=is_active,
        )
        db_session.add(area)
        db_session.commit()
        db_session.refresh(area)
        return area

    return _make


@pytest.fixture()
def make_principal(db_session):
    def _make(area, mask=MESA_PARTES, is_blocked=False, is_active=True, api_key=None):
        suffix = uuid.uuid4().hex[:8]
        principal = Principal(
            first_name="Test",
            last_name=f"Principal {suffix}",
            email=f"principal-{suffix}@example.com",
            area_id=area.id,
            permission_mask=mask,
            is_blocked=is_blocked,
            is_active=is_active,
            api_key_hash=hash_api_key(api_key) if api_key else None,
        )
        db_session.add(principal)
        db_session.commit()
        db_session.refresh(principal)
        return principal

    return _make


@pytest.fixture()
def reception(make_area):
    return make_area(is_reception=True, name=f"Mesa de Partes {uuid.uuid4().hex[:6]}")


@pytest.fixture()
def forensics(make_area):
    return make_area(name=f"Forensics {uuid.uuid4().hex[:6]}")


@pytest.fixture()
def clerk(make_principal, reception):
    return make_principal(reception, mask=MESA_PARTES)


@pytest.fixture()
def analyst(make_principal, forensics):
    return make_principal(forensics, mask=AREA_RESPONSABLE)


@pytest.fixture()
def receive_payload():
    def _make(**overrides):
        data = {
            "code": f"EXP-{uuid.uuid4().hex[:10]}",
            "document_type": "Oficio",
            "subject": "Solicitud de peritaje",
            "sender": "Fiscalia Provincial",
            "folios": 3,
        }
        data.update(overrides)
        return DocumentReceive(**data)

    return _make


@pytest.fixture()
def received_document(db_session, clerk, receive_payload):
    from app.services.derivation import derivations

    entry = derivations.receive_document(db_session, clerk.id, receive_payload())
    return db_session.get(Document, entry.document_id)


@pytest.fixture()
def client():
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def admin_token():
    return f"admin-{uuid.uuid4().hex}"


@pytest.fixture()
def admin(make_principal, reception, admin_token):
    return make_principal(reception, mask=ADMIN, api_key=admin_token)


@pytest.fixture()
def auth_headers(admin, admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture()
def token_for(make_principal):
    """Create a principal with an API key and return (principal, headers)."""

    def _make(area, mask=MESA_PARTES, is_blocked=False):
        api_key = f"key-{uuid.uuid4().hex}"
        principal = make_principal(area, mask=mask, is_blocked=is_blocked, api_key=api_key)
        return principal, {"Authorization": f"Bearer {api_key}"}

    return _make
