from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.areas import router as areas_router
from app.api.audit import router as audit_router
from app.api.documents import router as documents_router
from app.api.notifications import router as notifications_router
from app.api.permissions import router as permissions_router
from app.api.principals import router as principals_router
from app.config import settings
from app.errors import register_error_handlers
from app.logging import configure_logging

app = FastAPI(title=f"{settings.brand_name} API", description=settings.brand_tagline)

configure_logging()
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(documents_router)
_include_api_router(areas_router)
_include_api_router(principals_router)
_include_api_router(notifications_router)
_include_api_router(audit_router)
_include_api_router(permissions_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
