from celery import Celery

from app.config import settings

celery_app = Celery(
    "oficri",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.audit", "app.tasks.notifications"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.celery_task_always_eager,
    task_eager_propagates=False,
)
