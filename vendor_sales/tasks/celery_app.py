from celery import Celery

from vendor_sales.core.config import settings


celery_app = Celery(
    "vendor_sales",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["vendor_sales.tasks.commission_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    enable_utc=True,
    task_acks_late=True,
    task_time_limit=300,
    worker_prefetch_multiplier=1,
    result_expires=86400,
)
