from celery import Celery
from core.config import settings

celery_app = Celery(
    settings.APP_NAME,
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["tasks.sos_tasks"],  # import your tasks here
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)

# Fan-out is never retried; redelivered dispatches are skipped by the task
celery_app.conf.task_annotations = {
    "*": {"max_retries": 0}
}
