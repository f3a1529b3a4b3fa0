from celery import Celery

from doc_registry.config import settings

celery_app = Celery(
    "doc_registry",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["doc_registry.tasks.cache"],
)

celery_app.conf.task_routes = {"doc_registry.tasks.*": {"queue": "doc-registry"}}
celery_app.conf.task_ignore_result = True
