import logging

import httpx
from prometheus_client import Counter

from doc_registry.celery_app import celery_app
from doc_registry.config import settings

logger = logging.getLogger(__name__)

CACHE_INVALIDATIONS = Counter(
    "doc_registry_cache_invalidations_total",
    "Rendered-document cache invalidation attempts",
    ["outcome"],
)


@celery_app.task(
    name="doc_registry.tasks.cache.invalidate_document_cache", ignore_result=True
)
def invalidate_document_cache(document_id: str) -> None:
    """Drop every cached rendering of a document from the conversion service."""
    if not settings.document_service_url:
        logger.debug(
            "DOCUMENT_SERVICE_URL not set; skipping cache invalidation for %s",
            document_id,
        )
        CACHE_INVALIDATIONS.labels(outcome="skipped").inc()
        return

    url = f"{settings.document_service_url}/v1/cache/{document_id}"
    try:
        with httpx.Client(timeout=settings.upstream_timeout_seconds) as client:
            resp = client.delete(url)
        resp.raise_for_status()
    except (httpx.HTTPError, OSError) as e:
        CACHE_INVALIDATIONS.labels(outcome="failed").inc()
        logger.warning("Cache invalidation for document %s failed: %s", document_id, e)
        return

    CACHE_INVALIDATIONS.labels(outcome="succeeded").inc()
    logger.info("Invalidated rendering cache for document %s", document_id)
