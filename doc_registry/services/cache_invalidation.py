import logging
import uuid

logger = logging.getLogger(__name__)


def invalidate(document_id: str | uuid.UUID) -> None:
    """Fire-and-forget invalidation of the rendered-document cache.

    Queues a Celery task and returns immediately. Called after the owning
    mutation has committed. Never raises; logs failures and continues.
    """
    try:
        from doc_registry.tasks.cache import invalidate_document_cache

        invalidate_document_cache.delay(document_id=str(document_id))
        logger.debug("Queued cache invalidation for document %s", document_id)
    except Exception as e:
        logger.exception(
            "Failed to queue cache invalidation for document %s: %s", document_id, e
        )
