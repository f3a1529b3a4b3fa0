import logging
import time

from fastapi import HTTPException
from sqlalchemy import delete, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from doc_registry.config import settings
from doc_registry.models.registry import (
    Acknowledgment,
    Document,
    DocumentControl,
    DocumentRisk,
    DocumentVersionHistory,
    ReviewTask,
)
from doc_registry.services import cache_invalidation
from doc_registry.services.common import coerce_uuid, error_detail, not_found

logger = logging.getLogger(__name__)

# Dependents first, parent last.
CASCADE_ORDER = (
    ("review_tasks", ReviewTask),
    ("acknowledgments", Acknowledgment),
    ("document_controls", DocumentControl),
    ("document_risks", DocumentRisk),
    ("version_history", DocumentVersionHistory),
)

_QUERY_CANCELED = "57014"


class DeleteTimeout(Exception):
    pass


def _is_statement_timeout(exc: OperationalError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == _QUERY_CANCELED


def _delete_rows(db: Session, model, document_id) -> int:
    result = db.execute(delete(model).where(model.document_id == document_id))
    return result.rowcount or 0


class _Deadline:
    def __init__(self, db: Session, seconds: float):
        self.db = db
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds
        self.postgres = db.get_bind().dialect.name == "postgresql"

    def remaining(self) -> float:
        return self.expires_at - time.monotonic()

    def arm(self, step: str) -> None:
        """Fail fast when the budget is spent and cap the next statement."""
        left = self.remaining()
        if left <= 0:
            raise DeleteTimeout(step)
        if self.postgres:
            self.db.execute(
                text(f"SET LOCAL statement_timeout = {max(int(left * 1000), 1)}")
            )


def hard_delete(db: Session, document_id: str) -> dict:
    """Permanently remove a document and everything that references it.

    Runs as one transaction bounded by ``HARD_DELETE_TIMEOUT_SECONDS``; on
    timeout or any database error nothing is removed.
    """
    doc_uuid = coerce_uuid(document_id)
    document = db.get(Document, doc_uuid)
    if not document:
        raise not_found("Document")

    snapshot = {
        "id": document.id,
        "title": document.title,
        "version": document.version,
        "status": document.status,
        "deleted": True,
    }
    deadline = _Deadline(db, settings.hard_delete_timeout_seconds)
    removed: dict[str, int] = {}
    step = "start"
    try:
        for step, model in CASCADE_ORDER:
            deadline.arm(step)
            removed[step] = _delete_rows(db, model, doc_uuid)
        step = "document"
        deadline.arm(step)
        db.delete(document)
        db.flush()
        deadline.arm("commit")
        db.commit()
    except DeleteTimeout as e:
        db.rollback()
        logger.warning(
            "Hard delete of document %s exceeded %ss at step %s",
            doc_uuid,
            deadline.seconds,
            e,
        )
        raise _timeout_error()
    except OperationalError as e:
        db.rollback()
        if _is_statement_timeout(e):
            logger.warning(
                "Hard delete of document %s timed out in step %s", doc_uuid, step
            )
            raise _timeout_error()
        logger.exception("hard_delete failed for document %s at step %s", doc_uuid, step)
        raise _failure_error()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("hard_delete failed for document %s at step %s", doc_uuid, step)
        raise _failure_error()

    logger.info("Hard-deleted document %s removed=%s", doc_uuid, removed)
    cache_invalidation.invalidate(doc_uuid)
    return {**snapshot, "removed": removed}


def _timeout_error() -> HTTPException:
    return HTTPException(
        status_code=408,
        detail=error_detail(
            "delete_timeout",
            "Delete operation timed out. The document may have too many related records.",
        ),
    )


def _failure_error() -> HTTPException:
    return HTTPException(
        status_code=500,
        detail=error_detail("delete_failed", "Failed to delete document"),
    )
