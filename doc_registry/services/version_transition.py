import logging
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from doc_registry.models.registry import Document, DocumentStatus
from doc_registry.schemas.documents import VersionUpdate
from doc_registry.services import cache_invalidation
from doc_registry.services.common import Actor, coerce_uuid, error_detail, not_found
from doc_registry.services.version_history import version_history

logger = logging.getLogger(__name__)

_REVIEW_DATE_FIELDS = ("last_review_date", "next_review_date")


def _version_mismatch(current_version: str) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=error_detail(
            "version_mismatch",
            f'Document version has changed. Current version is "{current_version}". '
            "Please refresh and try again.",
            {"current_version": current_version},
        ),
    )


def advance_version(
    db: Session, document_id: str, payload: VersionUpdate, actor: Actor
) -> Document:
    """Move a document from ``current_version`` to ``new_version``.

    The write only lands while the stored version still equals the caller's
    ``current_version``, so two editors racing on the same document cannot
    both advance it.
    """
    document = db.get(Document, coerce_uuid(document_id))
    if not document:
        raise not_found("Document")

    if document.version != payload.current_version:
        raise _version_mismatch(document.version)

    values = {"version": payload.new_version}
    if document.status == DocumentStatus.APPROVED:
        values["last_changed_date"] = datetime.now(timezone.utc)
    for field in _REVIEW_DATE_FIELDS:
        if field in payload.model_fields_set:
            values[field] = getattr(payload, field)

    try:
        version_history.upsert(db, document, payload.new_version, payload.notes, actor.id)
        result = db.execute(
            update(Document)
            .where(Document.id == document.id)
            .where(Document.version == payload.current_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            db.refresh(document)
            logger.info(
                "Version advance for document %s lost to a concurrent change (now %s)",
                document.id,
                document.version,
            )
            raise _version_mismatch(document.version)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=409,
            detail=error_detail(
                "version_exists",
                f"Version {payload.new_version} was recorded concurrently",
            ),
        )

    db.refresh(document)
    logger.info(
        "Advanced document %s from %s to %s",
        document.id,
        payload.current_version,
        document.version,
    )
    cache_invalidation.invalidate(document.id)
    return document
