import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from doc_registry.models.registry import Control, Document, DocumentControl
from doc_registry.services.common import coerce_uuid, error_detail, not_found

logger = logging.getLogger(__name__)


class DocumentControls:
    @staticmethod
    def _ensure_document(db: Session, document_id: str):
        doc_uuid = coerce_uuid(document_id)
        if not db.get(Document, doc_uuid):
            raise not_found("Document")
        return doc_uuid

    @staticmethod
    def list(db: Session, document_id: str) -> list[Control]:
        doc_uuid = DocumentControls._ensure_document(db, document_id)
        stmt = (
            select(Control)
            .join(DocumentControl, DocumentControl.control_id == Control.id)
            .where(DocumentControl.document_id == doc_uuid)
            .order_by(Control.code.asc())
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def link(db: Session, document_id: str, control_id: str) -> Control:
        doc_uuid = DocumentControls._ensure_document(db, document_id)
        control = db.get(Control, coerce_uuid(control_id))
        if not control:
            raise not_found("Control")
        if db.get(DocumentControl, (doc_uuid, control.id)):
            raise _duplicate_link(control)

        db.add(DocumentControl(document_id=doc_uuid, control_id=control.id))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise _duplicate_link(control)
        logger.info("Linked control %s to document %s", control.code, doc_uuid)
        return control

    @staticmethod
    def unlink(db: Session, document_id: str, control_id: str) -> None:
        doc_uuid = DocumentControls._ensure_document(db, document_id)
        control_uuid = coerce_uuid(control_id)
        if not db.get(Control, control_uuid):
            raise not_found("Control")
        link = db.get(DocumentControl, (doc_uuid, control_uuid))
        if not link:
            raise not_found("Control link", code="control_link_not_found")
        db.delete(link)
        db.commit()
        logger.info("Unlinked control %s from document %s", control_uuid, doc_uuid)


def _duplicate_link(control: Control) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=error_detail(
            "duplicate_link", f"Control {control.code} is already linked to this document"
        ),
    )


document_controls = DocumentControls()
