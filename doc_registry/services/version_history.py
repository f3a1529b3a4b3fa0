from __future__ import annotations

import dataclasses
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from doc_registry.models.registry import Document, DocumentVersionHistory
from doc_registry.services.common import coerce_uuid, not_found
from doc_registry.services.storage_location import StorageIdentifiers

logger = logging.getLogger(__name__)

CURRENT_VERSION = "current"


class VersionHistory:
    """One audit row per (document, version label)."""

    @staticmethod
    def find(
        db: Session, document_id: uuid.UUID, version: str
    ) -> DocumentVersionHistory | None:
        return db.scalar(
            select(DocumentVersionHistory)
            .where(DocumentVersionHistory.document_id == document_id)
            .where(DocumentVersionHistory.version == version)
        )

    @staticmethod
    def upsert(
        db: Session,
        document: Document,
        version: str,
        notes: str | None,
        actor_id: uuid.UUID,
    ) -> DocumentVersionHistory:
        """Create the entry for ``version`` or update it in place.

        Flushes but does not commit; the caller owns the transaction. An
        existing snapshot keeps identifiers the document no longer carries.
        """
        snapshot = dataclasses.asdict(StorageIdentifiers.from_source(document))
        entry = VersionHistory.find(db, document.id, version)
        if entry:
            entry.notes = notes
            entry.updated_by = actor_id
            entry.updated_at = datetime.now(timezone.utc)
            for name, value in snapshot.items():
                if value:
                    setattr(entry, name, value)
            logger.info(
                "Updated version history for document %s version %s",
                document.id,
                version,
            )
        else:
            entry = DocumentVersionHistory(
                document_id=document.id,
                version=version,
                notes=notes,
                created_by=actor_id,
                updated_by=actor_id,
                **snapshot,
            )
            db.add(entry)
            logger.info(
                "Created version history for document %s version %s",
                document.id,
                version,
            )
        db.flush()
        return entry

    @staticmethod
    def get_notes(db: Session, document_id: str, version: str | None = None) -> dict:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise not_found("Document")
        resolved = document.version if version in (None, "", CURRENT_VERSION) else version
        entry = VersionHistory.find(db, document.id, resolved)
        return {
            "document_id": document.id,
            "version": resolved,
            "notes": entry.notes if entry else None,
        }

    @staticmethod
    def list_for_document(db: Session, document_id: str) -> list[DocumentVersionHistory]:
        doc_uuid = coerce_uuid(document_id)
        if not db.get(Document, doc_uuid):
            raise not_found("Document")
        stmt = (
            select(DocumentVersionHistory)
            .where(DocumentVersionHistory.document_id == doc_uuid)
            .order_by(DocumentVersionHistory.created_at.desc())
        )
        return list(db.scalars(stmt).all())


version_history = VersionHistory()
