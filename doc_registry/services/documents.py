from __future__ import annotations

import dataclasses
import logging
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from doc_registry.config import settings
from doc_registry.models.person import Person
from doc_registry.models.registry import (
    PROVIDER_FIELDS,
    Document,
    DocumentStatus,
    DocumentType,
    StorageLocation,
)
from doc_registry.schemas.documents import DocumentCreate, DocumentUpdate
from doc_registry.services import cache_invalidation
from doc_registry.services.common import (
    Actor,
    apply_ordering,
    apply_pagination,
    as_utc,
    coerce_uuid,
    error_detail,
    not_found,
)
from doc_registry.services.response import ListResponseMixin
from doc_registry.services.storage_location import StorageIdentifiers, resolver
from doc_registry.services.version_history import version_history

logger = logging.getLogger(__name__)

_REVIEWABLE_STATUSES = {DocumentStatus.APPROVED, DocumentStatus.IN_REVIEW}
_ALL_PROVIDER_FIELDS = tuple(
    name for fields in PROVIDER_FIELDS.values() for name in fields
)


def review_flags(
    status: DocumentStatus,
    next_review_date: datetime | None,
    now: datetime | None = None,
) -> tuple[bool, bool]:
    """Return ``(is_overdue_review, is_upcoming_review)``.

    Only approved and in-review documents are tracked; everything else, and
    anything without a next review date, reports both flags false.
    """
    if next_review_date is None or status not in _REVIEWABLE_STATUSES:
        return False, False
    now = now or datetime.now(timezone.utc)
    due = as_utc(next_review_date)
    horizon = now + timedelta(days=settings.review_upcoming_window_days)
    return due < now, now <= due <= horizon


def _attach_review_flags(document: Document, now: datetime | None = None) -> Document:
    overdue, upcoming = review_flags(document.status, document.next_review_date, now)
    document.is_overdue_review = overdue
    document.is_upcoming_review = upcoming
    return document


def _document_exists(document_id) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=error_detail("document_exists", f"Document {document_id} already exists"),
    )


def _inactive_fields(location: StorageLocation) -> tuple[str, ...]:
    active = PROVIDER_FIELDS[location]
    return tuple(name for name in _ALL_PROVIDER_FIELDS if name not in active)


class Documents(ListResponseMixin):
    @staticmethod
    def create(
        db: Session,
        payload: DocumentCreate,
        actor: Actor,
        graph_token: str | None = None,
    ) -> Document:
        if not db.get(Person, payload.owner_id):
            raise not_found("Owner")

        if payload.id and db.get(Document, payload.id):
            raise _document_exists(payload.id)

        data = payload.model_dump(exclude={"version_notes"})
        data["id"] = payload.id or uuid.uuid4()
        if payload.requires_acknowledgement is None:
            data["requires_acknowledgement"] = payload.type == DocumentType.POLICY

        identifiers = StorageIdentifiers.from_source(payload)
        if payload.storage_location == StorageLocation.SHAREPOINT:
            identifiers = resolver.apply_defaults(identifiers)
        data.update(dataclasses.asdict(identifiers))
        data["document_url"] = resolver.resolve(
            payload.storage_location, identifiers, graph_token
        )

        document = Document(**data)
        db.add(document)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise _document_exists(data["id"])
        db.refresh(document)
        logger.info("Created document %s (%s)", document.id, document.type.value)

        if payload.version_notes:
            Documents._record_initial_notes(db, document, payload.version_notes, actor)

        cache_invalidation.invalidate(document.id)
        return document

    @staticmethod
    def _record_initial_notes(
        db: Session, document: Document, notes: str, actor: Actor
    ) -> None:
        try:
            version_history.upsert(db, document, document.version, notes, actor.id)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(
                "Failed to record initial version notes for document %s: %s",
                document.id,
                e,
            )
        db.refresh(document)

    @staticmethod
    def get(db: Session, document_id: str) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise not_found("Document")
        return document

    @staticmethod
    def get_detail(db: Session, document_id: str) -> Document:
        document = _attach_review_flags(Documents.get(db, document_id))
        entry = version_history.find(db, document.id, document.version)
        document.current_version_notes = entry.notes if entry else None
        return document

    @staticmethod
    def list(
        db: Session,
        doc_type: str | None = None,
        status: str | None = None,
        owner_id: str | None = None,
        next_review_from: datetime | None = None,
        next_review_to: datetime | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
        graph_token: str | None = None,
    ) -> list[Document]:
        stmt = select(Document)
        if doc_type is not None:
            stmt = stmt.where(Document.type == DocumentType(doc_type))
        if status is not None:
            stmt = stmt.where(Document.status == DocumentStatus(status))
        if owner_id is not None:
            stmt = stmt.where(Document.owner_id == coerce_uuid(owner_id))
        if next_review_from is not None:
            stmt = stmt.where(Document.next_review_date >= next_review_from)
        if next_review_to is not None:
            stmt = stmt.where(Document.next_review_date <= next_review_to)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "created_at": Document.created_at,
                "updated_at": Document.updated_at,
                "title": Document.title,
                "next_review_date": Document.next_review_date,
            },
        )
        documents = list(db.scalars(apply_pagination(stmt, limit, offset)).all())
        Documents._backfill_urls(db, documents, graph_token)
        now = datetime.now(timezone.utc)
        return [_attach_review_flags(doc, now) for doc in documents]

    @staticmethod
    def _backfill_urls(
        db: Session, documents: list[Document], graph_token: str | None
    ) -> None:
        """Store URLs for listed documents whose identifiers are complete but unresolved."""
        resolved = 0
        for document in documents:
            if document.document_url:
                continue
            identifiers = StorageIdentifiers.from_source(document)
            if not identifiers.is_complete(document.storage_location):
                continue
            url = resolver.resolve(document.storage_location, identifiers, graph_token)
            if url:
                document.document_url = url
                resolved += 1
        if not resolved:
            return
        try:
            db.commit()
            logger.info("Stored %d missing document URLs", resolved)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to store backfilled document URLs: %s", e)

    @staticmethod
    def update(
        db: Session,
        document_id: str,
        payload: DocumentUpdate,
        actor: Actor,
        graph_token: str | None = None,
    ) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise not_found("Document")

        data = payload.model_dump(exclude_unset=True)
        has_notes = "version_notes" in data
        notes = data.pop("version_notes", None)

        if "owner_id" in data and not db.get(Person, data["owner_id"]):
            raise not_found("Owner")

        if (
            data.get("type") == DocumentType.POLICY
            and document.type != DocumentType.POLICY
            and "requires_acknowledgement" not in data
        ):
            data["requires_acknowledgement"] = True

        data.update(Documents._storage_changes(document, data, graph_token))

        if has_notes:
            # Notes always belong to the stored version; the label is not patchable.
            version_history.upsert(db, document, document.version, notes, actor.id)

        for key, value in data.items():
            setattr(document, key, value)

        db.commit()
        db.refresh(document)
        logger.info(
            "Updated document %s fields=%s notes=%s",
            document.id,
            sorted(data.keys()),
            has_notes,
        )
        cache_invalidation.invalidate(document.id)
        return document

    @staticmethod
    def _storage_changes(
        document: Document, data: dict, graph_token: str | None
    ) -> dict:
        """Work out identifier clean-up and the new URL for a patch.

        Returns the extra fields to write. Empty when neither the location tag
        nor any identifier changes.
        """
        location = data.get("storage_location", document.storage_location)
        stray = [name for name in _inactive_fields(location) if data.get(name)]
        if stray:
            raise HTTPException(
                status_code=400,
                detail=error_detail(
                    "invalid_storage_identifiers",
                    f"{', '.join(stray)} not allowed for storage location "
                    f"{location.value}",
                ),
            )

        changes: dict = {}
        location_changed = location != document.storage_location
        if location_changed:
            for name in PROVIDER_FIELDS[document.storage_location]:
                if name not in data:
                    changes[name] = None

        ids_changed = any(
            name in data and data[name] != getattr(document, name)
            for name in _ALL_PROVIDER_FIELDS
        )
        if not (location_changed or ids_changed):
            return changes

        merged = {
            name: data[name] if name in data else changes.get(name, getattr(document, name))
            for name in _ALL_PROVIDER_FIELDS
        }
        changes["document_url"] = resolver.resolve(
            location, StorageIdentifiers(**merged), graph_token
        )
        if changes["document_url"] is None:
            logger.info("Cleared document URL for %s", document.id)
        return changes

    @staticmethod
    def soft_delete(db: Session, document_id: str) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise not_found("Document")
        document.status = DocumentStatus.SUPERSEDED
        db.commit()
        db.refresh(document)
        logger.info("Soft-deleted (superseded) document %s", document.id)
        return document


documents = Documents()
