import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from doc_registry.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DocumentType(enum.Enum):
    POLICY = "POLICY"
    PROCEDURE = "PROCEDURE"
    MANUAL = "MANUAL"
    RECORD = "RECORD"
    TEMPLATE = "TEMPLATE"
    CERTIFICATE = "CERTIFICATE"
    OTHER = "OTHER"


class DocumentStatus(enum.Enum):
    DRAFT = "DRAFT"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    SUPERSEDED = "SUPERSEDED"


class StorageLocation(enum.Enum):
    SHAREPOINT = "SHAREPOINT"
    CONFLUENCE = "CONFLUENCE"


class ReviewTaskStatus(enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


SHAREPOINT_FIELDS = ("sharepoint_site_id", "sharepoint_drive_id", "sharepoint_item_id")
CONFLUENCE_FIELDS = ("confluence_space_key", "confluence_page_id")

PROVIDER_FIELDS = {
    StorageLocation.SHAREPOINT: SHAREPOINT_FIELDS,
    StorageLocation.CONFLUENCE: CONFLUENCE_FIELDS,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_owner_id", "owner_id"),
        Index("ix_documents_status", "status"),
        Index("ix_documents_next_review_date", "next_review_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[DocumentType] = mapped_column(Enum(DocumentType), nullable=False)
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), default=DocumentStatus.DRAFT
    )
    version: Mapped[str] = mapped_column(String(100), nullable=False)

    storage_location: Mapped[StorageLocation] = mapped_column(
        Enum(StorageLocation), nullable=False
    )
    sharepoint_site_id: Mapped[str | None] = mapped_column(String(255))
    sharepoint_drive_id: Mapped[str | None] = mapped_column(String(255))
    sharepoint_item_id: Mapped[str | None] = mapped_column(String(255))
    confluence_space_key: Mapped[str | None] = mapped_column(String(255))
    confluence_page_id: Mapped[str | None] = mapped_column(String(255))
    # Derived from the active identifier set; never stale.
    document_url: Mapped[str | None] = mapped_column(Text)

    requires_acknowledgement: Mapped[bool] = mapped_column(Boolean, default=False)
    last_changed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_review_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    owner = relationship("Person", foreign_keys=[owner_id], lazy="joined")
    version_history = relationship(
        "DocumentVersionHistory",
        back_populates="document",
        order_by="DocumentVersionHistory.created_at.desc()",
        passive_deletes=True,
    )


class DocumentVersionHistory(Base):
    __tablename__ = "document_version_history"
    __table_args__ = (
        UniqueConstraint(
            "document_id", "version", name="uq_document_version_history_doc_version"
        ),
        Index("ix_document_version_history_document_id", "document_id"),
        Index(
            "ix_document_version_history_sharepoint",
            "sharepoint_site_id",
            "sharepoint_drive_id",
            "sharepoint_item_id",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    # Identifiers active when the entry was written
    sharepoint_site_id: Mapped[str | None] = mapped_column(String(255))
    sharepoint_drive_id: Mapped[str | None] = mapped_column(String(255))
    sharepoint_item_id: Mapped[str | None] = mapped_column(String(255))
    confluence_space_key: Mapped[str | None] = mapped_column(String(255))
    confluence_page_id: Mapped[str | None] = mapped_column(String(255))

    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    updated_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    document = relationship("Document", back_populates="version_history")


# ---------------------------------------------------------------------------
# Dependents (removed by the cascade delete before the document row)
# ---------------------------------------------------------------------------


class ReviewTask(Base):
    __tablename__ = "review_tasks"
    __table_args__ = (Index("ix_review_tasks_document_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    change_notes: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ReviewTaskStatus] = mapped_column(
        Enum(ReviewTaskStatus), default=ReviewTaskStatus.PENDING
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class Acknowledgment(Base):
    __tablename__ = "acknowledgments"
    __table_args__ = (Index("ix_acknowledgments_document_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    person_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False
    )
    document_version: Mapped[str] = mapped_column(String(100), nullable=False)
    acknowledged_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )


class Control(Base):
    __tablename__ = "controls"
    __table_args__ = (UniqueConstraint("code", name="uq_controls_code"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str | None] = mapped_column(String(120))
    is_standard_control: Mapped[bool] = mapped_column(Boolean, default=True)


class DocumentControl(Base):
    __tablename__ = "document_controls"

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), primary_key=True
    )
    control_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("controls.id"), primary_key=True
    )

    control = relationship("Control", lazy="joined")


class Risk(Base):
    __tablename__ = "risks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class DocumentRisk(Base):
    __tablename__ = "document_risks"

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), primary_key=True
    )
    risk_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("risks.id"), primary_key=True
    )
