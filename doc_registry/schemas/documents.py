from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from doc_registry.models.registry import (
    CONFLUENCE_FIELDS,
    SHAREPOINT_FIELDS,
    DocumentStatus,
    DocumentType,
    StorageLocation,
)
from doc_registry.schemas.common import OptionalText, Timestamp


def _inactive_fields(location: StorageLocation) -> tuple[str, ...]:
    if location == StorageLocation.SHAREPOINT:
        return CONFLUENCE_FIELDS
    return SHAREPOINT_FIELDS


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID | None = None
    title: str = Field(min_length=1, max_length=500)
    type: DocumentType
    storage_location: StorageLocation
    version: str = Field(min_length=1, max_length=100)
    status: DocumentStatus
    owner_id: UUID
    sharepoint_site_id: OptionalText = None
    sharepoint_drive_id: OptionalText = None
    sharepoint_item_id: OptionalText = None
    confluence_space_key: OptionalText = None
    confluence_page_id: OptionalText = None
    requires_acknowledgement: bool | None = None
    last_changed_date: Timestamp = None
    last_review_date: Timestamp = None
    next_review_date: Timestamp = None
    version_notes: OptionalText = None

    @model_validator(mode="after")
    def _single_provider(self) -> DocumentCreate:
        stray = [f for f in _inactive_fields(self.storage_location) if getattr(self, f)]
        if stray:
            raise ValueError(
                f"{', '.join(stray)} not allowed for storage location "
                f"{self.storage_location.value}"
            )
        return self


_NON_NULLABLE_PATCH_FIELDS = (
    "title",
    "type",
    "status",
    "storage_location",
    "owner_id",
    "requires_acknowledgement",
)


class DocumentUpdate(BaseModel):
    """Partial update. Only fields present in the request are applied.

    The version label is not part of the patch; it changes only through
    a version update.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=500)
    type: DocumentType | None = None
    status: DocumentStatus | None = None
    storage_location: StorageLocation | None = None
    owner_id: UUID | None = None
    sharepoint_site_id: OptionalText = None
    sharepoint_drive_id: OptionalText = None
    sharepoint_item_id: OptionalText = None
    confluence_space_key: OptionalText = None
    confluence_page_id: OptionalText = None
    requires_acknowledgement: bool | None = None
    last_changed_date: Timestamp = None
    last_review_date: Timestamp = None
    next_review_date: Timestamp = None
    version_notes: OptionalText = None

    @model_validator(mode="after")
    def _no_null_required(self) -> DocumentUpdate:
        nulled = [
            f
            for f in _NON_NULLABLE_PATCH_FIELDS
            if f in self.model_fields_set and getattr(self, f) is None
        ]
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
        return self


class OwnerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    display_name: str
    email: str


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    type: DocumentType
    status: DocumentStatus
    version: str
    storage_location: StorageLocation
    sharepoint_site_id: str | None = None
    sharepoint_drive_id: str | None = None
    sharepoint_item_id: str | None = None
    confluence_space_key: str | None = None
    confluence_page_id: str | None = None
    document_url: str | None = None
    requires_acknowledgement: bool
    last_changed_date: datetime | None = None
    last_review_date: datetime | None = None
    next_review_date: datetime | None = None
    owner_id: UUID
    owner: OwnerRead | None = None
    created_at: datetime
    updated_at: datetime
    is_overdue_review: bool = False
    is_upcoming_review: bool = False


class DocumentDetailRead(DocumentRead):
    current_version_notes: str | None = None


class DeletedDocumentRead(BaseModel):
    id: UUID
    title: str
    version: str
    status: DocumentStatus
    deleted: bool = True
    removed: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


class VersionUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    current_version: str = Field(min_length=1, max_length=100)
    new_version: str = Field(min_length=1, max_length=100)
    notes: str = Field(min_length=1)
    last_review_date: Timestamp = None
    next_review_date: Timestamp = None


class VersionNotesRead(BaseModel):
    document_id: UUID
    version: str
    notes: str | None = None


class VersionHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    version: str
    notes: str | None = None
    sharepoint_site_id: str | None = None
    sharepoint_drive_id: str | None = None
    sharepoint_item_id: str | None = None
    confluence_space_key: str | None = None
    confluence_page_id: str | None = None
    created_by: UUID
    updated_by: UUID
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Control links
# ---------------------------------------------------------------------------


class ControlRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    title: str
    category: str | None = None
    is_standard_control: bool


class ControlLinkCreate(BaseModel):
    control_id: UUID
