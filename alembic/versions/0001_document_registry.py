"""document registry

Revision ID: 0001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_ENUMS = {
    "documenttype": (
        "POLICY",
        "PROCEDURE",
        "MANUAL",
        "RECORD",
        "TEMPLATE",
        "CERTIFICATE",
        "OTHER",
    ),
    "documentstatus": ("DRAFT", "IN_REVIEW", "APPROVED", "SUPERSEDED"),
    "storagelocation": ("SHAREPOINT", "CONFLUENCE"),
    "reviewtaskstatus": ("PENDING", "COMPLETED", "CANCELLED"),
}


def _enum(name: str) -> sa.Enum:
    # Created with the first table that uses it.
    return sa.Enum(*_ENUMS[name], name=name)


def _provider_columns() -> list[sa.Column]:
    return [
        sa.Column("sharepoint_site_id", sa.String(length=255), nullable=True),
        sa.Column("sharepoint_drive_id", sa.String(length=255), nullable=True),
        sa.Column("sharepoint_item_id", sa.String(length=255), nullable=True),
        sa.Column("confluence_space_key", sa.String(length=255), nullable=True),
        sa.Column("confluence_page_id", sa.String(length=255), nullable=True),
    ]


def upgrade() -> None:
    # --- Tables with no FK dependencies ---
    op.create_table(
        "people",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "controls",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("is_standard_control", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_controls_code"),
    )

    op.create_table(
        "risks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    # --- Documents ---
    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("type", _enum("documenttype"), nullable=False),
        sa.Column("status", _enum("documentstatus"), nullable=False),
        sa.Column("version", sa.String(length=100), nullable=False),
        sa.Column("storage_location", _enum("storagelocation"), nullable=False),
        *_provider_columns(),
        sa.Column("document_url", sa.Text(), nullable=True),
        sa.Column("requires_acknowledgement", sa.Boolean(), nullable=False),
        sa.Column("last_changed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])
    op.create_index("ix_documents_status", "documents", ["status"])
    op.create_index("ix_documents_next_review_date", "documents", ["next_review_date"])

    op.create_table(
        "document_version_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("version", sa.String(length=100), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_provider_columns(),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("updated_by", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "document_id", "version", name="uq_document_version_history_doc_version"
        ),
    )
    op.create_index(
        "ix_document_version_history_document_id",
        "document_version_history",
        ["document_id"],
    )
    op.create_index(
        "ix_document_version_history_sharepoint",
        "document_version_history",
        ["sharepoint_site_id", "sharepoint_drive_id", "sharepoint_item_id"],
    )

    # --- Dependents ---
    op.create_table(
        "review_tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("reviewer_id", sa.Uuid(), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("change_notes", sa.Text(), nullable=True),
        sa.Column("status", _enum("reviewtaskstatus"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["reviewer_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_review_tasks_document_id", "review_tasks", ["document_id"])

    op.create_table(
        "acknowledgments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("person_id", sa.Uuid(), nullable=False),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("document_version", sa.String(length=100), nullable=False),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_acknowledgments_document_id", "acknowledgments", ["document_id"])

    op.create_table(
        "document_controls",
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("control_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["control_id"], ["controls.id"]),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("document_id", "control_id"),
    )

    op.create_table(
        "document_risks",
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("risk_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["risk_id"], ["risks.id"]),
        sa.PrimaryKeyConstraint("document_id", "risk_id"),
    )


def downgrade() -> None:
    op.drop_table("document_risks")
    op.drop_table("document_controls")

    op.drop_index("ix_acknowledgments_document_id", table_name="acknowledgments")
    op.drop_table("acknowledgments")

    op.drop_index("ix_review_tasks_document_id", table_name="review_tasks")
    op.drop_table("review_tasks")

    op.drop_index(
        "ix_document_version_history_sharepoint", table_name="document_version_history"
    )
    op.drop_index(
        "ix_document_version_history_document_id",
        table_name="document_version_history",
    )
    op.drop_table("document_version_history")

    op.drop_index("ix_documents_next_review_date", table_name="documents")
    op.drop_index("ix_documents_status", table_name="documents")
    op.drop_index("ix_documents_owner_id", table_name="documents")
    op.drop_table("documents")

    op.drop_table("risks")
    op.drop_table("controls")
    op.drop_table("people")

    for enum_name in _ENUMS:
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
