"""records core schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19 09:12:04.118342

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "3f1a9c2e7b10"
down_revision = None
branch_labels = None
depends_on = None

_STATUSES = (
    "received",
    "pending_derivation",
    "in_process",
    "derived",
    "completed",
    "archived",
    "rejected",
)
_ACTIONS = (
    "receive",
    "derive_request",
    "confirm_derivation",
    "complete",
    "reject",
    "archive",
)


def upgrade() -> None:
    # --- Organization ---
    op.create_table(
        "areas",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=40), nullable=False),
        sa.Column("area_type", sa.String(length=80), nullable=True),
        sa.Column("is_reception", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_areas_code"),
        sa.UniqueConstraint("name", name="uq_areas_name"),
    )

    op.create_table(
        "principals",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("area_id", sa.UUID(), nullable=False),
        sa.Column("permission_mask", sa.Integer(), nullable=False),
        sa.Column("is_blocked", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("api_key_hash", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_principals_email"),
        sa.UniqueConstraint("api_key_hash", name="uq_principals_api_key_hash"),
    )
    op.create_index("ix_principals_area_id", "principals", ["area_id"])

    # --- Documents ---
    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("code", sa.String(length=80), nullable=False),
        sa.Column("document_type", sa.String(length=120), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("sender", sa.String(length=255), nullable=True),
        sa.Column("folios", sa.Integer(), nullable=False),
        sa.Column(
            "priority",
            sa.Enum("high", "normal", "low", name="documentpriority"),
            nullable=False,
        ),
        sa.Column(
            "origin",
            sa.Enum("external", "internal", name="documentorigin"),
            nullable=False,
        ),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(*_STATUSES, name="documentstatus"), nullable=False),
        sa.Column("current_area_id", sa.UUID(), nullable=False),
        sa.Column("last_sequence", sa.Integer(), nullable=False),
        sa.Column("received_by", sa.UUID(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["current_area_id"], ["areas.id"]),
        sa.ForeignKeyConstraint(["received_by"], ["principals.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_documents_code"),
    )
    op.create_index("ix_documents_status", "documents", ["status"])
    op.create_index("ix_documents_current_area_id", "documents", ["current_area_id"])

    # --- Derivation ledger (append-only) ---
    op.create_table(
        "derivation_ledger",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("action", sa.Enum(*_ACTIONS, name="documentaction"), nullable=False),
        sa.Column(
            "from_status",
            postgresql.ENUM(*_STATUSES, name="documentstatus", create_type=False),
            nullable=True,
        ),
        sa.Column(
            "resulting_status",
            postgresql.ENUM(*_STATUSES, name="documentstatus", create_type=False),
            nullable=False,
        ),
        sa.Column("source_area_id", sa.UUID(), nullable=True),
        sa.Column("destination_area_id", sa.UUID(), nullable=False),
        sa.Column("principal_id", sa.UUID(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["source_area_id"], ["areas.id"]),
        sa.ForeignKeyConstraint(["destination_area_id"], ["areas.id"]),
        sa.ForeignKeyConstraint(["principal_id"], ["principals.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "document_id", "sequence", name="uq_derivation_ledger_doc_sequence"
        ),
    )
    op.create_index(
        "ix_derivation_ledger_document_id", "derivation_ledger", ["document_id"]
    )
    op.create_index(
        "ix_derivation_ledger_destination_area_id",
        "derivation_ledger",
        ["destination_area_id"],
    )

    # --- Side effects ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("principal_id", sa.UUID(), nullable=False),
        sa.Column("area_id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["principal_id"], ["principals.id"]),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"]),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_principal_id", "notifications", ["principal_id"])
    op.create_index("ix_notifications_is_read", "notifications", ["is_read"])
    op.create_index("ix_notifications_event_type", "notifications", ["event_type"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=True),
        sa.Column("principal_id", sa.UUID(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_events_document_id", "audit_events", ["document_id"])
    op.create_index("ix_audit_events_principal_id", "audit_events", ["principal_id"])
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_event_type", table_name="audit_events")
    op.drop_index("ix_audit_events_principal_id", table_name="audit_events")
    op.drop_index("ix_audit_events_document_id", table_name="audit_events")
    op.drop_table("audit_events")

    op.drop_index("ix_notifications_event_type", table_name="notifications")
    op.drop_index("ix_notifications_is_read", table_name="notifications")
    op.drop_index("ix_notifications_principal_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index(
        "ix_derivation_ledger_destination_area_id", table_name="derivation_ledger"
    )
    op.drop_index("ix_derivation_ledger_document_id", table_name="derivation_ledger")
    op.drop_table("derivation_ledger")

    op.drop_index("ix_documents_current_area_id", table_name="documents")
    op.drop_index("ix_documents_status", table_name="documents")
    op.drop_table("documents")

    op.drop_index("ix_principals_area_id", table_name="principals")
    op.drop_table("principals")
    op.drop_table("areas")

    sa.Enum(name="documentaction").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="documentstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="documentorigin").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="documentpriority").drop(op.get_bind(), checkfirst=True)
