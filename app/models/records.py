import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DocumentStatus(enum.Enum):
    received = "received"
    pending_derivation = "pending_derivation"
    in_process = "in_process"
    derived = "derived"
    completed = "completed"
    archived = "archived"
    rejected = "rejected"


class DocumentAction(enum.Enum):
    receive = "receive"
    derive_request = "derive_request"
    confirm_derivation = "confirm_derivation"
    complete = "complete"
    reject = "reject"
    archive = "archive"


class DocumentPriority(enum.Enum):
    high = "high"
    normal = "normal"
    low = "low"


class DocumentOrigin(enum.Enum):
    external = "external"
    internal = "internal"


# ---------------------------------------------------------------------------
# Organization: Areas
# ---------------------------------------------------------------------------


class Area(Base):
    __tablename__ = "areas"
    __table_args__ = (
        UniqueConstraint("code", name="uq_areas_code"),
        UniqueConstraint("name", name="uq_areas_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(40), nullable=False)
    area_type: Mapped[str | None] = mapped_column(String(80))
    is_reception: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    principals = relationship("Principal", back_populates="area")


# ---------------------------------------------------------------------------
# Organization: Principals
# ---------------------------------------------------------------------------


class Principal(Base):
    __tablename__ = "principals"
    __table_args__ = (
        UniqueConstraint("email", name="uq_principals_email"),
        UniqueConstraint("api_key_hash", name="uq_principals_api_key_hash"),
        Index("ix_principals_area_id", "area_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    area_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("areas.id"), nullable=False
    )
    permission_mask: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    api_key_hash: Mapped[str | None] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    area = relationship("Area", back_populates="principals")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("code", name="uq_documents_code"),
        Index("ix_documents_status", "status"),
        Index("ix_documents_current_area_id", "current_area_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(String(80), nullable=False)
    document_type: Mapped[str] = mapped_column(String(120), nullable=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[str | None] = mapped_column(String(255))
    folios: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    priority: Mapped[DocumentPriority] = mapped_column(
        Enum(DocumentPriority), default=DocumentPriority.normal
    )
    origin: Mapped[DocumentOrigin] = mapped_column(
        Enum(DocumentOrigin), default=DocumentOrigin.external
    )
    observations: Mapped[str | None] = mapped_column(Text)

    # Written only by the derivation engine, together with a ledger entry
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), default=DocumentStatus.received
    )
    current_area_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("areas.id"), nullable=False
    )
    last_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    received_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("principals.id"), nullable=False
    )
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    current_area = relationship("Area", foreign_keys=[current_area_id])
    receiver = relationship("Principal", foreign_keys=[received_by])
    ledger = relationship(
        "DerivationLedgerEntry",
        back_populates="document",
        order_by="DerivationLedgerEntry.sequence",
    )


# ---------------------------------------------------------------------------
# Derivation ledger (append-only, no updated_at)
# ---------------------------------------------------------------------------


class DerivationLedgerEntry(Base):
    __tablename__ = "derivation_ledger"
    __table_args__ = (
        UniqueConstraint(
            "document_id", "sequence", name="uq_derivation_ledger_doc_sequence"
        ),
        Index("ix_derivation_ledger_document_id", "document_id"),
        Index("ix_derivation_ledger_destination_area_id", "destination_area_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id"), nullable=False
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[DocumentAction] = mapped_column(
        Enum(DocumentAction), nullable=False
    )
    from_status: Mapped[DocumentStatus | None] = mapped_column(
        Enum(DocumentStatus)
    )
    resulting_status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), nullable=False
    )
    source_area_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("areas.id")
    )
    destination_area_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("areas.id"), nullable=False
    )
    principal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("principals.id"), nullable=False
    )
    note: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    document = relationship("Document", back_populates="ledger")
    source_area = relationship("Area", foreign_keys=[source_area_id])
    destination_area = relationship("Area", foreign_keys=[destination_area_id])
    principal = relationship("Principal", foreign_keys=[principal_id])


class LedgerEntryImmutableError(Exception):
    pass


@event.listens_for(DerivationLedgerEntry, "before_update")
def _reject_ledger_update(mapper, connection, target) -> None:
    raise LedgerEntryImmutableError(
        f"Ledger entry {target.id} is immutable; append a correcting entry instead"
    )


@event.listens_for(DerivationLedgerEntry, "before_delete")
def _reject_ledger_delete(mapper, connection, target) -> None:
    raise LedgerEntryImmutableError(f"Ledger entry {target.id} cannot be deleted")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_principal_id", "principal_id"),
        Index("ix_notifications_is_read", "is_read"),
        Index("ix_notifications_event_type", "event_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    principal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("principals.id"), nullable=False
    )
    area_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("areas.id"), nullable=False
    )
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id")
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    principal = relationship("Principal", foreign_keys=[principal_id])
