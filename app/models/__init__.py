from app.models.audit import AuditEvent  # noqa: F401
from app.models.records import (  # noqa: F401
    Area,
    DerivationLedgerEntry,
    Document,
    DocumentAction,
    DocumentOrigin,
    DocumentPriority,
    DocumentStatus,
    LedgerEntryImmutableError,
    Notification,
    Principal,
)
