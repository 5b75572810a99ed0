import enum

from app.models.records import DocumentAction


class EventType(enum.Enum):
    document_received = "document.received"
    document_derivation_requested = "document.derivation_requested"
    document_derivation_confirmed = "document.derivation_confirmed"
    document_completed = "document.completed"
    document_rejected = "document.rejected"
    document_archived = "document.archived"
    document_updated = "document.updated"

    access_denied = "access.denied"


_ACTION_EVENTS = {
    DocumentAction.receive: EventType.document_received,
    DocumentAction.derive_request: EventType.document_derivation_requested,
    DocumentAction.confirm_derivation: EventType.document_derivation_confirmed,
    DocumentAction.complete: EventType.document_completed,
    DocumentAction.reject: EventType.document_rejected,
    DocumentAction.archive: EventType.document_archived,
}


def event_for_action(action: DocumentAction) -> EventType:
    return _ACTION_EVENTS[action]
