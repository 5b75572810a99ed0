from app.models.records import DocumentAction, DocumentStatus
from app.services.derivation_errors import InvalidTransition

INITIAL_STATUS = DocumentStatus.received

# Sole source of truth for legal (status, action) pairs.
TRANSITIONS: dict[tuple[DocumentStatus, DocumentAction], DocumentStatus] = {
    (
        DocumentStatus.received,
        DocumentAction.derive_request,
    ): DocumentStatus.pending_derivation,
    (
        DocumentStatus.pending_derivation,
        DocumentAction.confirm_derivation,
    ): DocumentStatus.in_process,
    (
        DocumentStatus.in_process,
        DocumentAction.derive_request,
    ): DocumentStatus.pending_derivation,
    (DocumentStatus.in_process, DocumentAction.complete): DocumentStatus.completed,
    (DocumentStatus.in_process, DocumentAction.reject): DocumentStatus.rejected,
    (DocumentStatus.completed, DocumentAction.archive): DocumentStatus.archived,
    (DocumentStatus.rejected, DocumentAction.archive): DocumentStatus.archived,
}

TERMINAL_STATUSES = frozenset(
    {DocumentStatus.completed, DocumentStatus.rejected, DocumentStatus.archived}
)

# Metadata edits are allowed only while the document is with an area
EDITABLE_STATUSES = frozenset({DocumentStatus.received, DocumentStatus.in_process})


def next_status(status: DocumentStatus, action: DocumentAction) -> DocumentStatus:
    try:
        return TRANSITIONS[(status, action)]
    except KeyError:
        state = "closed" if is_terminal(status) else "open"
        raise InvalidTransition(
            f"Action '{action.value}' is not allowed while document is "
            f"'{status.value}' ({state})",
            details={
                "current_status": status.value,
                "action": action.value,
                "allowed_actions": [a.value for a in allowed_actions(status)],
            },
        ) from None


def allowed_actions(status: DocumentStatus) -> list[DocumentAction]:
    return [action for (src, action) in TRANSITIONS if src == status]


def is_terminal(status: DocumentStatus) -> bool:
    return status in TERMINAL_STATUSES
