"""Typed failures of the derivation core.

Every error carries a stable ``code`` for machine checks and the HTTP status
the API layer answers with. Only ``ConcurrencyConflict`` is retryable.
"""


class DerivationError(Exception):
    code = "derivation_error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(DerivationError):
    code = "not_found"
    status_code = 404


class Unauthorized(DerivationError):
    code = "unauthorized"
    status_code = 403


class InvalidDestination(DerivationError):
    code = "invalid_destination"
    status_code = 422


class InvalidTransition(DerivationError):
    code = "invalid_transition"
    status_code = 409


class ConcurrencyConflict(DerivationError):
    code = "concurrency_conflict"
    status_code = 409


class DerivationTimeout(DerivationError):
    code = "timeout"
    status_code = 408


class DuplicateDocumentCode(DerivationError):
    code = "duplicate_code"
    status_code = 409


class LedgerIntegrityError(DerivationError):
    code = "ledger_integrity"
    status_code = 500


class SideEffectFailure(DerivationError):
    """Raised only to be logged; a committed transition is never undone."""

    code = "side_effect_failure"
    status_code = 500

    def __init__(self, port: str, cause: Exception, details: dict | None = None):
        super().__init__(f"{port} side effect failed: {cause}", details)
        self.port = port
        self.cause = cause


def is_retryable(error: Exception) -> bool:
    return isinstance(error, ConcurrencyConflict)
