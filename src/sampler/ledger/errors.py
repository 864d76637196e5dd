"""Ledger error taxonomy.

Caller errors (invalid input, duplicate accrual, unknown profile) are never
retried automatically. ``PersistenceError`` is the only retryable error; when
``partial`` is set the accrual record exists but the totals update did not
land, so a retry will be rejected by the duplicate check and the account has
to be repaired by an operator.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all errors surfaced by the gamification ledger."""

    code = "ledger_error"
    status_code = 400
    retryable = False
    default_message = "Ledger operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidInputError(LedgerError):
    code = "invalid_input"
    status_code = 400
    default_message = "Invalid accrual input"


class AlreadyAccruedError(LedgerError):
    """The user already has a record of this kind for the event. Hard reject."""

    code = "already_accrued"
    status_code = 409
    default_message = "Points were already awarded for this event"


class DuplicateAccrualError(LedgerError):
    """Raised by a store when a conditional create hits an existing record."""

    code = "duplicate_accrual"
    status_code = 409
    default_message = "An accrual record already exists for this user and event"


class ProfileNotFoundError(LedgerError):
    code = "profile_not_found"
    status_code = 404
    default_message = "User profile not found"


class NotificationNotFoundError(LedgerError):
    code = "notification_not_found"
    status_code = 404
    default_message = "Notification not found"


class PersistenceError(LedgerError):
    """Transient store failure."""

    code = "persistence_error"
    status_code = 503
    retryable = True
    default_message = "Storage is temporarily unavailable"

    def __init__(self, message: str | None = None, *, partial: bool = False) -> None:
        super().__init__(message)
        self.partial = partial
        if partial:
            # The record exists, so retrying would only hit the duplicate check.
            self.retryable = False
