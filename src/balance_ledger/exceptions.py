"""
Ledger exceptions.

Every error the ledger raises derives from LedgerError so the HTTP layer can
map outcomes by class without inspecting messages.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    default_message = "Ledger error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


class InvalidRequest(LedgerError):
    """Malformed adjustment request, rejected before any storage access."""

    default_message = "Invalid request"


class InvalidAmount(InvalidRequest):
    """Amount is not a positive decimal with at most two fractional digits."""

    default_message = "Invalid amount"


class AccountNotFound(LedgerError):
    default_message = "Account not found"


class InsufficientFunds(LedgerError):
    """Decrease would take the balance below zero."""

    default_message = "Insufficient funds"


class DuplicateTransaction(LedgerError):
    """
    The transaction id was already applied.

    The effect of the original request is durable, so callers may treat this
    as a success-equivalent outcome.
    """

    default_message = "Duplicate transaction"


class StorageFailure(LedgerError):
    """Connection loss, timeout or other database failure. Safe to retry."""

    default_message = "Storage failure"
