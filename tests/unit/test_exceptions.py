"""
Unit tests for ledger exceptions.
"""

import pytest

from balance_ledger.exceptions import (
    AccountNotFound,
    DuplicateTransaction,
    InsufficientFunds,
    InvalidAmount,
    InvalidRequest,
    LedgerError,
    StorageFailure,
)


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    def test_ledger_error_is_base(self):
        """LedgerError should be the base class."""
        for exc_class in (
            InvalidRequest,
            InvalidAmount,
            AccountNotFound,
            InsufficientFunds,
            DuplicateTransaction,
            StorageFailure,
        ):
            assert issubclass(exc_class, LedgerError)

    def test_invalid_amount_is_invalid_request(self):
        """Amount errors are reported as malformed requests."""
        assert issubclass(InvalidAmount, InvalidRequest)

    def test_outcomes_are_distinguishable(self):
        """Conflict outcomes must not be confused with one another."""
        assert not issubclass(DuplicateTransaction, InsufficientFunds)
        assert not issubclass(InsufficientFunds, DuplicateTransaction)
        assert not issubclass(AccountNotFound, InvalidRequest)


class TestExceptionMessages:
    """Tests for exception messages."""

    def test_default_message(self):
        assert str(InsufficientFunds()) == "Insufficient funds"
        assert str(DuplicateTransaction()) == "Duplicate transaction"
        assert str(AccountNotFound()) == "Account not found"

    def test_custom_message_preserved(self):
        exc = InvalidAmount("Amount supports up to 2 decimals.")
        assert "2 decimals" in str(exc)

    def test_catchable_as_ledger_error(self):
        with pytest.raises(LedgerError):
            raise StorageFailure()
