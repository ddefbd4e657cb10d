from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .exceptions import DuplicateTransaction
from .models import TransactionRecord

PG_UNIQUE_VIOLATION = "23505"
SQLITE_UNIQUE_VIOLATIONS = {"SQLITE_CONSTRAINT_PRIMARYKEY", "SQLITE_CONSTRAINT_UNIQUE"}


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "sqlstate", None) == PG_UNIQUE_VIOLATION:
        return True
    return getattr(orig, "sqlite_errorname", None) in SQLITE_UNIQUE_VIOLATIONS


class IdempotencyStore:
    def record_transaction(self, db: Session, transaction_id: str, account_id: int) -> None:
        """
        Insert the transaction record inside the caller's unit of work.

        Duplicates are detected by the primary key, not by a pre-check, so two
        racing inserts cannot both succeed.
        """
        db.add(TransactionRecord(transaction_id=transaction_id, account_id=account_id))
        try:
            db.flush()
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateTransaction() from exc
            raise
