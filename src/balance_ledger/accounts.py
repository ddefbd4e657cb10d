from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .exceptions import AccountNotFound, InsufficientFunds
from .models import Account


class AccountStore:
    """
    Balance reads and writes against the accounts table.

    Mutating methods expect a session with an open unit of work; the caller
    owns commit and rollback.
    """

    def exists(self, db: Session, account_id: int) -> bool:
        found = db.scalar(select(Account.id).where(Account.id == account_id))
        if found is None:
            raise AccountNotFound()
        return True

    def locked_balance(self, db: Session, account_id: int) -> int:
        """
        Read the balance with SELECT ... FOR UPDATE.

        Concurrent callers locking the same account block here until this
        unit of work commits or rolls back.
        """
        balance = db.scalar(
            select(Account.balance).where(Account.id == account_id).with_for_update()
        )
        if balance is None:
            raise AccountNotFound()
        return balance

    def increase(self, db: Session, account_id: int, amount_minor: int) -> None:
        result = db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + amount_minor)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AccountNotFound()

    def decrease(self, db: Session, account_id: int, amount_minor: int) -> None:
        # Check and subtract in one statement; no writer can slip in between.
        result = db.execute(
            update(Account)
            .where(Account.id == account_id, Account.balance >= amount_minor)
            .values(balance=Account.balance - amount_minor)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InsufficientFunds()

    def balance(self, db: Session, account_id: int) -> int:
        balance = db.scalar(select(Account.balance).where(Account.id == account_id))
        if balance is None:
            raise AccountNotFound()
        return balance
