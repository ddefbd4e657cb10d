from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .accounts import AccountStore
from .exceptions import InsufficientFunds, InvalidAmount, InvalidRequest, StorageFailure
from .transactions import IdempotencyStore


class AdjustmentKind(str, Enum):
    INCREASE = "win"
    DECREASE = "lose"

    @classmethod
    def from_state(cls, state: str) -> "AdjustmentKind":
        try:
            return cls(str(state).strip().lower())
        except ValueError:
            raise InvalidRequest("Invalid state.") from None


class SourceType(str, Enum):
    GAME = "game"
    SERVER = "server"
    PAYMENT = "payment"

    @classmethod
    def parse(cls, raw: str | None) -> "SourceType":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            raise InvalidRequest("Invalid Source-Type header.") from None


@dataclass(frozen=True)
class Adjustment:
    account_id: int
    kind: AdjustmentKind
    amount_minor: int
    transaction_id: str
    source: SourceType = SourceType.SERVER


def validate_adjustment(adjustment: Adjustment) -> None:
    if (
        not isinstance(adjustment.account_id, int)
        or isinstance(adjustment.account_id, bool)
        or adjustment.account_id <= 0
    ):
        raise InvalidRequest("Account id must be a positive integer.")
    if not isinstance(adjustment.kind, AdjustmentKind):
        raise InvalidRequest("Invalid state.")
    if not isinstance(adjustment.source, SourceType):
        raise InvalidRequest("Invalid Source-Type header.")
    if (
        not isinstance(adjustment.amount_minor, int)
        or isinstance(adjustment.amount_minor, bool)
        or adjustment.amount_minor <= 0
    ):
        raise InvalidAmount("Amount must be positive.")
    if not isinstance(adjustment.transaction_id, str) or not adjustment.transaction_id:
        raise InvalidRequest("transactionId required.")


class LedgerService:
    """
    Applies balance adjustments exactly once.

    Each adjustment runs in its own session and unit of work:

    1) ensure the account exists,
    2) lock the account row (FOR UPDATE),
    3) increase, or pre-check and decrease the balance,
    4) insert the transaction record (duplicate id -> DuplicateTransaction),
    5) commit.

    Any exception leaving the unit rolls every step back, including the
    balance change made before a duplicate id is detected.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        accounts: AccountStore | None = None,
        transactions: IdempotencyStore | None = None,
    ):
        self._session_factory = session_factory
        self.accounts = accounts or AccountStore()
        self.transactions = transactions or IdempotencyStore()

    def apply_adjustment(self, adjustment: Adjustment) -> None:
        validate_adjustment(adjustment)

        try:
            with self._session_factory() as db:
                with db.begin():
                    self.accounts.exists(db, adjustment.account_id)
                    balance = self.accounts.locked_balance(db, adjustment.account_id)

                    if adjustment.kind is AdjustmentKind.INCREASE:
                        self.accounts.increase(
                            db, adjustment.account_id, adjustment.amount_minor
                        )
                    else:
                        if balance < adjustment.amount_minor:
                            raise InsufficientFunds()
                        self.accounts.decrease(
                            db, adjustment.account_id, adjustment.amount_minor
                        )

                    self.transactions.record_transaction(
                        db, adjustment.transaction_id, adjustment.account_id
                    )
        except SQLAlchemyError as exc:
            raise StorageFailure() from exc

    def get_balance(self, account_id: int) -> int:
        """Unlocked read for status queries; never used to decide a mutation."""
        try:
            with self._session_factory() as db:
                return self.accounts.balance(db, account_id)
        except SQLAlchemyError as exc:
            raise StorageFailure() from exc
