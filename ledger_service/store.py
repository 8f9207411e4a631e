"""
Ledger store: transactional money movement between accounts.

transfer_tx is the only operation here with a real concurrency hazard. Two
transfers over the same pair of accounts in opposite directions would take the
two balance row locks in opposite order and deadlock; add_money is therefore
always called with the smaller account id first, whichever side of the transfer
it is on.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, TypeVar
import logging

from sqlalchemy.orm import sessionmaker

from ledger_common.tracing import TraceSpan
from ledger_service.db import WRITE_TX_OPTIONS
from ledger_service.models import Account, Entry, Transfer
from ledger_service.queries import Queries

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionRollbackError(Exception):
    """A unit of work failed and rolling it back failed too."""

    def __init__(self, tx_error: BaseException, rollback_error: BaseException):
        self.tx_error = tx_error
        self.rollback_error = rollback_error
        super().__init__(f"tx err: {tx_error}, rb err: {rollback_error}")


@dataclass(frozen=True)
class TransferTxParams:
    from_account_id: int
    to_account_id: int
    amount: int


@dataclass
class TransferTxResult:
    transfer: Transfer
    from_account: Account
    to_account: Account
    from_entry: Entry
    to_entry: Entry


class QueryStore(ABC):
    """Read-only lookups, each in its own short transaction."""

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]: ...

    @abstractmethod
    def list_accounts(self, limit: int, offset: int) -> List[Account]: ...

    @abstractmethod
    def get_entry(self, entry_id: int) -> Optional[Entry]: ...

    @abstractmethod
    def list_entries(self, account_id: int, limit: int, offset: int) -> List[Entry]: ...

    @abstractmethod
    def get_transfer(self, transfer_id: int) -> Optional[Transfer]: ...

    @abstractmethod
    def list_transfers(self, from_account_id: int, to_account_id: int, limit: int, offset: int) -> List[Transfer]: ...


class TransactionStore(ABC):
    """Writes that must commit as a unit."""

    @abstractmethod
    def create_account(self, owner_name: str, currency: str) -> Account: ...

    @abstractmethod
    def transfer_tx(self, params: TransferTxParams, span: Optional[TraceSpan] = None) -> TransferTxResult: ...


def _trace(span: Optional[TraceSpan], message: str) -> None:
    tx_name = span.span_id if span is not None else "-"
    logger.debug("tx %s %s", tx_name, message)
    if span is not None:
        span.step(message)


def add_money(
    q: Queries,
    account_id1: int,
    amount1: int,
    account_id2: int,
    amount2: int,
) -> Tuple[Account, Account]:
    """Apply two balance deltas in the order given and return both updated accounts.

    Callers pass the account with the smaller id first so that every transaction
    touching this pair locks the two rows in the same order.
    """
    account1 = q.add_account_balance(account_id1, amount1)
    account2 = q.add_account_balance(account_id2, amount2)
    return account1, account2


class SQLStore(QueryStore, TransactionStore):
    """Both store capabilities over one SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def exec_tx(self, fn: Callable[[Queries], T]) -> T:
        """Run fn inside a transaction; commit if it returns, roll back if it raises."""
        session = self.session_factory()
        try:
            session.begin()
            session.connection(execution_options=WRITE_TX_OPTIONS)
            try:
                result = fn(Queries(session))
            except Exception as tx_error:
                try:
                    session.rollback()
                except Exception as rb_error:
                    raise TransactionRollbackError(tx_error, rb_error) from tx_error
                raise
            session.commit()
            return result
        finally:
            session.close()

    def _read(self, fn: Callable[[Queries], T]) -> T:
        with self.session_factory() as session:
            return fn(Queries(session))

    # QueryStore

    def get_account(self, account_id: int) -> Optional[Account]:
        return self._read(lambda q: q.get_account(account_id))

    def list_accounts(self, limit: int, offset: int) -> List[Account]:
        return self._read(lambda q: q.list_accounts(limit, offset))

    def get_entry(self, entry_id: int) -> Optional[Entry]:
        return self._read(lambda q: q.get_entry(entry_id))

    def list_entries(self, account_id: int, limit: int, offset: int) -> List[Entry]:
        return self._read(lambda q: q.list_entries(account_id, limit, offset))

    def get_transfer(self, transfer_id: int) -> Optional[Transfer]:
        return self._read(lambda q: q.get_transfer(transfer_id))

    def list_transfers(self, from_account_id: int, to_account_id: int, limit: int, offset: int) -> List[Transfer]:
        return self._read(lambda q: q.list_transfers(from_account_id, to_account_id, limit, offset))

    # TransactionStore

    def create_account(self, owner_name: str, currency: str) -> Account:
        return self.exec_tx(lambda q: q.create_account(owner_name=owner_name, currency=currency, balance=0))

    def transfer_tx(self, params: TransferTxParams, span: Optional[TraceSpan] = None) -> TransferTxResult:
        """Record a transfer, its two entries and both balance changes atomically.

        Amount positivity, account existence and currency compatibility are the
        caller's responsibility. There is no overdraft check and no
        deduplication: repeating a call moves the money again.
        """

        def move_money(q: Queries) -> TransferTxResult:
            _trace(span, "create transfer")
            transfer = q.create_transfer(params.from_account_id, params.to_account_id, params.amount)

            _trace(span, "create entry 1")
            from_entry = q.create_entry(params.from_account_id, -params.amount)

            _trace(span, "create entry 2")
            to_entry = q.create_entry(params.to_account_id, params.amount)

            if params.from_account_id < params.to_account_id:
                _trace(span, "add account 1")
                from_account, to_account = add_money(
                    q, params.from_account_id, -params.amount, params.to_account_id, params.amount
                )
            else:
                _trace(span, "add account 2")
                to_account, from_account = add_money(
                    q, params.to_account_id, params.amount, params.from_account_id, -params.amount
                )

            return TransferTxResult(
                transfer=transfer,
                from_account=from_account,
                to_account=to_account,
                from_entry=from_entry,
                to_entry=to_entry,
            )

        return self.exec_tx(move_money)
