"""
Single-row reads and writes against one SQLAlchemy session.

A Queries object never commits or rolls back; whoever owns the session decides
when its work becomes visible.
"""
from typing import List, Optional
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session
from ledger_service.models import Account, Entry, Transfer


class Queries:
    def __init__(self, session: Session):
        self.session = session

    def _insert(self, row):
        self.session.add(row)
        self.session.flush()
        return row

    # accounts

    def create_account(self, owner_name: str, currency: str, balance: int = 0) -> Account:
        return self._insert(Account(owner_name=owner_name, currency=currency, balance=balance))

    def get_account(self, account_id: int) -> Optional[Account]:
        return self.session.get(Account, account_id)

    def list_accounts(self, limit: int, offset: int) -> List[Account]:
        stmt = select(Account).order_by(Account.id).limit(limit).offset(offset)
        return list(self.session.scalars(stmt))

    def add_account_balance(self, account_id: int, amount: int) -> Account:
        """Atomically add amount to the balance and return the updated row.

        The UPDATE holds the row's write lock until the surrounding transaction
        ends, so the re-read below sees exactly this transaction's result. The
        returned row is detached from the session: a later add to the same
        account yields a new object and leaves this snapshot untouched.
        """
        self.session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + amount)
            .execution_options(synchronize_session=False)
        )
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        )
        account = self.session.scalars(stmt).one()
        self.session.expunge(account)
        return account

    # entries

    def create_entry(self, account_id: int, amount: int) -> Entry:
        return self._insert(Entry(account_id=account_id, amount=amount))

    def get_entry(self, entry_id: int) -> Optional[Entry]:
        return self.session.get(Entry, entry_id)

    def list_entries(self, account_id: int, limit: int, offset: int) -> List[Entry]:
        stmt = (
            select(Entry)
            .where(Entry.account_id == account_id)
            .order_by(Entry.id)
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(stmt))

    # transfers

    def create_transfer(self, from_account_id: int, to_account_id: int, amount: int) -> Transfer:
        return self._insert(Transfer(from_account_id=from_account_id, to_account_id=to_account_id, amount=amount))

    def get_transfer(self, transfer_id: int) -> Optional[Transfer]:
        return self.session.get(Transfer, transfer_id)

    def list_transfers(self, from_account_id: int, to_account_id: int, limit: int, offset: int) -> List[Transfer]:
        stmt = (
            select(Transfer)
            .where(or_(Transfer.from_account_id == from_account_id, Transfer.to_account_id == to_account_id))
            .order_by(Transfer.id)
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(stmt))
