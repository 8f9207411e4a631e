import os
import random
import string

import pytest

from ledger_common.schemas import SUPPORTED_CURRENCIES
from ledger_service.db import make_engine, make_session_factory
from ledger_service.models import Base
from ledger_service.store import SQLStore


def random_owner() -> str:
    return "".join(random.choices(string.ascii_lowercase, k=6))


def random_money() -> int:
    return random.randint(0, 1000)


@pytest.fixture
def engine(tmp_path):
    # Point LEDGER_TEST_DATABASE_URL at MySQL/PostgreSQL to exercise real row locks
    url = os.getenv("LEDGER_TEST_DATABASE_URL") or f"sqlite:///{tmp_path / 'ledger.db'}"
    engine = make_engine(url)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return SQLStore(session_factory)


@pytest.fixture
def create_random_account(store):
    """Create an account with a random owner and a random starting balance."""

    def _create(balance: int = None, currency: str = None):
        account = store.create_account(owner_name=random_owner(), currency=currency or random.choice(SUPPORTED_CURRENCIES))
        start = random_money() if balance is None else balance
        if start:
            account = store.exec_tx(lambda q: q.add_account_balance(account.id, start))
        return account

    return _create
