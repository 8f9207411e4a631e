import pytest
from fastapi.testclient import TestClient

from ledger_service.api import create_app
from ledger_service.store import TransferTxParams


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


def transfer_body(from_account, to_account, amount=10, currency=None):
    return {
        "from_account_id": from_account.id,
        "to_account_id": to_account.id,
        "amount": amount,
        "currency": currency or from_account.currency,
    }


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "service": "ledger"}
    assert response.headers["X-Trace-ID"]


def test_trace_id_is_propagated(client):
    response = client.get("/health", headers={"X-Trace-ID": "abc123"})

    assert response.headers["X-Trace-ID"] == "abc123"


def test_create_account(client):
    response = client.post("/accounts", json={"owner_name": "alice", "currency": "USD"})

    assert response.status_code == 200
    body = response.json()
    assert body["owner_name"] == "alice"
    assert body["currency"] == "USD"
    assert body["balance"] == 0
    assert body["id"] >= 1


def test_create_account_rejects_unknown_currency(client):
    response = client.post("/accounts", json={"owner_name": "alice", "currency": "GBP"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "currency" in error["field"]


def test_get_account(client, create_random_account):
    account = create_random_account(balance=25)

    response = client.get(f"/accounts/{account.id}")

    assert response.status_code == 200
    assert response.json()["balance"] == 25


def test_get_missing_account(client):
    response = client.get("/accounts/999999")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "ACCOUNT_NOT_FOUND"


def test_get_account_rejects_bad_id(client):
    assert client.get("/accounts/0").status_code == 400


@pytest.mark.parametrize("query", [
    {"page_id": 0, "page_size": 5},
    {"page_id": 1, "page_size": 4},
    {"page_id": 1, "page_size": 11},
    {"page_size": 5},
])
def test_list_accounts_rejects_bad_pages(client, query):
    response = client.get("/accounts", params=query)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_list_accounts(client, store):
    for i in range(6):
        store.create_account(owner_name=f"owner{i}", currency="USD")

    all_ids = [a.id for a in store.list_accounts(limit=1000, offset=0)]

    response = client.get("/accounts", params={"page_id": 2, "page_size": 5})

    assert response.status_code == 200
    assert [a["id"] for a in response.json()] == all_ids[5:10]


def test_create_transfer(client, store, create_random_account):
    account1 = create_random_account(balance=100, currency="USD")
    account2 = create_random_account(balance=50, currency="USD")

    response = client.post("/transfers", json=transfer_body(account1, account2, amount=10))

    assert response.status_code == 200
    body = response.json()
    assert body["transfer"]["amount"] == 10
    assert body["from_account"]["id"] == account1.id
    assert body["from_account"]["balance"] == 90
    assert body["to_account"]["balance"] == 60
    assert body["from_entry"]["amount"] == -10
    assert body["to_entry"]["amount"] == 10
    assert store.get_account(account1.id).balance == 90


def test_create_transfer_currency_mismatch(client, store, create_random_account):
    account1 = create_random_account(balance=100, currency="USD")
    account2 = create_random_account(balance=50, currency="EUR")

    response = client.post("/transfers", json=transfer_body(account1, account2, currency="USD"))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "CURRENCY_MISMATCH"
    assert store.get_account(account1.id).balance == 100


def test_create_transfer_unknown_account(client, create_random_account):
    account1 = create_random_account(balance=100, currency="USD")
    body = transfer_body(account1, account1)
    body["to_account_id"] = account1.id + 10_000

    response = client.post("/transfers", json=body)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ACCOUNT_NOT_FOUND"


@pytest.mark.parametrize("field, value", [("amount", 0), ("amount", -5), ("from_account_id", 0)])
def test_create_transfer_rejects_invalid_body(client, create_random_account, field, value):
    account1 = create_random_account(currency="USD")
    account2 = create_random_account(currency="USD")
    body = transfer_body(account1, account2)
    body[field] = value

    response = client.post("/transfers", json=body)

    assert response.status_code == 400
    assert response.json()["error"]["field"].endswith(field)


def test_create_transfer_storage_failure(client, store, create_random_account, monkeypatch):
    from sqlalchemy.exc import OperationalError

    account1 = create_random_account(balance=100, currency="EUR")
    account2 = create_random_account(balance=100, currency="EUR")

    def broken(params, span=None):
        raise OperationalError("UPDATE accounts", {}, Exception("lock wait timeout"))

    monkeypatch.setattr(store, "transfer_tx", broken)

    response = client.post("/transfers", json=transfer_body(account1, account2))

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "TRANSFER_FAILED"


def test_get_and_list_transfers_and_entries(client, store, create_random_account):
    account1 = create_random_account(balance=100, currency="USD")
    account2 = create_random_account(balance=100, currency="USD")
    result = store.transfer_tx(TransferTxParams(account1.id, account2.id, 5))

    transfer = client.get(f"/transfers/{result.transfer.id}")
    assert transfer.status_code == 200
    assert transfer.json()["from_account_id"] == account1.id

    transfers = client.get("/transfers", params={
        "from_account_id": account1.id, "to_account_id": account2.id, "page_id": 1, "page_size": 5,
    })
    assert [t["id"] for t in transfers.json()] == [result.transfer.id]

    entry = client.get(f"/entries/{result.to_entry.id}")
    assert entry.status_code == 200
    assert entry.json()["amount"] == 5

    entries = client.get("/entries", params={"account_id": account2.id, "page_id": 1, "page_size": 5})
    assert [e["id"] for e in entries.json()] == [result.to_entry.id]


def test_missing_entry_and_transfer(client):
    assert client.get("/entries/999999").json()["error"]["code"] == "ENTRY_NOT_FOUND"
    assert client.get("/transfers/999999").json()["error"]["code"] == "TRANSFER_NOT_FOUND"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
