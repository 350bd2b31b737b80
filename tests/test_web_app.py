"""Tests for the PortfolioLedger FastAPI application."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from portfolioledger.services.store import LedgerStore
from portfolioledger.web import create_app, dependencies
from portfolioledger.web.dependencies import get_store


@pytest.fixture
def store() -> LedgerStore:
    return LedgerStore()


@pytest.fixture
def client(store) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


def _post_transaction(client: TestClient, **overrides) -> dict:
    payload = {
        "kind": "equity",
        "symbol": "AAPL",
        "action": "buy",
        "quantity": "100",
        "price": "10",
        "timestamp": "2025-01-02T10:00:00",
    }
    payload.update(overrides)
    response = client.post("/api/transactions", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _sell_put(client: TestClient) -> dict:
    return _post_transaction(
        client,
        kind="option",
        symbol=None,
        underlying_symbol="aapl",
        expiry="2025-03-21",
        strike="200",
        call_put="put",
        action="sell_to_open",
        quantity="1",
        price="1.5",
        timestamp="2025-01-03T10:00:00",
    )


def test_health_endpoint(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_default_store_dependency_uses_sample_state(fresh_db):
    app = create_app()
    with TestClient(app) as client:
        response = client.get("/api/ledger")

    assert response.status_code == 200
    data = response.json()
    assert [item["symbol"] for item in data["instruments"]] == ["AAPL"]
    assert data["ledger"]["positions"] == []
    assert dependencies.get_store() is dependencies.get_store()


def test_create_equity_transaction_updates_positions(client, store):
    created = _post_transaction(client, notes="first buy", tags=["core"])

    assert created["instrument"]["symbol"] == "AAPL"
    assert created["transaction"]["net_amount"] == "1000"
    assert created["transaction"]["tags"] == ["core"]
    assert len(store.instruments) == 1

    again = _post_transaction(client, action="sell", quantity="40", price="12")
    assert again["instrument"]["id"] == created["instrument"]["id"]

    positions = client.get("/api/positions").json()["positions"]
    assert [(pos["display_name"], pos["quantity"]) for pos in positions] == [("AAPL", "60")]

    summary = client.get("/api/pnl").json()["summary"]
    assert summary["equity_realized_pl"] == "80"


def test_create_transaction_reuses_instrument_by_id(client):
    created = _post_transaction(client)

    response = client.post(
        "/api/transactions",
        json={
            "instrument_id": created["instrument"]["id"],
            "action": "buy",
            "quantity": "5",
            "price": "11",
        },
    )

    assert response.status_code == 201
    assert response.json()["transaction"]["instrument_id"] == created["instrument"]["id"]


def test_create_transaction_validation_errors(client, store):
    unknown = client.post(
        "/api/transactions",
        json={"instrument_id": str(uuid4()), "action": "buy", "quantity": "1", "price": "1"},
    )
    assert unknown.status_code == 404

    missing_symbol = client.post(
        "/api/transactions", json={"action": "buy", "quantity": "1", "price": "1"}
    )
    assert missing_symbol.status_code == 400

    wrong_action = client.post(
        "/api/transactions",
        json={"symbol": "AAPL", "action": "sell_to_open", "quantity": "1", "price": "1"},
    )
    assert wrong_action.status_code == 400

    zero_quantity = client.post(
        "/api/transactions",
        json={"symbol": "AAPL", "action": "buy", "quantity": "0", "price": "1"},
    )
    assert zero_quantity.status_code == 422

    bad_tag = client.post(
        "/api/transactions",
        json={"symbol": "AAPL", "action": "buy", "quantity": "1", "price": "1", "tags": ["a;b"]},
    )
    assert bad_tag.status_code == 400

    assert store.transactions == ()
    assert dict(store.instruments) == {}


def test_option_premium_is_realized_on_open(client):
    created = _sell_put(client)

    assert created["instrument"]["underlying_symbol"] == "AAPL"
    pnl = client.get("/api/pnl").json()
    assert pnl["summary"]["option_realized_pl"] == "150"
    assert pnl["realized_pls"][0]["realized_pl"] == "150"

    positions = client.get("/api/positions").json()["positions"]
    assert positions[0]["quantity"] == "-1"


def test_underlier_endpoint(client):
    _post_transaction(client)
    _sell_put(client)

    data = client.get("/api/underliers/aapl").json()

    assert data["symbol"] == "AAPL"
    assert data["summary"]["open_option_contracts"] == 1
    assert data["summary"]["equity_position"]["quantity"] == "100"
    assert data["realized_total"] == "150"
    assert len(data["transactions"]) == 2

    assert client.get("/api/underliers/MSFT").status_code == 404


def test_transaction_search_endpoint(client):
    _post_transaction(client, notes="Earnings play")
    _post_transaction(client, tags=["hedge"], timestamp="2025-01-04T10:00:00")

    rows = client.get("/api/transactions", params={"search": "earnings"}).json()["transactions"]
    assert [row["notes"] for row in rows] == ["Earnings play"]

    everything = client.get("/api/transactions").json()["transactions"]
    assert [row["tags"] for row in everything] == [["hedge"], []]


def test_delete_transaction(client, store):
    created = _post_transaction(client)
    txn_id = created["transaction"]["id"]

    assert client.delete("/api/transactions/not-a-uuid").status_code == 404
    assert client.delete(f"/api/transactions/{uuid4()}").status_code == 404

    response = client.delete(f"/api/transactions/{txn_id}")

    assert response.status_code == 200
    assert response.json()["deleted"]["id"] == txn_id
    assert store.transactions == ()
    assert client.get("/api/positions").json()["positions"] == []


def test_assign_endpoint(client, store):
    opening = _sell_put(client)
    txn_id = opening["transaction"]["id"]

    response = client.post(
        f"/api/transactions/{txn_id}/assign",
        json={"assignment_date": "2025-03-21T16:00:00"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["option_close"]["action"] == "buy_to_close"
    assert data["option_close"]["consumed_by_assignment"] is True
    assert data["equity_trade"]["action"] == "buy"
    assert data["equity_trade"]["quantity"] == "100"
    assert data["equity_trade"]["price"] == "199.985"
    assert data["option_close"]["link_group_id"] == data["equity_trade"]["link_group_id"]

    positions = client.get("/api/positions").json()["positions"]
    assert [(pos["instrument_type"], pos["quantity"]) for pos in positions] == [("equity", "100")]
    assert len(store.transactions) == 3


def test_assign_endpoint_errors(client):
    equity_trade = _post_transaction(client)

    not_option = client.post(f"/api/transactions/{equity_trade['transaction']['id']}/assign")
    assert not_option.status_code == 400

    missing = client.post(f"/api/transactions/{uuid4()}/assign")
    assert missing.status_code == 404


def test_default_timestamp_sorts_after_earlier_offset_timestamp(client):
    an_hour_ago = datetime.now(timezone(timedelta(hours=-5))) - timedelta(hours=1)
    _post_transaction(client, timestamp=an_hour_ago.isoformat())

    response = client.post(
        "/api/transactions",
        json={"symbol": "AAPL", "action": "sell", "quantity": "100", "price": "12"},
    )

    assert response.status_code == 201
    pnl = client.get("/api/pnl").json()
    assert len(pnl["realized_pls"]) == 1
    assert pnl["summary"]["equity_realized_pl"] == "200"
    assert client.get("/api/positions").json()["positions"] == []
