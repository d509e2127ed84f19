"""
Integration tests for the Token Ledger API
Tests end-to-end workflows using FastAPI TestClient
"""

import logging
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from token_ledger.api import app
from token_ledger.api.dependencies import TokenSystem, set_token_system
from token_ledger.config import TokenLedgerConfig
from token_ledger.ledger import NULL_ACCOUNT
from token_ledger.safe_math import UINT256_MAX
from token_ledger.storage import InMemoryStorage


SUPPLY = 1_000_000

ALICE = {"X-Account": "alice"}
BOB = {"X-Account": "bob"}


@pytest.fixture
def client():
    """Create a test client backed by a fresh in-memory ledger"""
    test_config = TokenLedgerConfig(
        initial_supply=SUPPLY,
        issuer_account="alice",
        token_name="Test Token",
        token_symbol="TST",
        storage_backend="memory"
    )
    set_token_system(TokenSystem(config=test_config, storage=InMemoryStorage()))

    yield TestClient(app)

    set_token_system(None)


class TestHealthEndpoints:
    """Test basic health and root endpoints"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert "endpoints" in r.json()


class TestTokenEndpoints:
    """Test token metadata and balance queries"""

    def test_token_info(self, client):
        r = client.get("/token")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "Test Token"
        assert data["symbol"] == "TST"
        assert data["decimals"] == 0
        assert data["total_supply"] == str(SUPPLY)
        assert data["base_percent"] == 100

    def test_issuer_balance(self, client):
        r = client.get("/accounts/alice/balance")
        assert r.status_code == 200
        assert r.json() == {"account": "alice", "balance": str(SUPPLY)}

    def test_unknown_account_balance(self, client):
        r = client.get("/accounts/nobody/balance")
        assert r.json()["balance"] == "0"

    def test_tax_preview(self, client):
        r = client.get("/token/tax/1000")
        assert r.status_code == 200
        assert r.json() == {"value": "1000", "tax": "9", "net": "991"}

    def test_tax_preview_overflow(self, client):
        r = client.get(f"/token/tax/{UINT256_MAX}")
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "ArithmeticOverflow"


class TestTransferFlow:
    """End-to-end transfer tests"""

    def test_transfer(self, client):
        r = client.post("/transfers", json={"to": "bob", "value": "1000"}, headers=ALICE)
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is True
        assert data["tax"] == "9"
        assert data["net"] == "991"

        assert client.get("/accounts/bob/balance").json()["balance"] == "991"
        assert client.get("/token").json()["total_supply"] == str(SUPPLY - 9)

    def test_transfer_requires_account_header(self, client):
        r = client.post("/transfers", json={"to": "bob", "value": "1000"})
        assert r.status_code == 422

    def test_transfer_rejects_non_numeric_value(self, client):
        r = client.post("/transfers", json={"to": "bob", "value": "-5"}, headers=ALICE)
        assert r.status_code == 422

    def test_insufficient_balance(self, client):
        r = client.post("/transfers", json={"to": "alice", "value": "1"}, headers=BOB)
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InsufficientBalance"

    def test_null_recipient(self, client):
        r = client.post("/transfers", json={"to": NULL_ACCOUNT, "value": "1"}, headers=ALICE)
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InvalidRecipient"

    def test_batch_transfer(self, client):
        r = client.post("/transfers/batch", json={
            "recipients": ["bob", "carol"],
            "amounts": ["1000", "2000"]
        }, headers=ALICE)
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is True
        assert [entry["status"] for entry in data["results"]] == ["committed", "committed"]
        assert data["results"][1]["net"] == "1981"

    def test_batch_transfer_partial(self, client):
        client.post("/transfers", json={"to": "bob", "value": "1000"}, headers=ALICE)

        r = client.post("/transfers/batch", json={
            "recipients": ["carol", "dave", "erin"],
            "amounts": ["500", "600", "1"]
        }, headers=BOB)
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is False
        assert [entry["status"] for entry in data["results"]] == ["committed", "failed", "skipped"]
        assert data["results"][1]["error"] == "InsufficientBalance"

    def test_batch_length_mismatch(self, client):
        r = client.post("/transfers/batch", json={
            "recipients": ["bob", "carol"],
            "amounts": ["1"]
        }, headers=ALICE)
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "IndexMismatch"


class TestAllowanceFlow:
    """End-to-end allowance and delegated transfer tests"""

    def test_approve_and_query(self, client):
        r = client.post("/allowances", json={"spender": "bob", "value": "5000"}, headers=ALICE)
        assert r.status_code == 200
        assert r.json()["allowance"] == "5000"

        r = client.get("/allowances/alice/bob")
        assert r.json()["allowance"] == "5000"

    def test_increase_and_decrease(self, client):
        client.post("/allowances", json={"spender": "bob", "value": "100"}, headers=ALICE)

        r = client.post("/allowances/increase", json={"spender": "bob", "delta": "50"}, headers=ALICE)
        assert r.json()["allowance"] == "150"

        r = client.post("/allowances/decrease", json={"spender": "bob", "delta": "150"}, headers=ALICE)
        assert r.json()["allowance"] == "0"

    def test_decrease_below_zero(self, client):
        r = client.post("/allowances/decrease", json={"spender": "bob", "delta": "1"}, headers=ALICE)
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "ArithmeticUnderflow"

    def test_delegated_transfer(self, client):
        client.post("/allowances", json={"spender": "bob", "value": "5000"}, headers=ALICE)

        r = client.post("/transfers/delegated", json={
            "from_account": "alice",
            "to": "carol",
            "value": "1000"
        }, headers=BOB)
        assert r.status_code == 200
        data = r.json()
        assert data["net"] == "991"
        assert data["remaining_allowance"] == "4000"
        assert client.get("/accounts/carol/balance").json()["balance"] == "991"

    def test_delegated_transfer_without_allowance(self, client):
        r = client.post("/transfers/delegated", json={
            "from_account": "alice",
            "to": "carol",
            "value": "1"
        }, headers=BOB)
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InsufficientAllowance"


class TestBurnFlow:
    """End-to-end burn tests"""

    def test_burn(self, client):
        r = client.post("/burns", json={"amount": "100"}, headers=ALICE)
        assert r.status_code == 200
        assert r.json()["total_supply"] == str(SUPPLY - 100)

    def test_burn_zero(self, client):
        r = client.post("/burns", json={"amount": "0"}, headers=ALICE)
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InvalidAmount"

    def test_delegated_burn(self, client):
        client.post("/allowances", json={"spender": "bob", "value": "500"}, headers=ALICE)

        r = client.post("/burns/delegated", json={"account": "alice", "amount": "200"}, headers=BOB)
        assert r.status_code == 200
        assert r.json()["total_supply"] == str(SUPPLY - 200)
        assert client.get("/allowances/alice/bob").json()["allowance"] == "300"


class TestEventEndpoints:
    """Test event history and verification"""

    def test_event_history(self, client):
        client.post("/transfers", json={"to": "bob", "value": "1000"}, headers=ALICE)

        r = client.get("/events")
        assert r.status_code == 200
        events = r.json()["events"]
        assert [e["event_type"] for e in events] == ["Transfer"] * 3
        assert events[0]["args"] == {"from": NULL_ACCOUNT, "to": "alice", "value": str(SUPPLY)}
        assert events[2]["args"]["value"] == "9"

    def test_event_history_for_account(self, client):
        client.post("/transfers", json={"to": "bob", "value": "1000"}, headers=ALICE)
        client.post("/allowances", json={"spender": "carol", "value": "1"}, headers=ALICE)

        r = client.get("/events", params={"account": "bob"})
        events = r.json()["events"]
        assert len(events) == 1
        assert events[0]["args"]["to"] == "bob"

        r = client.get("/events", params={"limit": 1})
        assert r.json()["events"][0]["event_type"] == "Approval"

    def test_verify(self, client):
        client.post("/transfers", json={"to": "bob", "value": "1000"}, headers=ALICE)
        client.post("/burns", json={"amount": "5"}, headers=BOB)

        r = client.get("/events/verify")
        assert r.status_code == 200
        data = r.json()
        assert data["valid"] is True
        assert data["supply_consistent"] is True
        assert data["total_events"] == 4

    def test_event_history_by_type(self, client):
        client.post("/allowances", json={"spender": "bob", "value": "10"}, headers=ALICE)
        client.post("/transfers", json={"to": "bob", "value": "1000"}, headers=ALICE)

        r = client.get("/events", params={"event_type": "Approval"})
        data = r.json()
        assert data["total"] == 4
        assert [e["event_type"] for e in data["events"]] == ["Approval"]

        r = client.get("/events", params={"event_type": "Transfer", "account": "bob"})
        assert [e["args"]["value"] for e in r.json()["events"]] == ["991"]

    def test_unknown_event_type(self, client):
        r = client.get("/events", params={"event_type": "Mint"})
        assert r.status_code == 422

    def test_verify_reports_latest_hash(self, client):
        client.post("/transfers", json={"to": "bob", "value": "1000"}, headers=ALICE)

        latest = client.get("/events").json()["events"][-1]
        data = client.get("/events/verify").json()
        assert data["latest_hash"] == latest["current_hash"]


class TestTokenSystem:
    """Test ledger wiring behind the API"""

    def test_committed_events_are_logged(self, caplog):
        system = TokenSystem(
            config=TokenLedgerConfig(initial_supply=SUPPLY, issuer_account="alice"),
            storage=InMemoryStorage()
        )
        with caplog.at_level(logging.DEBUG, logger="token_ledger.api"):
            system.ledger.transfer("alice", "bob", 1000)

        messages = [r.getMessage() for r in caplog.records if r.name == "token_ledger.api"]
        assert any(m.startswith("Committed Transfer #2") for m in messages)
        assert any(m.startswith("Committed Transfer #3") for m in messages)
        system.close()

    def test_close_drops_subscribers(self):
        system = TokenSystem(
            config=TokenLedgerConfig(initial_supply=SUPPLY, issuer_account="alice"),
            storage=InMemoryStorage()
        )
        handler = Mock()
        system.dispatcher.subscribe_all(handler)

        system.close()
        system.dispatcher.publish(system.event_log.get_events()[0])

        handler.assert_not_called()
