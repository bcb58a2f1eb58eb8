"""Tests for the wallet HTTP endpoints."""

import pytest
from decimal import Decimal
from uuid import UUID, uuid4
from fastapi.testclient import TestClient

from ledger.api import app, set_wallet_service
from ledger.service import WalletService

TESTER_ID = UUID("550e8400-e29b-41d4-a716-446655440000")
HEADERS = {"X-Account-Id": str(TESTER_ID)}


@pytest.fixture
def service():
    """Fresh wallet service for each test."""
    service = WalletService()
    set_wallet_service(service)
    yield service
    set_wallet_service(WalletService())


@pytest.fixture
def client(service):
    return TestClient(app)


class TestIdentity:
    def test_missing_header_rejected(self, client):
        response = client.get("/transactions")
        assert response.status_code == 401

    def test_malformed_header_rejected(self, client):
        response = client.get("/wallet", headers={"X-Account-Id": "not-a-uuid"})
        assert response.status_code == 401


class TestWithdrawalEndpoints:
    def test_create_withdrawal(self, client, service):
        service.record_earning(TESTER_ID, Decimal("100.00"))

        response = client.post("/withdrawals", json={"amount": 30}, headers=HEADERS)

        assert response.status_code == 201
        body = response.json()
        assert Decimal(body["withdrawal"]["amount"]) == Decimal("-30.00")
        assert Decimal(body["withdrawal"]["balance_after"]) == Decimal("70.00")
        assert body["withdrawal"]["is_paid"] is False
        assert body["withdrawal"]["note"] == "Withdrawal of $30.00"

    def test_pending_conflict_returns_422(self, client, service):
        service.record_earning(TESTER_ID, Decimal("100.00"))
        client.post("/withdrawals", json={"amount": 30}, headers=HEADERS)

        response = client.post("/withdrawals", json={"amount": 10}, headers=HEADERS)

        assert response.status_code == 422
        assert response.json()["detail"] == "Withdrawal request is already pending."

    def test_insufficient_funds_returns_422(self, client, service):
        service.record_earning(TESTER_ID, Decimal("5.00"))

        response = client.post("/withdrawals", json={"amount": 10}, headers=HEADERS)

        assert response.status_code == 422
        assert service.get_balance(TESTER_ID).current_balance == Decimal("5.00")

    def test_invalid_amount_rejected(self, client):
        response = client.post("/withdrawals", json={"amount": 0}, headers=HEADERS)
        assert response.status_code == 422

        response = client.post("/withdrawals", json={"amount": "1.001"}, headers=HEADERS)
        assert response.status_code == 422

    def test_oversized_amount_rejected(self, client, service):
        huge = "1000000000000000000000000000"

        response = client.post("/earnings", json={"amount": huge}, headers=HEADERS)
        assert response.status_code == 422

        response = client.post("/withdrawals", json={"amount": huge}, headers=HEADERS)
        assert response.status_code == 422
        assert not service.storage.balances.has_account(TESTER_ID)

    def test_responses_hide_sequence(self, client, service):
        service.record_earning(TESTER_ID, Decimal("100.00"))

        created = client.post("/withdrawals", json={"amount": 30}, headers=HEADERS).json()
        pending = client.get("/withdrawals/pending", headers=HEADERS).json()

        assert "sequence" not in created["withdrawal"]
        assert "sequence" not in pending

    def test_pending_withdrawal_null_when_none(self, client):
        response = client.get("/withdrawals/pending", headers=HEADERS)
        assert response.status_code == 200
        assert response.json() is None

    def test_pending_withdrawal_returned(self, client, service):
        service.record_earning(TESTER_ID, Decimal("100.00"))
        withdrawal = service.request_withdrawal(TESTER_ID, Decimal("30.00"))

        response = client.get("/withdrawals/pending", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["id"] == str(withdrawal.id)

    def test_settle_withdrawal(self, client, service):
        service.record_earning(TESTER_ID, Decimal("100.00"))
        withdrawal = service.request_withdrawal(TESTER_ID, Decimal("30.00"))

        response = client.post(f"/withdrawals/{withdrawal.id}/settle")
        assert response.status_code == 200
        assert response.json()["withdrawal"]["is_paid"] is True

        response = client.post(f"/withdrawals/{withdrawal.id}/settle")
        assert response.status_code == 409

        assert client.get("/withdrawals/pending", headers=HEADERS).json() is None

    def test_settle_unknown_withdrawal(self, client):
        response = client.post(f"/withdrawals/{uuid4()}/settle")
        assert response.status_code == 404

    def test_settle_earning_rejected(self, client, service):
        earning = service.record_earning(TESTER_ID, Decimal("10.00"))
        response = client.post(f"/withdrawals/{earning.id}/settle")
        assert response.status_code == 422


class TestWalletEndpoints:
    def test_create_earning_and_balance(self, client):
        response = client.post(
            "/earnings", json={"amount": 50, "note": "Project payout"}, headers=HEADERS
        )
        assert response.status_code == 201
        assert response.json()["earning"]["note"] == "Project payout"

        balance = client.get("/wallet", headers=HEADERS).json()
        assert Decimal(balance["current_balance"]) == Decimal("50.00")
        assert balance["total_entries"] == 1
        assert balance["currency"] == "USD"

    def test_transactions_newest_first(self, client):
        client.post("/earnings", json={"amount": 50}, headers=HEADERS)
        client.post("/withdrawals", json={"amount": 30}, headers=HEADERS)
        client.post("/earnings", json={"amount": 20}, headers=HEADERS)

        response = client.get("/transactions", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["total_count"] == 3
        assert [Decimal(t["balance_after"]) for t in body["transactions"]] == [
            Decimal("40.00"), Decimal("20.00"), Decimal("50.00"),
        ]
        assert set(body["transactions"][0]) >= {"id", "amount", "balance_after", "created_at", "note"}

    def test_transactions_pagination(self, client):
        for amount in (1, 2, 3):
            client.post("/earnings", json={"amount": amount}, headers=HEADERS)

        body = client.get("/transactions?limit=1&offset=1", headers=HEADERS).json()

        assert body["total_count"] == 3
        assert [Decimal(t["amount"]) for t in body["transactions"]] == [Decimal("2.00")]

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"
