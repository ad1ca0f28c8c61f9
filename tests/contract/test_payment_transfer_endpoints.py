"""Contract tests for /payment-transfers endpoints."""

from datetime import date
from decimal import Decimal

import pytest

from treasury.models import RecurrenceFrequency, RecurringTransfer, Reimbursement

pytestmark = pytest.mark.contract


def _refresh(client, headers, **params):
    response = client.post("/payment-transfers/refresh", params=params, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def _pending_transfer(client, headers, user_id):
    response = client.get("/payment-transfers", params={"status": "pending"}, headers=headers)
    assert response.status_code == 200
    return next(t for t in response.json() if t["recipientUserId"] == user_id)


class TestIdentityHeaders:
    """Test the treasurer identity contract."""

    def test_health_needs_no_identity(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_missing_user_id_is_unauthorized(self, client, ledger):
        response = client.get("/payment-transfers")

        assert response.status_code == 401

    def test_non_treasurer_is_forbidden(self, client, ledger):
        response = client.get("/payment-transfers", headers={"X-User-Id": str(ledger.alice.id)})

        assert response.status_code == 403

    def test_malformed_group_ids(self, client, ledger):
        response = client.get(
            "/payment-transfers",
            headers={"X-User-Id": str(ledger.treasurer.id), "X-Group-Ids": "1,garden"},
        )

        assert response.status_code == 400


class TestRefreshEndpoint:
    """Test POST /payment-transfers/refresh."""

    def test_refreshes_every_scope_of_actor(
        self, client, treasurer_headers, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.alice, "120")
        make_charge(ledger.alice, "50")
        make_reimbursement(ledger.bob, "12", fund=ledger.seeds)

        body = _refresh(client, treasurer_headers)

        assert [(r["budgetType"], r["groupId"]) for r in body] == [
            ("circle", None),
            ("group", ledger.garden_group.id),
        ]
        assert body[0]["created"] == 1
        assert body[1]["created"] == 1
        assert set(body[0]) >= {"created", "updated", "deleted", "unchanged", "transferIds"}

    def test_single_scope(self, client, treasurer_headers, ledger, make_reimbursement):
        make_reimbursement(ledger.alice, "120")

        body = _refresh(client, treasurer_headers, budgetType="circle")

        assert len(body) == 1
        assert body[0]["budgetType"] == "circle"

    def test_group_without_id_is_invalid(self, client, treasurer_headers):
        response = client.post(
            "/payment-transfers/refresh", params={"budgetType": "group"}, headers=treasurer_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_argument"

    def test_foreign_group_is_forbidden(self, client, treasurer_headers):
        response = client.post(
            "/payment-transfers/refresh", params={"groupId": 999}, headers=treasurer_headers
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "access_denied"


class TestExecuteEndpoint:
    """Test POST /payment-transfers/{id}/execute."""

    def test_positive_transfer_is_executed(
        self, client, treasurer_headers, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.alice, "120")
        make_charge(ledger.alice, "50")
        _refresh(client, treasurer_headers, budgetType="circle")
        transfer = _pending_transfer(client, treasurer_headers, ledger.alice.id)
        assert transfer["totalAmount"] == 70.0
        assert transfer["reimbursementCount"] == 1

        response = client.post(
            f"/payment-transfers/{transfer['id']}/execute", headers=treasurer_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["carryForwardDebt"] is None
        assert body["transferId"] == transfer["id"]
        assert body["transfer"]["status"] == "executed"
        assert body["transfer"]["executedBy"] == ledger.treasurer.id

    def test_second_execution_is_rejected(
        self, client, treasurer_headers, ledger, make_reimbursement
    ):
        make_reimbursement(ledger.alice, "120")
        _refresh(client, treasurer_headers, budgetType="circle")
        transfer = _pending_transfer(client, treasurer_headers, ledger.alice.id)
        client.post(f"/payment-transfers/{transfer['id']}/execute", headers=treasurer_headers)

        response = client.post(
            f"/payment-transfers/{transfer['id']}/execute", headers=treasurer_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_state"

    def test_negative_transfer_returns_carry_forward_debt(
        self, client, treasurer_headers, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.bob, "30")
        make_charge(ledger.bob, "100")
        _refresh(client, treasurer_headers, budgetType="circle")
        transfer = _pending_transfer(client, treasurer_headers, ledger.bob.id)
        assert transfer["totalAmount"] == -70.0

        response = client.post(
            f"/payment-transfers/{transfer['id']}/execute", headers=treasurer_headers
        )

        assert response.status_code == 200
        assert response.json()["carryForwardDebt"] == 70.0
        assert response.json()["transfer"] is None
        missing = client.get(f"/payment-transfers/{transfer['id']}", headers=treasurer_headers)
        assert missing.status_code == 404

    def test_unknown_transfer(self, client, treasurer_headers):
        response = client.post("/payment-transfers/12345/execute", headers=treasurer_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"


class TestReadEndpoints:
    """Test listing, details and stats."""

    def test_details_list_charges_as_negative_items(
        self, client, treasurer_headers, ledger, make_reimbursement, make_charge
    ):
        make_reimbursement(ledger.alice, "120", expense_date=date(2025, 3, 1))
        make_charge(ledger.alice, "50", charge_date=date(2025, 3, 5))
        _refresh(client, treasurer_headers, budgetType="circle")
        transfer = _pending_transfer(client, treasurer_headers, ledger.alice.id)

        response = client.get(f"/payment-transfers/{transfer['id']}", headers=treasurer_headers)

        assert response.status_code == 200
        items = response.json()["reimbursements"]
        assert [(i["itemType"], i["amount"]) for i in items] == [
            ("charge", -50.0),
            ("reimbursement", 120.0),
        ]
        assert items[1]["expenseDate"] == "2025-03-01"
        assert items[1]["status"] == "approved"

    def test_listing_is_filtered_to_actor_scopes(
        self, client, treasurer_headers, ledger, make_reimbursement
    ):
        make_reimbursement(ledger.alice, "120")
        make_reimbursement(ledger.bob, "12", fund=ledger.seeds)
        _refresh(client, treasurer_headers)

        garden_only = {
            "X-User-Id": str(ledger.treasurer.id),
            "X-Group-Ids": str(ledger.garden_group.id),
        }
        response = client.get("/payment-transfers", headers=garden_only)

        assert [t["recipientUserId"] for t in response.json()] == [ledger.bob.id]

    def test_stats(self, client, treasurer_headers, ledger, make_reimbursement):
        make_reimbursement(ledger.alice, "120")
        make_reimbursement(ledger.bob, "30")
        _refresh(client, treasurer_headers, budgetType="circle")
        transfer = _pending_transfer(client, treasurer_headers, ledger.alice.id)
        client.post(f"/payment-transfers/{transfer['id']}/execute", headers=treasurer_headers)

        response = client.get("/payment-transfers/stats", headers=treasurer_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["pendingCount"] == 1
        assert body["pendingTotalAmount"] == 30.0
        assert body["executedCount"] == 1
        assert body["executedTotalAmount"] == 120.0
        assert [t["id"] for t in body["recentExecutions"]] == [transfer["id"]]


class TestGenerateRecurringEndpoint:
    """Test POST /payment-transfers/generate-recurring."""

    def test_generates_once_per_period(self, client, treasurer_headers, db_session, ledger):
        db_session.add(
            RecurringTransfer(
                recipient_user_id=ledger.carol.id,
                fund_id=ledger.maintenance.id,
                amount=Decimal("250"),
                description="Storage rent",
                frequency=RecurrenceFrequency.MONTHLY,
                start_date=date(2025, 1, 1),
                created_by=ledger.treasurer.id,
            )
        )
        db_session.commit()

        first = client.post(
            "/payment-transfers/generate-recurring",
            params={"asOf": "2025-02-14"},
            headers=treasurer_headers,
        )
        second = client.post(
            "/payment-transfers/generate-recurring",
            params={"asOf": "2025-02-20"},
            headers=treasurer_headers,
        )

        assert first.status_code == 200
        assert first.json() == {"count": 1}
        assert second.json() == {"count": 0}
        assert db_session.query(Reimbursement).count() == 1
