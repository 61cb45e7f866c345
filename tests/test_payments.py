"""
Checkout and entitlement tests.

Tests verify:
1. A captured order creates the account, payment and entitlement
2. Temporary credentials are returned only to first-time buyers
3. Orders PayPal does not report as COMPLETED write nothing
4. Replaying an order is idempotent
5. verify-access counts accesses and refuses callers without access
6. Revoked or unpaid entitlements drop out of the purchased list
"""

from unittest.mock import AsyncMock, patch

from research_store_api.app.core.db import get_connection
from research_store_api.app.main import app
from research_store_api.app.schemas.payment import UserReportRead
from research_store_api.app.services.paypal_client import get_paypal_client
from research_store_api.app.services.report_service import ReportService

from tests.conftest import FakePayPal, auth, signup_customer


def checkout(report_id, order_id="ORDER-1", email="buyer@example.com"):
    return {
        "form_data": {
            "full_name": "Bea Buyer",
            "email": email,
            "phone": "+1 555 0100",
            "address_line1": "1 Market St",
            "city": "Toronto",
            "state": "ON",
            "zip_code": "M5V 2T6",
            "country": "Canada",
        },
        "paypal_data": {"id": order_id, "status": "COMPLETED"},
        "report_id": report_id,
    }


def count_rows(table):
    conn = get_connection()
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


def update_entitlements(**columns):
    assignments = ", ".join(f"{name} = ?" for name in columns)
    conn = get_connection()
    try:
        conn.execute(f"UPDATE user_reports SET {assignments}", tuple(columns.values()))
        conn.commit()
    finally:
        conn.close()


def buy(client, report_id, **kwargs):
    response = client.post("/api/payment-success", json=checkout(report_id, **kwargs))
    assert response.status_code == 200, response.text
    return response.json()["data"]


class TestPaymentSuccess:
    """POST /api/payment-success"""

    def test_new_buyer_gets_account_and_entitlement(self, client, paypal, report):
        data = buy(client, report["id"])
        assert data["already_processed"] is False
        credentials = data["credentials"]
        assert credentials["email"] == "buyer@example.com"
        assert len(credentials["temporary_password"]) == 8
        assert paypal.calls == ["ORDER-1"]

        signin = client.post(
            "/api/auth/signin",
            json={"email": "buyer@example.com", "password": credentials["temporary_password"]},
        )
        assert signin.status_code == 200
        user = signin.json()["data"]["user"]
        assert user["auth_provider"] == "payment"
        assert user["city"] == "Toronto"

        purchased = client.get("/api/purchased-reports", headers=auth(signin.json()["data"]["token"]))
        items = purchased.json()["data"]
        assert len(items) == 1
        assert items[0]["report_id"] == report["id"]
        assert items[0]["report"]["report_name"] == report["report_name"]
        assert items[0]["can_access"] is True
        assert items[0]["access_count"] == 0

    def test_existing_customer_gets_no_credentials(self, client, paypal, report):
        signup_customer(client, email="buyer@example.com")
        data = buy(client, report["id"])
        assert "credentials" not in data
        assert count_rows("user_auth") == 1

    def test_amount_comes_from_paypal(self, client, report, manager_token):
        fake = FakePayPal(amount="149.99")
        app.dependency_overrides[get_paypal_client] = lambda: fake
        buy(client, report["id"])
        payments = client.get("/api/payment-details", headers=auth(manager_token)).json()["data"]
        assert payments[0]["amount"] == 149.99
        assert payments[0]["transaction_id"] == "ORDER-1"
        assert payments[0]["payment_status"] == "completed"
        assert payments[0]["report_name"] == report["report_name"]

    def test_incomplete_order_writes_nothing(self, client, report):
        fake = FakePayPal(status="APPROVED")
        app.dependency_overrides[get_paypal_client] = lambda: fake
        response = client.post("/api/payment-success", json=checkout(report["id"]))
        assert response.status_code == 400
        assert response.json()["message"] == "Payment not completed"
        assert count_rows("user_auth") == 0
        assert count_rows("payment_details") == 0
        assert count_rows("user_reports") == 0

    def test_unknown_report(self, client, paypal):
        response = client.post("/api/payment-success", json=checkout(404))
        assert response.status_code == 404
        assert count_rows("user_auth") == 0

    def test_invalid_email_is_rejected(self, client, paypal, report):
        response = client.post("/api/payment-success", json=checkout(report["id"], email="nope"))
        assert response.status_code == 400
        assert paypal.calls == []

    def test_replay_is_idempotent(self, client, paypal, report):
        first = buy(client, report["id"])
        second = buy(client, report["id"])
        assert second["already_processed"] is True
        assert second["payment_id"] == first["payment_id"]
        assert second["user_report_id"] == first["user_report_id"]
        assert "credentials" not in second
        assert count_rows("payment_details") == 1
        assert count_rows("user_reports") == 1
        assert count_rows("user_auth") == 1

    def test_second_purchase_of_same_report_reuses_entitlement(self, client, paypal, report):
        first = buy(client, report["id"], order_id="ORDER-1")
        second = buy(client, report["id"], order_id="ORDER-2")
        assert second["already_processed"] is False
        assert second["user_report_id"] == first["user_report_id"]
        assert count_rows("payment_details") == 2
        assert count_rows("user_reports") == 1

    def test_report_deleted_during_checkout(self, client, paypal):
        with patch.object(ReportService, "ensure_exists", new=AsyncMock()):
            response = client.post("/api/payment-success", json=checkout(404))
        assert response.status_code == 404
        assert response.json()["message"] == "Report not found"
        assert count_rows("user_auth") == 0
        assert count_rows("payment_details") == 0


class TestPurchasedReports:
    """GET /api/purchased-reports"""

    def _buyer_token(self, client, report_id):
        credentials = buy(client, report_id)["credentials"]
        signin = client.post(
            "/api/auth/signin",
            json={"email": credentials["email"], "password": credentials["temporary_password"]},
        )
        return signin.json()["data"]["token"]

    def test_revoked_entitlement_is_hidden(self, client, paypal, report):
        token = self._buyer_token(client, report["id"])
        update_entitlements(is_active=0)
        response = client.get("/api/purchased-reports", headers=auth(token))
        assert response.status_code == 200
        assert response.json()["data"] == []

    def test_unpaid_entitlement_is_hidden(self, client, paypal, report):
        token = self._buyer_token(client, report["id"])
        update_entitlements(payment_status="pending")
        assert client.get("/api/purchased-reports", headers=auth(token)).json()["data"] == []

        update_entitlements(payment_status="completed")
        items = client.get("/api/purchased-reports", headers=auth(token)).json()["data"]
        assert [item["report_id"] for item in items] == [report["id"]]


class TestVerifyAccess:
    """GET /api/verify-access/{report_id}"""

    def _buyer_token(self, client, report_id):
        credentials = buy(client, report_id)["credentials"]
        signin = client.post(
            "/api/auth/signin",
            json={"email": credentials["email"], "password": credentials["temporary_password"]},
        )
        return signin.json()["data"]["token"]

    def test_each_check_counts_one_access(self, client, paypal, report):
        token = self._buyer_token(client, report["id"])
        first = client.get(f"/api/verify-access/{report['id']}", headers=auth(token))
        second = client.get(f"/api/verify-access/{report['id']}", headers=auth(token))
        assert first.status_code == second.status_code == 200
        assert first.json()["data"]["access_count"] == 1
        assert second.json()["data"]["access_count"] == 2
        assert second.json()["data"]["last_access_date"]

    def test_no_entitlement_is_forbidden(self, client, customer_token, report):
        response = client.get(f"/api/verify-access/{report['id']}", headers=auth(customer_token))
        assert response.status_code == 403
        assert response.json()["message"] == "No access to this report"

    def test_inactive_entitlement_is_forbidden(self, client, paypal, report):
        token = self._buyer_token(client, report["id"])
        update_entitlements(is_active=0)
        response = client.get(f"/api/verify-access/{report['id']}", headers=auth(token))
        assert response.status_code == 403

    def test_requires_customer_token(self, client, report):
        assert client.get(f"/api/verify-access/{report['id']}").status_code == 401


class TestLedgers:
    """Staff views of payments and entitlements"""

    def test_user_reports_join_user_and_report(self, client, paypal, report, manager_token):
        buy(client, report["id"])
        entitlements = client.get("/api/user-reports", headers=auth(manager_token)).json()["data"]
        assert entitlements[0]["user"]["email"] == "buyer@example.com"
        assert entitlements[0]["report"]["report_name"] == report["report_name"]

    def test_ledgers_are_staff_only(self, client, customer_token):
        assert client.get("/api/payment-details", headers=auth(customer_token)).status_code == 401
        assert client.get("/api/user-reports").status_code == 401

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["paypal_configured"] is True
        assert "test-client-secret" not in response.text


class TestEntitlementAccessFlag:
    """UserReportRead.can_access"""

    def _entitlement(self, **overrides):
        data = {"id": 1, "user_id": 1, "report_id": 1, "transaction_id": "T", "payment_status": "completed", "is_active": True}
        data.update(overrides)
        return UserReportRead(**data)

    def test_active_and_completed(self):
        assert self._entitlement().can_access is True
        assert self._entitlement().to_response()["can_access"] is True

    def test_flipping_either_flag_removes_access(self):
        assert self._entitlement(is_active=False).can_access is False
        assert self._entitlement(payment_status="pending").can_access is False
        assert self._entitlement(payment_status="failed").can_access is False
