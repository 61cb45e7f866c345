"""
Staff leave tests.

Tests verify:
1. Any staff member files leave for themselves
2. Date ranges must not be reversed
3. Employees read only their own history; managers read and decide all
"""

from tests.conftest import auth

LEAVE = {
    "full_name": "Worker",
    "email": "worker@example.com",
    "phone": "555-0102",
    "from_date": "2026-11-02",
    "to_date": "2026-11-06",
    "reason": "Family visit",
}


def employee_id(client, token):
    return client.get("/api/manager/profile", headers=auth(token)).json()["data"]["id"]


class TestLeaves:
    def test_submit_is_pending(self, client, employee_token):
        response = client.post("/api/leaves/", json=LEAVE, headers=auth(employee_token))
        assert response.status_code == 201, response.text
        leave = response.json()["data"]
        assert leave["status"] == "pending"
        assert leave["from_date"] == "2026-11-02"
        assert leave["employee_id"] == employee_id(client, employee_token)

    def test_reversed_dates_are_rejected(self, client, employee_token):
        payload = dict(LEAVE, from_date="2026-11-06", to_date="2026-11-02")
        assert client.post("/api/leaves/", json=payload, headers=auth(employee_token)).status_code == 400

    def test_customers_cannot_file_leave(self, client, customer_token):
        assert client.post("/api/leaves/", json=LEAVE, headers=auth(customer_token)).status_code == 401

    def test_employee_reads_only_own_history(self, client, employee_token, manager_token):
        client.post("/api/leaves/", json=LEAVE, headers=auth(employee_token))
        own_id = employee_id(client, employee_token)
        boss_id = employee_id(client, manager_token)
        own = client.get(f"/api/leaves/employee/{own_id}", headers=auth(employee_token))
        assert len(own.json()["data"]) == 1
        other = client.get(f"/api/leaves/employee/{boss_id}", headers=auth(employee_token))
        assert other.status_code == 403
        by_manager = client.get(f"/api/leaves/employee/{own_id}", headers=auth(manager_token))
        assert len(by_manager.json()["data"]) == 1

    def test_listing_all_needs_manager_role(self, client, employee_token, manager_token):
        client.post("/api/leaves/", json=LEAVE, headers=auth(employee_token))
        assert client.get("/api/leaves/", headers=auth(employee_token)).status_code == 403
        assert len(client.get("/api/leaves/", headers=auth(manager_token)).json()["data"]) == 1

    def test_manager_decides(self, client, employee_token, manager_token):
        leave = client.post("/api/leaves/", json=LEAVE, headers=auth(employee_token)).json()["data"]
        denied = client.patch(
            f"/api/leaves/{leave['id']}/status",
            json={"status": "approved", "comments": "Enjoy"},
            headers=auth(employee_token),
        )
        assert denied.status_code == 403
        response = client.patch(
            f"/api/leaves/{leave['id']}/status",
            json={"status": "approved", "comments": "Enjoy"},
            headers=auth(manager_token),
        )
        decided = response.json()["data"]
        assert decided["status"] == "approved"
        assert decided["comments"] == "Enjoy"
        assert decided["response_by"] == employee_id(client, manager_token)
        assert decided["response_date"]

    def test_decision_must_be_approve_or_deny(self, client, employee_token, manager_token):
        leave = client.post("/api/leaves/", json=LEAVE, headers=auth(employee_token)).json()["data"]
        response = client.patch(
            f"/api/leaves/{leave['id']}/status",
            json={"status": "pending"},
            headers=auth(manager_token),
        )
        assert response.status_code == 400

    def test_unknown_leave(self, client, manager_token):
        response = client.patch("/api/leaves/99/status", json={"status": "denied"}, headers=auth(manager_token))
        assert response.status_code == 404
