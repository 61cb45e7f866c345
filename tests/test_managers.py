"""
Staff account and administration tests.

Tests verify:
1. The first staff account (or the bootstrap e-mail) is a manager, later ones are employees
2. Role gates: employees get 403, customers and anonymous callers 401
3. Role changes take effect on the next request and are audited
4. Customer administration (list, add, status, delete, bulk)
"""

from unittest.mock import AsyncMock, patch

from research_store_api.app.core.config import settings
from research_store_api.app.services.mail_service import MailService

from tests.conftest import ThreadpoolRecorder, auth, register_staff, signup_customer


class TestRegistration:
    """POST /api/manager/register and /login"""

    def test_first_account_is_manager_then_employees(self, client):
        _, first = register_staff(client, "first@example.com")
        _, second = register_staff(client, "second@example.com")
        assert first["role"] == "manager"
        assert second["role"] == "employee"
        assert "password" not in first

    def test_bootstrap_email_claims_the_manager_role(self, client, monkeypatch):
        monkeypatch.setattr(settings, "bootstrap_manager_email", "Boss@Example.com")
        _, early = register_staff(client, "early@example.com")
        _, boss = register_staff(client, "boss@example.com")
        _, late = register_staff(client, "late@example.com")
        assert early["role"] == "employee"
        assert boss["role"] == "manager"
        assert late["role"] == "employee"

    def test_bootstrap_email_is_ignored_once_a_manager_exists(self, client, manager_token, monkeypatch):
        monkeypatch.setattr(settings, "bootstrap_manager_email", "second@example.com")
        _, second = register_staff(client, "second@example.com")
        assert second["role"] == "employee"

    def test_duplicate_staff_email_is_rejected(self, client):
        register_staff(client, "first@example.com")
        response = client.post(
            "/api/manager/register",
            data={"email": "first@example.com", "password": "staffpass", "full_name": "Again"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Manager already exists"

    def test_login(self, client, manager_token):
        response = client.post("/api/manager/login", json={"email": "boss@example.com", "password": "staffpass"})
        assert response.status_code == 200
        assert response.json()["data"]["manager"]["role"] == "manager"
        bad = client.post("/api/manager/login", json={"email": "boss@example.com", "password": "wrongpass"})
        assert bad.status_code == 401
        assert bad.json()["message"] == "Invalid credentials"

    def test_password_hashing_runs_in_the_threadpool(self, client):
        recorder = ThreadpoolRecorder()
        with patch("research_store_api.app.services.manager_service.run_in_threadpool", new=recorder):
            register_staff(client, "first@example.com")
            response = client.post("/api/manager/login", json={"email": "first@example.com", "password": "staffpass"})
        assert response.status_code == 200
        assert [func.__name__ for func in recorder.calls] == ["hash_password", "verify_password"]

    def test_profile_read_and_update(self, client, employee_token):
        response = client.put(
            "/api/manager/profile",
            data={"last_name": "Smith", "phone": "555-0101"},
            headers=auth(employee_token),
        )
        assert response.status_code == 200
        profile = client.get("/api/manager/profile", headers=auth(employee_token)).json()["data"]
        assert profile["last_name"] == "Smith"
        assert profile["phone"] == "555-0101"
        assert profile["full_name"] == "Worker"


class TestRoleGates:
    """Manager-only endpoints"""

    def test_employee_is_forbidden(self, client, employee_token):
        response = client.get("/api/manager/team", headers=auth(employee_token))
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Manager role required."

    def test_customer_and_anonymous_are_unauthorized(self, client, customer_token):
        assert client.get("/api/manager/team").status_code == 401
        assert client.get("/api/manager/team", headers=auth(customer_token)).status_code == 401

    def test_manager_sees_team(self, client, employee_token, manager_token):
        response = client.get("/api/manager/team", headers=auth(manager_token))
        assert response.status_code == 200
        emails = {member["email"] for member in response.json()["data"]}
        assert emails == {"boss@example.com", "worker@example.com"}

    def test_promotion_applies_to_existing_token(self, client, employee_token, manager_token):
        team = client.get("/api/manager/team", headers=auth(manager_token)).json()["data"]
        worker_id = next(member["id"] for member in team if member["email"] == "worker@example.com")
        response = client.patch(
            f"/api/manager/team/{worker_id}/role",
            json={"role": "manager"},
            headers=auth(manager_token),
        )
        assert response.status_code == 200
        assert client.get("/api/manager/team", headers=auth(employee_token)).status_code == 200

    def test_manager_cannot_change_own_role(self, client, manager_token):
        me = client.get("/api/manager/profile", headers=auth(manager_token)).json()["data"]
        response = client.patch(
            f"/api/manager/team/{me['id']}/role",
            json={"role": "employee"},
            headers=auth(manager_token),
        )
        assert response.status_code == 403

    def test_invalid_role_is_rejected(self, client, employee_token, manager_token):
        response = client.patch("/api/manager/team/2/role", json={"role": "owner"}, headers=auth(manager_token))
        assert response.status_code == 400


class TestCustomerAdministration:
    """/api/manager/users"""

    def test_list_users_shows_status(self, client, manager_token):
        signup_customer(client)
        response = client.get("/api/manager/users", headers=auth(manager_token))
        assert response.status_code == 200
        users = response.json()["data"]
        assert len(users) == 1
        assert users[0]["status"] == "active"
        assert "password" not in users[0]

    def test_add_user(self, client, manager_token):
        response = client.post(
            "/api/manager/users",
            json={"email": "new@example.com", "password": "secret123", "full_name": "New Person"},
            headers=auth(manager_token),
        )
        assert response.status_code == 201
        signin = client.post("/api/auth/signin", json={"email": "new@example.com", "password": "secret123"})
        assert signin.status_code == 200

    def test_bulk_deactivate_and_delete(self, client, manager_token):
        _, first = signup_customer(client, email="one@example.com")
        _, second = signup_customer(client, email="two@example.com")
        ids = [first["id"], second["id"]]
        response = client.post(
            "/api/manager/users/bulk-action",
            json={"user_ids": ids, "action": "deactivate"},
            headers=auth(manager_token),
        )
        assert response.json()["data"] == {"affected": 2}
        users = client.get("/api/manager/users", headers=auth(manager_token)).json()["data"]
        assert {user["status"] for user in users} == {"inactive"}

        response = client.post(
            "/api/manager/users/bulk-action",
            json={"user_ids": ids, "action": "delete"},
            headers=auth(manager_token),
        )
        assert response.json()["data"] == {"affected": 2}
        assert client.get("/api/manager/users", headers=auth(manager_token)).json()["data"] == []

    def test_delete_unknown_user(self, client, manager_token):
        assert client.delete("/api/manager/users/999", headers=auth(manager_token)).status_code == 404

    def test_admin_actions_are_audited(self, client, manager_token):
        _, user = signup_customer(client)
        client.put(f"/api/manager/users/{user['id']}/status", json={"is_active": False}, headers=auth(manager_token))
        logs = client.get("/api/audit/logs", headers=auth(manager_token)).json()["data"]
        assert logs[0]["action_type"] == "user.deactivate"
        assert logs[0]["target"] == f"user:{user['id']}"


class TestStaffPasswordReset:
    def test_manager_reset_token_is_not_accepted_for_customers(self, client, manager_token):
        with patch.object(MailService, "send_password_reset", new=AsyncMock()) as send:
            client.post("/api/manager/forgot-password", json={"email": "boss@example.com"})
        token = send.await_args.args[1]
        customer = client.post("/api/auth/reset-password", json={"token": token, "new_password": "brandnew1"})
        assert customer.status_code == 400
        staff = client.post("/api/manager/reset-password", json={"token": token, "new_password": "brandnew1"})
        assert staff.status_code == 200
        login = client.post("/api/manager/login", json={"email": "boss@example.com", "password": "brandnew1"})
        assert login.status_code == 200
