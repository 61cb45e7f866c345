"""
Customer authentication tests.

Tests verify:
1. Signup stores a hashed password and never returns it
2. Duplicate e-mails are rejected with 400
3. Signin, /me and the bearer-token failure modes
4. Profile updates, photo upload and the password reset flow
5. Social sign-in creates the customer on first use
"""

from unittest.mock import AsyncMock, patch

from research_store_api.app.core.db import get_connection
from research_store_api.app.core.security import burn_password_check, hash_password, verify_password
from research_store_api.app.services.mail_service import MailService

from tests.conftest import PDF_BYTES, PNG_BYTES, ThreadpoolRecorder, auth, signup_customer


class TestSignup:
    """POST /api/auth/signup"""

    def test_signup_returns_token_and_profile_without_password(self, client):
        token, user = signup_customer(client, email="Jane@Example.com")
        assert token
        assert user["email"] == "jane@example.com"
        assert user["is_active"] is True
        assert "password" not in user

    def test_password_is_stored_hashed(self, client, db_path):
        signup_customer(client)
        conn = get_connection()
        try:
            row = conn.execute("SELECT password FROM user_auth WHERE email = ?", ("jane@example.com",)).fetchone()
        finally:
            conn.close()
        assert row["password"] != "secret123"
        assert verify_password("secret123", row["password"])

    def test_duplicate_email_is_rejected(self, client):
        signup_customer(client)
        response = client.post(
            "/api/auth/signup",
            data={"email": "jane@example.com", "password": "other123", "full_name": "Other"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "User already exists"

    def test_invalid_email_and_short_password_are_rejected(self, client):
        response = client.post(
            "/api/auth/signup",
            data={"email": "not-an-email", "password": "secret123", "full_name": "X"},
        )
        assert response.status_code == 400
        response = client.post(
            "/api/auth/signup",
            data={"email": "x@example.com", "password": "123", "full_name": "X"},
        )
        assert response.status_code == 400

    def test_missing_field_is_rejected(self, client):
        response = client.post("/api/auth/signup", data={"email": "x@example.com"})
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_profile_picture_is_stored_and_served(self, client):
        response = client.post(
            "/api/auth/signup",
            data={"email": "pic@example.com", "password": "secret123", "full_name": "Pic"},
            files={"profile_pic": ("me.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 201
        url = response.json()["data"]["user"]["profile_pic"]
        assert url.startswith("/api/assets/")
        picture = client.get(url)
        assert picture.status_code == 200
        assert picture.content == PNG_BYTES
        assert picture.headers["content-type"] == "image/png"

    def test_non_image_profile_picture_is_rejected(self, client):
        response = client.post(
            "/api/auth/signup",
            data={"email": "pic@example.com", "password": "secret123", "full_name": "Pic"},
            files={"profile_pic": ("me.pdf", PDF_BYTES, "application/pdf")},
        )
        assert response.status_code == 400


class TestSignin:
    """POST /api/auth/signin and token checks on /api/auth/me"""

    def test_signin_with_valid_credentials(self, client):
        signup_customer(client)
        response = client.post("/api/auth/signin", json={"email": "jane@example.com", "password": "secret123"})
        assert response.status_code == 200
        data = response.json()["data"]
        me = client.get("/api/auth/me", headers=auth(data["token"]))
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "jane@example.com"

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        signup_customer(client)
        wrong = client.post("/api/auth/signin", json={"email": "jane@example.com", "password": "nope123"})
        unknown = client.post("/api/auth/signin", json={"email": "ghost@example.com", "password": "nope123"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["message"] == unknown.json()["message"] == "Invalid email or password"

    def test_password_hashing_runs_in_the_threadpool(self, client):
        recorder = ThreadpoolRecorder()
        with patch("research_store_api.app.services.user_service.run_in_threadpool", new=recorder):
            signup_customer(client)
            ok = client.post("/api/auth/signin", json={"email": "jane@example.com", "password": "secret123"})
            unknown = client.post("/api/auth/signin", json={"email": "ghost@example.com", "password": "nope123"})
        assert ok.status_code == 200
        assert unknown.status_code == 401
        assert recorder.calls == [hash_password, verify_password, burn_password_check]

    def test_me_requires_a_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_me_rejects_garbage_and_staff_tokens(self, client, manager_token):
        assert client.get("/api/auth/me", headers=auth("garbage")).status_code == 401
        assert client.get("/api/auth/me", headers=auth(manager_token)).status_code == 401

    def test_deactivated_customer_is_locked_out(self, client, manager_token):
        token, user = signup_customer(client)
        response = client.put(
            f"/api/manager/users/{user['id']}/status",
            json={"is_active": False},
            headers=auth(manager_token),
        )
        assert response.status_code == 200
        assert client.get("/api/auth/me", headers=auth(token)).status_code == 401
        signin = client.post("/api/auth/signin", json={"email": "jane@example.com", "password": "secret123"})
        assert signin.status_code == 401

    def test_token_of_deleted_customer_is_rejected(self, client, manager_token):
        token, user = signup_customer(client)
        client.delete(f"/api/manager/users/{user['id']}", headers=auth(manager_token))
        response = client.get("/api/auth/me", headers=auth(token))
        assert response.status_code == 401
        assert response.json()["code"] == "subject_not_found"

    def test_logout(self, client, customer_token):
        response = client.post("/api/auth/logout", headers=auth(customer_token))
        assert response.status_code == 200
        assert response.json()["success"] is True


class TestProfile:
    """Profile edits by the signed-in customer."""

    def test_update_profile_changes_only_sent_fields(self, client, customer_token):
        response = client.put(
            "/api/auth/update-profile",
            json={"full_name": "Jane Q. Doe", "city": "Toronto"},
            headers=auth(customer_token),
        )
        assert response.status_code == 200
        user = response.json()["data"]
        assert user["full_name"] == "Jane Q. Doe"
        assert user["city"] == "Toronto"
        assert user["email"] == "jane@example.com"

    def test_update_photo(self, client, customer_token):
        response = client.post(
            "/api/auth/update-photo",
            files={"profile_pic": ("new.png", PNG_BYTES, "image/png")},
            headers=auth(customer_token),
        )
        assert response.status_code == 200
        assert response.json()["data"]["profile_pic"].startswith("/api/assets/")

    def test_update_photo_requires_a_file(self, client, customer_token):
        response = client.post("/api/auth/update-photo", headers=auth(customer_token))
        assert response.status_code == 400


class TestPasswordReset:
    """forgot-password / reset-password"""

    def test_forgot_password_does_not_reveal_accounts(self, client):
        signup_customer(client)
        with patch.object(MailService, "send_password_reset", new=AsyncMock()) as send:
            known = client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})
            unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.json()["message"] == unknown.json()["message"]
        assert "token" not in str(known.json()["data"])
        assert send.await_count == 1

    def test_reset_with_mailed_token(self, client):
        signup_customer(client)
        with patch.object(MailService, "send_password_reset", new=AsyncMock()) as send:
            client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})
        token = send.await_args.args[1]
        response = client.post("/api/auth/reset-password", json={"token": token, "new_password": "brandnew1"})
        assert response.status_code == 200
        signin = client.post("/api/auth/signin", json={"email": "jane@example.com", "password": "brandnew1"})
        assert signin.status_code == 200

    def test_access_token_cannot_reset_password(self, client, customer_token):
        response = client.post(
            "/api/auth/reset-password",
            json={"token": customer_token, "new_password": "brandnew1"},
        )
        assert response.status_code == 400


class TestSocialSignin:
    """Google and Facebook sign-in with a fake verifier."""

    def test_google_creates_customer_once(self, client, social_verifier):
        first = client.post("/api/auth/google", json={"token": "id-token"})
        second = client.post("/api/auth/google", json={"token": "id-token"})
        assert first.status_code == second.status_code == 200
        first_user = first.json()["data"]["user"]
        assert first_user["auth_provider"] == "google"
        assert first_user["id"] == second.json()["data"]["user"]["id"]

    def test_facebook_links_to_existing_customer(self, client, social_verifier):
        _, user = signup_customer(client, email="social@example.com")
        response = client.post("/api/auth/facebook", json={"access_token": "fb-token"})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == user["id"]

    def test_google_requires_a_token(self, client, social_verifier):
        assert client.post("/api/auth/google", json={}).status_code == 400
