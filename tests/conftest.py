"""
Shared fixtures for the Research Store API tests.

Required settings are put into the environment before the application
is imported, because ``Settings`` reads them at import time.  Every
test gets its own SQLite file and a ``TestClient`` whose startup runs
the migrations against it.
"""

import os

os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["PAYPAL_CLIENT_ID"] = "test-client-id"
os.environ["PAYPAL_SECRET_KEY"] = "test-client-secret"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"

import pytest
from fastapi.testclient import TestClient

from research_store_api.app.core.config import settings
from research_store_api.app.core.db import init_db
from research_store_api.app.main import app
from research_store_api.app.services.paypal_client import get_paypal_client
from research_store_api.app.services.social_auth_service import SocialProfile, get_social_verifier

PDF_BYTES = b"%PDF-1.4\n% research store test document\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def text_pdf(text):
    """A one-page PDF whose content stream draws ``text`` in Helvetica."""
    stream = b"BT /F1 12 Tf 72 720 Td (" + text.encode("latin-1") + b") Tj ET"
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    pdf = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(pdf)
    pdf += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        pdf += b"%010d 00000 n \n" % offset
    pdf += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(pdf)


class ThreadpoolRecorder:
    """Runs functions inline in place of ``run_in_threadpool`` and records them."""

    def __init__(self):
        self.calls = []

    async def __call__(self, func, *args, **kwargs):
        self.calls.append(func)
        return func(*args, **kwargs)


def auth(token):
    return {"Authorization": f"Bearer {token}"}


class FakePayPal:
    """Stands in for ``PayPalClient``; answers every order lookup from ``orders``."""

    def __init__(self, status="COMPLETED", amount="199.00"):
        self.status = status
        self.amount = amount
        self.calls = []

    async def get_order(self, order_id):
        self.calls.append(order_id)
        return {
            "id": order_id,
            "status": self.status,
            "purchase_units": [{"amount": {"currency_code": "USD", "value": self.amount}}],
        }


class FakeSocialVerifier:
    """Accepts any token and returns a fixed profile."""

    def __init__(self, email="social@example.com", full_name="Social Person"):
        self.profile = SocialProfile(email=email, full_name=full_name, picture="https://example.com/p.png")

    async def google(self, id_token):
        return self.profile

    async def facebook(self, access_token):
        return self.profile


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the application at a fresh SQLite file and migrate it."""
    path = str(tmp_path / "research_store_test.db")
    monkeypatch.setattr(settings, "database_url", path)
    init_db()
    return path


@pytest.fixture
def client(db_path):
    """TestClient bound to the per-test database."""
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def paypal():
    """Fake PayPal that reports every order as captured."""
    fake = FakePayPal()
    app.dependency_overrides[get_paypal_client] = lambda: fake
    return fake


@pytest.fixture
def social_verifier():
    fake = FakeSocialVerifier()
    app.dependency_overrides[get_social_verifier] = lambda: fake
    return fake


# =============================================================================
# ACCOUNT FIXTURES
# =============================================================================

def signup_customer(client, email="jane@example.com", password="secret123", full_name="Jane Doe"):
    """Register a customer and return ``(token, user)``."""
    response = client.post(
        "/api/auth/signup",
        data={"email": email, "password": password, "full_name": full_name},
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return data["token"], data["user"]


def register_staff(client, email, password="staffpass", full_name="Staff Member"):
    """Register a staff member and return ``(token, manager)``."""
    response = client.post(
        "/api/manager/register",
        data={"email": email, "password": password, "full_name": full_name},
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return data["token"], data["manager"]


@pytest.fixture
def customer_token(client):
    token, _ = signup_customer(client)
    return token


@pytest.fixture
def manager_token(client):
    """The first staff account, which is always a manager."""
    token, manager = register_staff(client, "boss@example.com", full_name="Boss")
    assert manager["role"] == "manager"
    return token


@pytest.fixture
def employee_token(client, manager_token):
    token, manager = register_staff(client, "worker@example.com", full_name="Worker")
    assert manager["role"] == "employee"
    return token


def create_report(client, token, content=PDF_BYTES, **overrides):
    """Upload a report PDF through the API and return the report JSON."""
    form = {
        "report_name": "Global EV Market 2026",
        "industry": "Automotive",
        "cost": "199.00",
        "description": "Electric vehicle market sizing and forecast",
    }
    form.update(overrides)
    response = client.post(
        "/api/reports/",
        data=form,
        files={"file": ("ev.pdf", content, "application/pdf")},
        headers=auth(token),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def report(client, manager_token):
    return create_report(client, manager_token)
