"""
Token and password hashing tests.

Tests verify:
1. Access tokens round-trip their claims and carry iat/exp
2. Tampered, malformed and expired tokens are rejected
3. PBKDF2 hashes verify only the original password
"""

import time
from unittest.mock import patch

from research_store_api.app.core.security import (
    CUSTOMER,
    CUSTOMER_RESET,
    Identity,
    MANAGER,
    ROLE_EMPLOYEE,
    ROLE_MANAGER,
    burn_password_check,
    create_access_token,
    create_reset_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestAccessTokens:
    """Signed token creation and verification."""

    def test_round_trip_keeps_claims(self):
        token = create_access_token({"user_id": 7, "email": "a@b.co", "kind": CUSTOMER})
        claims = decode_access_token(token)
        assert claims["user_id"] == 7
        assert claims["kind"] == CUSTOMER
        assert claims["exp"] - claims["iat"] == 24 * 60 * 60

    def test_tampered_payload_is_rejected(self):
        token = create_access_token({"user_id": 7, "kind": CUSTOMER})
        header, payload, signature = token.split(".")
        forged = create_access_token({"user_id": 8, "kind": CUSTOMER}).split(".")[1]
        assert decode_access_token(f"{header}.{forged}.{signature}") is None

    def test_malformed_tokens_are_rejected(self):
        assert decode_access_token("not-a-token") is None
        assert decode_access_token("a.b.c") is None

    def test_expired_token_is_rejected(self):
        token = create_access_token({"user_id": 1, "kind": CUSTOMER}, expires_delta=10)
        with patch("research_store_api.app.core.security.time.time", return_value=time.time() + 60):
            assert decode_access_token(token) is None

    def test_reset_token_has_its_own_kind_and_short_lifetime(self):
        claims = decode_access_token(create_reset_token(3, "a@b.co", CUSTOMER_RESET))
        assert claims["kind"] == CUSTOMER_RESET
        assert claims["exp"] - claims["iat"] == 60 * 60


class TestPasswordHashing:
    """PBKDF2 storage format and verification."""

    def test_hash_format_and_verification(self):
        stored = hash_password("secret123", iterations=1000)
        rounds, salt, digest = stored.split("$")
        assert rounds == "1000"
        assert len(salt) == 32
        assert verify_password("secret123", stored)
        assert not verify_password("secret124", stored)

    def test_same_password_gets_different_salts(self):
        assert hash_password("secret123") != hash_password("secret123")

    def test_malformed_stored_hash_never_verifies(self):
        assert not verify_password("secret123", "plaintext")
        assert not verify_password("secret123", "")

    def test_burn_check_always_fails(self):
        assert burn_password_check("anything") is False


class TestIdentity:
    def test_only_staff_with_manager_role_is_manager(self):
        assert Identity(1, "m@x.co", MANAGER, ROLE_MANAGER).is_manager
        assert not Identity(2, "e@x.co", MANAGER, ROLE_EMPLOYEE).is_manager
        assert not Identity(3, "c@x.co", CUSTOMER).is_manager
