"""
Security helpers: tokens, password hashing and the authentication gates.

Tokens are HS256 JSON Web Tokens built with ``hmac`` and base64url
encoding.  Every token carries a ``kind`` claim (``customer``,
``manager``, ``customer_reset`` or ``manager_reset``) and is only
accepted by the gate that expects that kind, so a customer id can
never be replayed as a staff id.

Passwords are hashed with PBKDF2-HMAC-SHA256 and a random 16-byte salt.
The stored string records the iteration count, so the work factor can
be raised later without invalidating existing hashes.

The FastAPI dependencies at the bottom of the module resolve the bearer
token to an ``Identity``.  Route handlers only ever see the identity,
never the raw token.
"""

import base64
import hashlib
import hmac
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

CUSTOMER = "customer"
MANAGER = "manager"
CUSTOMER_RESET = "customer_reset"
MANAGER_RESET = "manager_reset"

ROLE_MANAGER = "manager"
ROLE_EMPLOYEE = "employee"


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(claims: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT with the given claims.

    ``iat`` and ``exp`` are added to a copy of ``claims``.

    Parameters
    ----------
    claims : dict
        Claims to embed, e.g. ``{"user_id": 1, "kind": "customer"}``.
    expires_delta : Optional[int]
        Lifetime in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60`` (24 hours).

    Returns
    -------
    str
        ``header.payload.signature``, each part base64url encoded.
    """
    to_encode = dict(claims)
    issued_at = int(time.time())
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["iat"] = issued_at
    to_encode["exp"] = issued_at + exp_seconds
    header = {"alg": settings.algorithm, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def create_reset_token(subject_id: int, email: str, kind: str) -> str:
    """One-hour token that only the password reset handlers accept."""
    return create_access_token(
        {"user_id": subject_id, "email": email, "kind": kind},
        expires_delta=settings.reset_token_expire_minutes * 60,
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT and return its claims.

    Returns ``None`` when the token is malformed, the signature does
    not match or ``exp`` is in the past.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    try:
        actual_sig = _b64_url_decode(signature_b64)
        expected_sig = _sign(signing_input, settings.secret_key)
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    exp = data.get("exp")
    if not isinstance(exp, (int, float)) or exp < time.time():
        return None
    return data


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Hash a password using PBKDF2-HMAC with SHA-256.

    Returns ``"<iterations>$<salt hex>$<hash hex>"``.
    """
    rounds = iterations or settings.password_hash_iterations
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return f"{rounds}${salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check ``plain_password`` against a stored hash in constant time.

    Malformed stored values simply fail to verify.
    """
    try:
        rounds_text, salt_hex, hash_hex = hashed_password.split("$", 2)
        rounds = int(rounds_text)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except (AttributeError, ValueError):
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(dk, stored_hash)


_DUMMY_HASH: Optional[str] = None


def burn_password_check(plain_password: str) -> bool:
    """Spend the same hashing effort as a real check and return False.

    Used when the account does not exist, so a signin for an unknown
    e-mail takes as long as one with a wrong password.
    """
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = hash_password(os.urandom(16).hex())
    verify_password(plain_password, _DUMMY_HASH)
    return False


@dataclass
class Identity:
    """The authenticated caller, as resolved from a bearer token."""

    subject_id: int
    email: str
    kind: str
    role: Optional[str] = None

    @property
    def is_manager(self) -> bool:
        return self.kind == MANAGER and self.role == ROLE_MANAGER


security = HTTPBearer(auto_error=False)


def _claims_for(credentials: Optional[HTTPAuthorizationCredentials], kind: str) -> Dict[str, Any]:
    if credentials is None:
        raise Unauthorized("Authentication required")
    payload = decode_access_token(credentials.credentials)
    if not payload or payload.get("kind") != kind or not isinstance(payload.get("user_id"), int):
        logger.warning("Rejected %s token", kind)
        raise Unauthorized("Invalid or expired token")
    return payload


def get_current_customer(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Identity:
    """Resolve the bearer token to a customer identity.

    Missing header, wrong scheme, bad signature and expiry all give 401.
    A token whose customer was deleted or deactivated also gives 401.
    """
    payload = _claims_for(credentials, CUSTOMER)
    from research_store_api.app.core.db import get_connection
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, email, is_active FROM user_auth WHERE id = ?",
            (payload["user_id"],),
        ).fetchone()
    finally:
        conn.close()
    if not row:
        raise Unauthorized("User no longer exists", code="subject_not_found")
    if not row["is_active"]:
        raise Unauthorized("User account disabled")
    return Identity(subject_id=row["id"], email=row["email"], kind=CUSTOMER)


def get_current_manager(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Identity:
    """Resolve the bearer token to a staff identity.

    The role comes from the stored record rather than the token, so a
    promotion or demotion takes effect on the very next request.
    """
    payload = _claims_for(credentials, MANAGER)
    from research_store_api.app.core.db import get_connection
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, email, role FROM manager_auth WHERE id = ?",
            (payload["user_id"],),
        ).fetchone()
    finally:
        conn.close()
    if not row:
        raise Unauthorized("Manager no longer exists", code="subject_not_found")
    return Identity(subject_id=row["id"], email=row["email"], kind=MANAGER, role=row["role"])


def require_role(role: str) -> Callable[[Identity], Identity]:
    """Dependency factory that admits only staff with the given role.

    Use as ``Depends(require_role("manager"))``.  An unauthenticated
    request fails in ``get_current_manager`` with 401 before the role
    is looked at.
    """

    def _role_dependency(current: Identity = Depends(get_current_manager)) -> Identity:
        if current.role != role:
            raise Forbidden(f"Access denied. {role.capitalize()} role required.")
        return current

    return _role_dependency
