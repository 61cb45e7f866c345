"""
Business logic for customer accounts.

Covers self-service signup and signin, profile maintenance, password
resets, social sign-in and the staff-side customer administration.
Passwords are stored as PBKDF2 hashes (see ``core.security``) and
are never selected into a response model.
"""

import logging
import secrets
import sqlite3
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from research_store_api.app.core.db import get_connection, now_timestamp
from research_store_api.app.core.errors import Conflict, NotFound, Unauthorized, ValidationFailed
from research_store_api.app.core.security import (
    CUSTOMER,
    CUSTOMER_RESET,
    burn_password_check,
    create_access_token,
    create_reset_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from research_store_api.app.schemas.user import ProfileUpdate, UserCreate, UserRead, UserSummary
from research_store_api.app.services.asset_service import AssetService, BinaryAsset, asset_key_from_url, asset_url

logger = logging.getLogger(__name__)

USER_COLUMNS = (
    "id, email, full_name, phone, nationality, profile_pic, is_active, address_line1, address_line2, "
    "city, state, zip_code, country, auth_provider, created_at, updated_at"
)

GENERIC_RESET_MESSAGE = "If an account exists for this email, password reset instructions have been sent"


def issue_customer_token(user: UserRead) -> str:
    return create_access_token({"user_id": user.id, "email": user.email, "kind": CUSTOMER})


class UserService:
    """Customer account operations backed by the ``user_auth`` table."""

    @classmethod
    def insert_user(
        cls,
        cursor: sqlite3.Cursor,
        email: str,
        password_hash: str,
        full_name: str,
        phone: Optional[str] = None,
        nationality: Optional[str] = None,
        profile_pic: Optional[str] = None,
        auth_provider: str = "local",
        address: Optional[dict] = None,
    ) -> int:
        """Insert a customer row on the caller's cursor and return its id.

        ``password_hash`` is already hashed; callers hash off the event
        loop with ``run_in_threadpool``.

        Raises ``Conflict`` when the e-mail is taken.  The checkout flow
        calls this inside its own transaction.
        """
        address = address or {}
        try:
            cursor.execute(
                "INSERT INTO user_auth (email, password, full_name, phone, nationality, profile_pic, auth_provider, "
                "address_line1, address_line2, city, state, zip_code, country) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    email,
                    password_hash,
                    full_name,
                    phone,
                    nationality,
                    profile_pic,
                    auth_provider,
                    address.get("address_line1"),
                    address.get("address_line2"),
                    address.get("city"),
                    address.get("state"),
                    address.get("zip_code"),
                    address.get("country"),
                ),
            )
        except sqlite3.IntegrityError:
            raise Conflict("User already exists")
        return cursor.lastrowid

    @classmethod
    async def create_user(cls, data: UserCreate, photo: Optional[BinaryAsset] = None) -> UserRead:
        """Register a customer with an optional profile picture.

        The e-mail uniqueness check is the table constraint, so two
        concurrent signups for the same address cannot both succeed.
        """
        password_hash = await run_in_threadpool(hash_password, data.password)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            profile_pic = asset_url(AssetService.put(cursor, photo)) if photo else None
            user_id = cls.insert_user(
                cursor,
                email=data.email,
                password_hash=password_hash,
                full_name=data.full_name,
                phone=data.phone,
                nationality=data.nationality,
                profile_pic=profile_pic,
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Registered customer %s", user_id)
        return await cls.get_user(user_id)

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM user_auth WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("User not found")
        return UserRead(**dict(row))

    @classmethod
    async def find_by_email(cls, email: str) -> Optional[UserRead]:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM user_auth WHERE email = ?", (email,)).fetchone()
        finally:
            conn.close()
        return UserRead(**dict(row)) if row else None

    @classmethod
    async def authenticate(cls, email: str, password: str) -> UserRead:
        """Return the customer for valid credentials, else raise ``Unauthorized``.

        Unknown e-mail and wrong password produce the same error after
        the same amount of hashing work.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS}, password FROM user_auth WHERE email = ?",
                (email,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            await run_in_threadpool(burn_password_check, password)
            raise Unauthorized("Invalid email or password")
        if not await run_in_threadpool(verify_password, password, row["password"]):
            logger.warning("Failed signin for customer %s", row["id"])
            raise Unauthorized("Invalid email or password")
        if not row["is_active"]:
            raise Unauthorized("User account disabled")
        return UserRead(**dict(row))

    @classmethod
    async def update_profile(cls, user_id: int, data: ProfileUpdate) -> UserRead:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if changes:
            assignments = ", ".join(f"{column} = ?" for column in changes)
            conn = get_connection()
            try:
                cursor = conn.execute(
                    f"UPDATE user_auth SET {assignments}, updated_at = ? WHERE id = ?",
                    (*changes.values(), now_timestamp(), user_id),
                )
                conn.commit()
            finally:
                conn.close()
            if cursor.rowcount == 0:
                raise NotFound("User not found")
        return await cls.get_user(user_id)

    @classmethod
    async def update_photo(cls, user_id: int, photo: BinaryAsset) -> UserRead:
        """Replace the profile picture and drop the previous stored one."""
        current = await cls.get_user(user_id)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            key = AssetService.put(cursor, photo)
            cursor.execute(
                "UPDATE user_auth SET profile_pic = ?, updated_at = ? WHERE id = ?",
                (asset_url(key), now_timestamp(), user_id),
            )
            AssetService.delete(cursor, [asset_key_from_url(current.profile_pic)])
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        return await cls.get_user(user_id)

    @classmethod
    async def request_password_reset(cls, email: str) -> str:
        """Start a password reset and return the message shown to the caller.

        The message is the same whether or not the account exists, and
        the reset token only ever goes to the mail service.
        """
        from research_store_api.app.services.mail_service import MailService
        user = await cls.find_by_email(email)
        if user is not None:
            token = create_reset_token(user.id, user.email, CUSTOMER_RESET)
            await MailService.send_password_reset(user.email, token)
            logger.info("Password reset issued for customer %s", user.id)
        return GENERIC_RESET_MESSAGE

    @classmethod
    async def reset_password(cls, token: str, new_password: str) -> None:
        payload = decode_access_token(token)
        if not payload or payload.get("kind") != CUSTOMER_RESET:
            raise ValidationFailed("Invalid or expired reset token")
        await cls.set_password(payload["user_id"], new_password)

    @classmethod
    async def set_password(cls, user_id: int, new_password: str) -> None:
        password_hash = await run_in_threadpool(hash_password, new_password)
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE user_auth SET password = ?, updated_at = ? WHERE id = ?",
                (password_hash, now_timestamp(), user_id),
            )
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("User not found")

    @classmethod
    async def find_or_create_social(
        cls,
        email: str,
        full_name: str,
        picture: Optional[str],
        provider: str,
    ) -> UserRead:
        """Return the customer for a verified social e-mail, creating one if needed.

        New accounts get a random password nobody knows; they can set
        a real one through the reset flow.
        """
        existing = await cls.find_by_email(email)
        if existing is not None:
            if not existing.is_active:
                raise Unauthorized("User account disabled")
            return existing
        password_hash = await run_in_threadpool(hash_password, secrets.token_urlsafe(24))
        conn = get_connection()
        try:
            cursor = conn.cursor()
            try:
                user_id = cls.insert_user(
                    cursor,
                    email=email,
                    password_hash=password_hash,
                    full_name=full_name or email.split("@")[0],
                    profile_pic=picture,
                    auth_provider=provider,
                )
            except Conflict:
                # Lost a race with a concurrent first sign-in for the same address.
                conn.rollback()
                return await cls.find_by_email(email)
            conn.commit()
        finally:
            conn.close()
        logger.info("Created customer %s from %s sign-in", user_id, provider)
        return await cls.get_user(user_id)

    # ------------------------------------------------------------------
    # Staff-side administration
    # ------------------------------------------------------------------

    @classmethod
    async def list_users(cls) -> List[UserSummary]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT id, full_name, email, phone, is_active, updated_at FROM user_auth ORDER BY created_at DESC, id DESC"
            ).fetchall()
        finally:
            conn.close()
        return [
            UserSummary(
                id=row["id"],
                full_name=row["full_name"],
                email=row["email"],
                phone=row["phone"],
                status="active" if row["is_active"] else "inactive",
                last_active=row["updated_at"],
            )
            for row in rows
        ]

    @classmethod
    async def set_status(cls, user_id: int, is_active: bool) -> UserRead:
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE user_auth SET is_active = ?, updated_at = ? WHERE id = ?",
                (int(is_active), now_timestamp(), user_id),
            )
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("User not found")
        return await cls.get_user(user_id)

    @classmethod
    async def delete_user(cls, user_id: int) -> None:
        """Delete a customer.  Entitlements, queries and addresses go with it;
        payment records stay with their user reference cleared."""
        user = await cls.get_user(user_id)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM user_auth WHERE id = ?", (user_id,))
            AssetService.delete(cursor, [asset_key_from_url(user.profile_pic)])
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Deleted customer %s", user_id)

    @classmethod
    async def bulk_action(cls, user_ids: List[int], action: str) -> int:
        """Apply ``activate``, ``deactivate`` or ``delete`` to many customers.

        Returns the number of rows affected.  Unknown ids are ignored.
        """
        placeholders = ", ".join("?" for _ in user_ids)
        conn = get_connection()
        try:
            if action == "delete":
                pictures = conn.execute(
                    f"SELECT profile_pic FROM user_auth WHERE id IN ({placeholders})", user_ids
                ).fetchall()
                cursor = conn.execute(f"DELETE FROM user_auth WHERE id IN ({placeholders})", user_ids)
                AssetService.delete(conn.cursor(), [asset_key_from_url(row["profile_pic"]) for row in pictures])
            else:
                cursor = conn.execute(
                    f"UPDATE user_auth SET is_active = ?, updated_at = ? WHERE id IN ({placeholders})",
                    (1 if action == "activate" else 0, now_timestamp(), *user_ids),
                )
            conn.commit()
            affected = cursor.rowcount
        finally:
            conn.close()
        logger.info("Bulk %s applied to %d customers", action, affected)
        return affected
