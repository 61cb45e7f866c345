"""
Business logic for staff accounts.

Staff register themselves from the dashboard and start as ``employee``.
One account is promoted to ``manager`` at registration so a fresh
installation has someone who can promote the rest: the account whose
e-mail matches ``BOOTSTRAP_MANAGER_EMAIL`` while no manager exists, or,
when that setting is empty, the very first staff account.
"""

import logging
import sqlite3
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from research_store_api.app.core.config import settings
from research_store_api.app.core.db import get_connection, now_timestamp
from research_store_api.app.core.errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationFailed
from research_store_api.app.core.security import (
    MANAGER,
    MANAGER_RESET,
    ROLE_EMPLOYEE,
    ROLE_MANAGER,
    burn_password_check,
    create_access_token,
    create_reset_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from research_store_api.app.schemas.manager import ManagerCreate, ManagerProfileUpdate, ManagerRead
from research_store_api.app.services.asset_service import AssetService, BinaryAsset, asset_key_from_url, asset_url
from research_store_api.app.services.user_service import GENERIC_RESET_MESSAGE

logger = logging.getLogger(__name__)

MANAGER_COLUMNS = "id, email, full_name, last_name, phone, profile_pic, role, created_at, updated_at"


def issue_manager_token(manager: ManagerRead) -> str:
    return create_access_token(
        {"user_id": manager.id, "email": manager.email, "role": manager.role, "kind": MANAGER}
    )


class ManagerService:
    """Staff account operations backed by the ``manager_auth`` table."""

    @staticmethod
    def _is_bootstrap_manager(cursor: sqlite3.Cursor, email: str) -> bool:
        bootstrap_email = settings.bootstrap_manager_email.strip().lower()
        if bootstrap_email:
            if email.lower() != bootstrap_email:
                return False
            row = cursor.execute(
                "SELECT COUNT(*) AS count FROM manager_auth WHERE role = ?", (ROLE_MANAGER,)
            ).fetchone()
        else:
            row = cursor.execute("SELECT COUNT(*) AS count FROM manager_auth").fetchone()
        return row["count"] == 0

    @classmethod
    async def register(cls, data: ManagerCreate, photo: Optional[BinaryAsset] = None) -> ManagerRead:
        password_hash = await run_in_threadpool(hash_password, data.password)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            role = ROLE_MANAGER if cls._is_bootstrap_manager(cursor, data.email) else ROLE_EMPLOYEE
            profile_pic = asset_url(AssetService.put(cursor, photo)) if photo else None
            try:
                cursor.execute(
                    "INSERT INTO manager_auth (email, password, full_name, last_name, phone, profile_pic, role) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        data.email,
                        password_hash,
                        data.full_name,
                        data.last_name,
                        data.phone,
                        profile_pic,
                        role,
                    ),
                )
            except sqlite3.IntegrityError:
                raise Conflict("Manager already exists")
            manager_id = cursor.lastrowid
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Registered staff member %s as %s", manager_id, role)
        return await cls.get_manager(manager_id)

    @classmethod
    async def get_manager(cls, manager_id: int) -> ManagerRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {MANAGER_COLUMNS} FROM manager_auth WHERE id = ?", (manager_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Manager not found")
        return ManagerRead(**dict(row))

    @classmethod
    async def authenticate(cls, email: str, password: str) -> ManagerRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {MANAGER_COLUMNS}, password FROM manager_auth WHERE email = ?",
                (email,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            await run_in_threadpool(burn_password_check, password)
            raise Unauthorized("Invalid credentials")
        if not await run_in_threadpool(verify_password, password, row["password"]):
            logger.warning("Failed staff login for %s", row["id"])
            raise Unauthorized("Invalid credentials")
        return ManagerRead(**dict(row))

    @classmethod
    async def update_profile(
        cls,
        manager_id: int,
        data: ManagerProfileUpdate,
        photo: Optional[BinaryAsset] = None,
    ) -> ManagerRead:
        current = await cls.get_manager(manager_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if photo is not None:
                changes["profile_pic"] = asset_url(AssetService.put(cursor, photo))
                AssetService.delete(cursor, [asset_key_from_url(current.profile_pic)])
            if changes:
                assignments = ", ".join(f"{column} = ?" for column in changes)
                cursor.execute(
                    f"UPDATE manager_auth SET {assignments}, updated_at = ? WHERE id = ?",
                    (*changes.values(), now_timestamp(), manager_id),
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        return await cls.get_manager(manager_id)

    @classmethod
    async def request_password_reset(cls, email: str) -> str:
        from research_store_api.app.services.mail_service import MailService
        conn = get_connection()
        try:
            row = conn.execute("SELECT id, email FROM manager_auth WHERE email = ?", (email,)).fetchone()
        finally:
            conn.close()
        if row is not None:
            token = create_reset_token(row["id"], row["email"], MANAGER_RESET)
            await MailService.send_password_reset(row["email"], token, audience="staff")
            logger.info("Password reset issued for staff member %s", row["id"])
        return GENERIC_RESET_MESSAGE

    @classmethod
    async def reset_password(cls, token: str, new_password: str) -> None:
        payload = decode_access_token(token)
        if not payload or payload.get("kind") != MANAGER_RESET:
            raise ValidationFailed("Invalid or expired reset token")
        await cls.set_password(payload["user_id"], new_password)

    @classmethod
    async def set_password(cls, manager_id: int, new_password: str) -> None:
        password_hash = await run_in_threadpool(hash_password, new_password)
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE manager_auth SET password = ?, updated_at = ? WHERE id = ?",
                (password_hash, now_timestamp(), manager_id),
            )
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("Manager not found")

    @classmethod
    async def list_team(cls) -> List[ManagerRead]:
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {MANAGER_COLUMNS} FROM manager_auth ORDER BY created_at, id").fetchall()
        finally:
            conn.close()
        return [ManagerRead(**dict(row)) for row in rows]

    @classmethod
    async def update_role(cls, actor_id: int, manager_id: int, role: str) -> ManagerRead:
        """Change a staff member's role.  Managers cannot change their own."""
        if actor_id == manager_id:
            raise Forbidden("You cannot change your own role")
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE manager_auth SET role = ?, updated_at = ? WHERE id = ?",
                (role, now_timestamp(), manager_id),
            )
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("Team member not found")
        logger.info("Staff member %s set role of %s to %s", actor_id, manager_id, role)
        return await cls.get_manager(manager_id)
