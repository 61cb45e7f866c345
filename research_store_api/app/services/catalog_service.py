"""
Small records that sit next to the catalog.

* Categories: the industry taxonomy managers maintain for the storefront.
* Addresses: saved billing addresses owned by a customer.
* Engagement: per customer and report view counter and reading progress.
"""

import logging
import sqlite3
from typing import List

from research_store_api.app.core.db import get_connection, now_timestamp
from research_store_api.app.core.errors import Conflict, NotFound
from research_store_api.app.schemas.catalog import (
    AddressCreate,
    AddressRead,
    CategoryCreate,
    CategoryRead,
    EngagementRead,
    EngagementUpdate,
)
from research_store_api.app.services.report_service import ReportService

logger = logging.getLogger(__name__)


class CategoryService:
    @classmethod
    async def list_categories(cls) -> List[CategoryRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT id, category_name, description, created_at FROM categories ORDER BY category_name"
            ).fetchall()
        finally:
            conn.close()
        return [CategoryRead(**dict(row)) for row in rows]

    @classmethod
    async def create_category(cls, data: CategoryCreate) -> CategoryRead:
        conn = get_connection()
        try:
            try:
                cursor = conn.execute(
                    "INSERT INTO categories (category_name, description) VALUES (?, ?)",
                    (data.category_name.strip(), data.description),
                )
            except sqlite3.IntegrityError:
                raise Conflict("Category already exists")
            conn.commit()
            row = conn.execute(
                "SELECT id, category_name, description, created_at FROM categories WHERE id = ?",
                (cursor.lastrowid,),
            ).fetchone()
        finally:
            conn.close()
        return CategoryRead(**dict(row))

    @classmethod
    async def delete_category(cls, category_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("Category not found")


class AddressService:
    ADDRESS_COLUMNS = "id, user_id, address_line1, address_line2, locality, city, pin_code, country, created_at"

    @classmethod
    async def list_for_user(cls, user_id: int) -> List[AddressRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {cls.ADDRESS_COLUMNS} FROM addresses WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        return [AddressRead(**dict(row)) for row in rows]

    @classmethod
    async def create(cls, user_id: int, data: AddressCreate) -> AddressRead:
        conn = get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO addresses (user_id, address_line1, address_line2, locality, city, pin_code, country) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    user_id,
                    data.address_line1,
                    data.address_line2,
                    data.locality,
                    data.city,
                    data.pin_code,
                    data.country,
                ),
            )
            conn.commit()
            row = conn.execute(
                f"SELECT {cls.ADDRESS_COLUMNS} FROM addresses WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        finally:
            conn.close()
        return AddressRead(**dict(row))

    @classmethod
    async def delete(cls, user_id: int, address_id: int) -> None:
        """Delete one of the caller's addresses.  Other customers' ids look missing."""
        conn = get_connection()
        try:
            cursor = conn.execute(
                "DELETE FROM addresses WHERE id = ? AND user_id = ?", (address_id, user_id)
            )
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("Address not found")


class EngagementService:
    ENGAGEMENT_COLUMNS = "id, user_id, report_id, views, reading_progress, last_accessed"

    @classmethod
    async def record_view(cls, user_id: int, report_id: int, data: EngagementUpdate) -> EngagementRead:
        """Count a view and, when given, store the reading progress.

        Insert and increment are one upsert so concurrent views from the
        same customer are all counted.  Progress never moves backwards.
        """
        await ReportService.ensure_exists(report_id)
        progress = data.reading_progress if data.reading_progress is not None else 0
        now = now_timestamp()
        conn = get_connection()
        try:
            conn.execute(
                """
                INSERT INTO engagements (user_id, report_id, views, reading_progress, last_accessed, updated_at)
                VALUES (?, ?, 1, ?, ?, ?)
                ON CONFLICT (user_id, report_id) DO UPDATE SET
                    views = views + 1,
                    reading_progress = MAX(reading_progress, excluded.reading_progress),
                    last_accessed = excluded.last_accessed,
                    updated_at = excluded.updated_at
                """,
                (user_id, report_id, progress, now, now),
            )
            conn.commit()
            row = conn.execute(
                f"SELECT {cls.ENGAGEMENT_COLUMNS} FROM engagements WHERE user_id = ? AND report_id = ?",
                (user_id, report_id),
            ).fetchone()
        finally:
            conn.close()
        return EngagementRead(**dict(row))

    @classmethod
    async def list_all(cls) -> List[EngagementRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {cls.ENGAGEMENT_COLUMNS} FROM engagements ORDER BY last_accessed DESC, id DESC"
            ).fetchall()
        finally:
            conn.close()
        return [EngagementRead(**dict(row)) for row in rows]
