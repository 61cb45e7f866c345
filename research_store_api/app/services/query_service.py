"""
Business logic for customer queries.

Customers open queries and read their own; staff see all of them,
change their status freely and answer them.  Answering always moves a
query to ``in-progress``; resolving it is a separate status change.
"""

import logging
from typing import List

from research_store_api.app.core.db import get_connection, now_timestamp
from research_store_api.app.core.errors import NotFound
from research_store_api.app.schemas.query import QueryCreate, QueryRead

logger = logging.getLogger(__name__)

QUERY_SELECT = """
    SELECT q.id, q.user_id, q.subject, q.message, q.status, q.priority, q.manager_response,
           q.responded_at, q.responded_by, q.created_at, q.updated_at,
           u.full_name AS user_full_name, u.email AS user_email
    FROM customer_queries q
    LEFT JOIN user_auth u ON u.id = q.user_id
"""


class QueryService:
    """Operations on the ``customer_queries`` table."""

    @classmethod
    async def create_query(cls, user_id: int, data: QueryCreate) -> QueryRead:
        conn = get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO customer_queries (user_id, subject, message, priority) VALUES (?, ?, ?, ?)",
                (user_id, data.subject, data.message, data.priority),
            )
            conn.commit()
            query_id = cursor.lastrowid
        finally:
            conn.close()
        logger.info("Customer %s opened query %s", user_id, query_id)
        return await cls.get_query(query_id)

    @classmethod
    async def get_query(cls, query_id: int) -> QueryRead:
        conn = get_connection()
        try:
            row = conn.execute(QUERY_SELECT + " WHERE q.id = ?", (query_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Query not found")
        return QueryRead(**dict(row))

    @classmethod
    async def list_for_user(cls, user_id: int) -> List[QueryRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                QUERY_SELECT + " WHERE q.user_id = ? ORDER BY q.created_at DESC, q.id DESC",
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        return [QueryRead(**dict(row)) for row in rows]

    @classmethod
    async def list_all(cls) -> List[QueryRead]:
        conn = get_connection()
        try:
            rows = conn.execute(QUERY_SELECT + " ORDER BY q.created_at DESC, q.id DESC").fetchall()
        finally:
            conn.close()
        return [QueryRead(**dict(row)) for row in rows]

    @classmethod
    async def update_status(cls, query_id: int, status: str) -> QueryRead:
        """Set any of the three statuses; there is no transition guard."""
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE customer_queries SET status = ?, updated_at = ? WHERE id = ?",
                (status, now_timestamp(), query_id),
            )
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("Query not found")
        return await cls.get_query(query_id)

    @classmethod
    async def respond(cls, query_id: int, manager_id: int, response: str) -> QueryRead:
        now = now_timestamp()
        conn = get_connection()
        try:
            cursor = conn.execute(
                """
                UPDATE customer_queries
                SET manager_response = ?, responded_at = ?, responded_by = ?,
                    status = 'in-progress', updated_at = ?
                WHERE id = ?
                """,
                (response, now, manager_id, now, query_id),
            )
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("Query not found")
        logger.info("Staff member %s answered query %s", manager_id, query_id)
        return await cls.get_query(query_id)

    @classmethod
    async def delete_query(cls, query_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.execute("DELETE FROM customer_queries WHERE id = ?", (query_id,))
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("Query not found")
