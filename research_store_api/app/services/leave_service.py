"""
Business logic for staff leave requests.

Any staff member can file a request for themselves.  Managers see all
requests and approve or deny them; the decision records who made it
and when.
"""

import logging
from typing import List, Optional

from research_store_api.app.core.db import get_connection, now_timestamp
from research_store_api.app.core.errors import NotFound
from research_store_api.app.schemas.leave import LeaveCreate, LeaveDecision, LeaveRead

logger = logging.getLogger(__name__)

LEAVE_COLUMNS = (
    "id, employee_id, full_name, email, phone, from_date, to_date, reason, status, "
    "applied_date, response_date, response_by, comments"
)


class LeaveService:
    """Operations on the ``leaves`` table."""

    @classmethod
    async def submit(cls, employee_id: int, data: LeaveCreate) -> LeaveRead:
        conn = get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO leaves (employee_id, full_name, email, phone, from_date, to_date, reason) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    employee_id,
                    data.full_name,
                    data.email,
                    data.phone,
                    data.from_date.isoformat(),
                    data.to_date.isoformat(),
                    data.reason,
                ),
            )
            conn.commit()
            leave_id = cursor.lastrowid
        finally:
            conn.close()
        logger.info("Staff member %s requested leave %s", employee_id, leave_id)
        return await cls.get_leave(leave_id)

    @classmethod
    async def get_leave(cls, leave_id: int) -> LeaveRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {LEAVE_COLUMNS} FROM leaves WHERE id = ?", (leave_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Leave request not found")
        return LeaveRead(**dict(row))

    @classmethod
    async def list_leaves(cls, employee_id: Optional[int] = None) -> List[LeaveRead]:
        query = f"SELECT {LEAVE_COLUMNS} FROM leaves"
        params: tuple = ()
        if employee_id is not None:
            query += " WHERE employee_id = ?"
            params = (employee_id,)
        query += " ORDER BY applied_date DESC, id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [LeaveRead(**dict(row)) for row in rows]

    @classmethod
    async def decide(cls, leave_id: int, manager_id: int, decision: LeaveDecision) -> LeaveRead:
        now = now_timestamp()
        conn = get_connection()
        try:
            cursor = conn.execute(
                """
                UPDATE leaves
                SET status = ?, comments = ?, response_date = ?, response_by = ?, updated_at = ?
                WHERE id = ?
                """,
                (decision.status, decision.comments, now, manager_id, now, leave_id),
            )
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise NotFound("Leave request not found")
        logger.info("Leave %s %s by %s", leave_id, decision.status, manager_id)
        return await cls.get_leave(leave_id)
