"""
Audit service for recording and querying staff actions.

Staff-side mutations (role changes, customer status changes and
deletions, report edits, leave decisions) are written to the
``audit_logs`` table together with the acting staff member and their
IP address.  Only managers can read the log.
"""

import logging
import sqlite3
from typing import Any, List, Optional

from fastapi import Request

from research_store_api.app.core.db import get_connection
from research_store_api.app.schemas.audit import AuditLogRead

logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing and retrieving audit logs."""

    @classmethod
    async def log(
        cls,
        manager_id: Optional[int],
        action_type: str,
        target: str,
        ip_address: Optional[str] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        manager_id : Optional[int]
            ID of the staff member performing the action.
        action_type : str
            Short action name, e.g. ``"user.delete"`` or ``"report.update"``.
        target : str
            What the action applied to, e.g. ``"user:12"``.
        ip_address : Optional[str]
            Client address of the request, when known.

        A failed audit write is logged and does not fail the action
        that triggered it.
        """
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO audit_logs (manager_id, action_type, target, ip_address) VALUES (?, ?, ?, ?)",
                (manager_id, action_type, target, ip_address),
            )
            conn.commit()
        except sqlite3.Error:
            logger.warning("Could not write audit entry %s for %s", action_type, target, exc_info=True)
        finally:
            conn.close()

    @classmethod
    async def list_logs(
        cls,
        manager_id: Optional[int] = None,
        action_type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogRead]:
        """Return audit records, newest first, with optional filters.

        Date filters accept ``YYYY-MM-DD`` and are inclusive.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if manager_id is not None:
            where_clauses.append("manager_id = ?")
            params.append(manager_id)
        if action_type:
            where_clauses.append("action_type = ?")
            params.append(action_type)
        if start_date:
            where_clauses.append("date(timestamp) >= date(?)")
            params.append(start_date)
        if end_date:
            where_clauses.append("date(timestamp) <= date(?)")
            params.append(end_date)
        query = "SELECT id, manager_id, action_type, target, ip_address, timestamp FROM audit_logs"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [AuditLogRead(**dict(row)) for row in rows]


def client_ip(request: Request) -> Optional[str]:
    """Address of the caller as seen by the server."""
    return request.client.host if request.client else None
