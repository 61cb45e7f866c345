"""Pydantic schema for staff audit entries."""

from typing import Optional

from pydantic import BaseModel


class AuditLogRead(BaseModel):
    id: int
    manager_id: Optional[int] = None
    action_type: str
    target: str
    ip_address: Optional[str] = None
    timestamp: str
