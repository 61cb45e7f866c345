"""
Audit log endpoint.

Managers can page through the record of staff actions, filtered by
staff member, action type or date range.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from research_store_api.app.core.security import ROLE_MANAGER, Identity, require_role
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.services.audit_service import AuditService


router = APIRouter()


@router.get("/logs", response_model=Envelope)
async def list_audit_logs(
    manager_id: Optional[int] = Query(None),
    action_type: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current: Identity = Depends(require_role(ROLE_MANAGER)),
) -> Envelope:
    logs = await AuditService.list_logs(
        manager_id=manager_id,
        action_type=action_type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return Envelope(data=logs)
