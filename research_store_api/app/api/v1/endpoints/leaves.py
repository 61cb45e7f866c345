"""
Staff leave endpoints.

Every staff member files leave for themselves and can read their own
history.  Managers read every request and decide on them.
"""

from fastapi import APIRouter, Depends, Request, status

from research_store_api.app.core.errors import Forbidden
from research_store_api.app.core.security import ROLE_MANAGER, Identity, get_current_manager, require_role
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.schemas.leave import LeaveCreate, LeaveDecision
from research_store_api.app.services.audit_service import AuditService, client_ip
from research_store_api.app.services.leave_service import LeaveService


router = APIRouter()


@router.post("/", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def submit_leave(payload: LeaveCreate, current: Identity = Depends(get_current_manager)) -> Envelope:
    leave = await LeaveService.submit(current.subject_id, payload)
    return Envelope(message="Leave request submitted successfully", data=leave)


@router.get("/", response_model=Envelope)
async def list_leaves(current: Identity = Depends(require_role(ROLE_MANAGER))) -> Envelope:
    return Envelope(data=await LeaveService.list_leaves())


@router.get("/employee/{employee_id}", response_model=Envelope)
async def list_employee_leaves(employee_id: int, current: Identity = Depends(get_current_manager)) -> Envelope:
    """An employee may only read their own requests; managers may read anyone's."""
    if employee_id != current.subject_id and not current.is_manager:
        raise Forbidden("You can only view your own leave requests")
    return Envelope(data=await LeaveService.list_leaves(employee_id=employee_id))


@router.patch("/{leave_id}/status", response_model=Envelope)
async def decide_leave(
    leave_id: int,
    payload: LeaveDecision,
    request: Request,
    current: Identity = Depends(require_role(ROLE_MANAGER)),
) -> Envelope:
    leave = await LeaveService.decide(leave_id, current.subject_id, payload)
    await AuditService.log(current.subject_id, f"leave.{payload.status}", f"leave:{leave_id}", client_ip(request))
    return Envelope(message=f"Leave request {payload.status}", data=leave)
