"""
Staff endpoints: account, team administration and customer administration.

Registration, login and the password reset pair are public.  Profile
endpoints need any staff token.  Team and customer administration
require the ``manager`` role and write an audit entry for every change.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status

from research_store_api.app.core.security import ROLE_MANAGER, Identity, get_current_manager, require_role
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.schemas.manager import (
    ManagerAuthResult,
    ManagerCreate,
    ManagerLogin,
    ManagerProfileUpdate,
    RoleUpdate,
)
from research_store_api.app.schemas.user import (
    BulkUserAction,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    UserCreate,
    UserStatusUpdate,
    UserSummary,
)
from research_store_api.app.services.asset_service import read_upload
from research_store_api.app.services.audit_service import AuditService, client_ip
from research_store_api.app.services.manager_service import ManagerService, issue_manager_token
from research_store_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/register", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def register_manager(
    full_name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    last_name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    profile_pic: Optional[UploadFile] = File(None),
) -> Envelope:
    """Register a staff member.

    The first account ever registered becomes a manager; the rest start
    as employees until a manager promotes them.
    """
    data = ManagerCreate(full_name=full_name, last_name=last_name, email=email, password=password, phone=phone)
    photo = await read_upload(profile_pic, "profile_pic", "image")
    manager = await ManagerService.register(data, photo)
    return Envelope(
        message="Manager registered successfully",
        data=ManagerAuthResult(token=issue_manager_token(manager), manager=manager),
    )


@router.post("/login", response_model=Envelope)
async def login_manager(credentials: ManagerLogin) -> Envelope:
    manager = await ManagerService.authenticate(credentials.email, credentials.password)
    return Envelope(
        message="Login successful",
        data=ManagerAuthResult(token=issue_manager_token(manager), manager=manager),
    )


@router.post("/forgot-password", response_model=Envelope)
async def forgot_password(payload: ForgotPasswordRequest) -> Envelope:
    return Envelope(message=await ManagerService.request_password_reset(payload.email))


@router.post("/reset-password", response_model=Envelope)
async def reset_password(payload: ResetPasswordRequest) -> Envelope:
    await ManagerService.reset_password(payload.token, payload.new_password)
    return Envelope(message="Password has been reset")


@router.get("/profile", response_model=Envelope)
async def get_profile(current: Identity = Depends(get_current_manager)) -> Envelope:
    return Envelope(data=await ManagerService.get_manager(current.subject_id))


@router.put("/profile", response_model=Envelope)
async def update_profile(
    full_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    profile_pic: Optional[UploadFile] = File(None),
    current: Identity = Depends(get_current_manager),
) -> Envelope:
    data = ManagerProfileUpdate(full_name=full_name, last_name=last_name, phone=phone)
    photo = await read_upload(profile_pic, "profile_pic", "image")
    manager = await ManagerService.update_profile(current.subject_id, data, photo)
    return Envelope(message="Profile updated successfully", data=manager)


# ---------------------------------------------------------------------------
# Team administration
# ---------------------------------------------------------------------------

@router.get("/team", response_model=Envelope)
async def list_team(current: Identity = Depends(require_role(ROLE_MANAGER))) -> Envelope:
    return Envelope(data=await ManagerService.list_team())


@router.patch("/team/{member_id}/role", response_model=Envelope)
async def update_team_role(
    member_id: int,
    payload: RoleUpdate,
    request: Request,
    current: Identity = Depends(require_role(ROLE_MANAGER)),
) -> Envelope:
    member = await ManagerService.update_role(current.subject_id, member_id, payload.role)
    await AuditService.log(current.subject_id, "team.role_change", f"manager:{member_id}:{payload.role}", client_ip(request))
    return Envelope(message="Role updated successfully", data=member)


# ---------------------------------------------------------------------------
# Customer administration
# ---------------------------------------------------------------------------

@router.get("/users", response_model=Envelope)
async def list_users(current: Identity = Depends(require_role(ROLE_MANAGER))) -> Envelope:
    users: List[UserSummary] = await UserService.list_users()
    return Envelope(data=users)


@router.post("/users", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def add_user(
    payload: UserCreate,
    request: Request,
    current: Identity = Depends(require_role(ROLE_MANAGER)),
) -> Envelope:
    user = await UserService.create_user(payload)
    await AuditService.log(current.subject_id, "user.create", f"user:{user.id}", client_ip(request))
    return Envelope(message="User added successfully", data=user)


@router.put("/users/{user_id}/status", response_model=Envelope)
async def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    request: Request,
    current: Identity = Depends(require_role(ROLE_MANAGER)),
) -> Envelope:
    user = await UserService.set_status(user_id, payload.is_active)
    action = "user.activate" if payload.is_active else "user.deactivate"
    await AuditService.log(current.subject_id, action, f"user:{user_id}", client_ip(request))
    return Envelope(message="User status updated successfully", data=user)


@router.delete("/users/{user_id}", response_model=Envelope)
async def delete_user(
    user_id: int,
    request: Request,
    current: Identity = Depends(require_role(ROLE_MANAGER)),
) -> Envelope:
    await UserService.delete_user(user_id)
    await AuditService.log(current.subject_id, "user.delete", f"user:{user_id}", client_ip(request))
    return Envelope(message="User deleted successfully")


@router.post("/users/bulk-action", response_model=Envelope)
async def bulk_user_action(
    payload: BulkUserAction,
    request: Request,
    current: Identity = Depends(require_role(ROLE_MANAGER)),
) -> Envelope:
    affected = await UserService.bulk_action(payload.user_ids, payload.action)
    target = "users:" + ",".join(str(user_id) for user_id in payload.user_ids)
    await AuditService.log(current.subject_id, f"user.bulk_{payload.action}", target, client_ip(request))
    return Envelope(message=f"Bulk {payload.action} completed", data={"affected": affected})
