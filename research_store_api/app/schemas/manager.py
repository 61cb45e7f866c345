"""Pydantic models for staff (manager and employee) accounts."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .user import normalize_email


class ManagerCreate(BaseModel):
    full_name: str = Field(..., min_length=1, examples=["Sam"])
    last_name: Optional[str] = Field(None, examples=["Taylor"])
    email: str = Field(..., examples=["sam@researchstore.io"])
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        return normalize_email(value)


class ManagerLogin(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.strip().lower()


class ManagerProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = None
    phone: Optional[str] = None


class ManagerRead(BaseModel):
    """Staff member as returned by the API.  Never includes the password hash."""

    id: int
    email: str
    full_name: str
    last_name: Optional[str] = None
    phone: Optional[str] = None
    profile_pic: Optional[str] = None
    role: Literal["manager", "employee"]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class ManagerAuthResult(BaseModel):
    token: str
    manager: ManagerRead


class RoleUpdate(BaseModel):
    role: Literal["manager", "employee"]
