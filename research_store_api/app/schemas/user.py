"""
Pydantic models for customer accounts.

E-mail addresses are validated with the same permissive pattern the
checkout form uses and stored lowercased.  ``UserRead`` has no password
field, so a hash can never reach a response.
"""

import re
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")


def normalize_email(value: str) -> str:
    """Trim and lowercase an address, rejecting anything that does not look like one."""
    email = (value or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Please provide a valid email address")
    return email


class UserCreate(BaseModel):
    """Schema for registering a customer."""

    email: str = Field(..., examples=["jane@example.com"])
    password: str = Field(..., min_length=6, examples=["secret123"])
    full_name: str = Field(..., min_length=1, examples=["Jane Doe"])
    phone: Optional[str] = Field(None, examples=["+1 555 0100"])
    nationality: Optional[str] = Field(None, examples=["Canadian"])

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        return normalize_email(value)


class SigninRequest(BaseModel):
    email: str = Field(..., examples=["jane@example.com"])
    password: str = Field(..., examples=["secret123"])

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.strip().lower()


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., examples=["jane@example.com"])

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.strip().lower()


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6)


class ProfileUpdate(BaseModel):
    """Fields a customer may change on their own profile.  All optional."""

    full_name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    nationality: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class UserRead(BaseModel):
    """Schema for reading a customer from the API."""

    id: int
    email: str
    full_name: str
    phone: Optional[str] = None
    nationality: Optional[str] = None
    profile_pic: Optional[str] = None
    is_active: bool = True
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    auth_provider: str = "local"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class AuthResult(BaseModel):
    token: str
    user: UserRead


class UserSummary(BaseModel):
    """Row of the staff-facing customer list."""

    id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    status: Literal["active", "inactive"]
    last_active: Optional[str] = None


class UserStatusUpdate(BaseModel):
    is_active: bool


class BulkUserAction(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)
    action: Literal["activate", "deactivate", "delete"]


class SocialTokenRequest(BaseModel):
    """Google sends an ID token, Facebook an access token."""

    token: Optional[str] = None
    access_token: Optional[str] = None
