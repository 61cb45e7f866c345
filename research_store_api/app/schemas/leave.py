"""Pydantic schemas for staff leave requests."""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

LeaveStatus = Literal["pending", "approved", "denied"]


class LeaveCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    from_date: date = Field(..., examples=["2026-11-02"])
    to_date: date = Field(..., examples=["2026-11-06"])
    reason: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_range(self) -> "LeaveCreate":
        if self.from_date > self.to_date:
            raise ValueError("from_date must not be after to_date")
        return self


class LeaveDecision(BaseModel):
    status: Literal["approved", "denied"]
    comments: Optional[str] = None


class LeaveRead(BaseModel):
    id: int
    employee_id: int
    full_name: str
    email: str
    phone: str
    from_date: str
    to_date: str
    reason: str
    status: LeaveStatus
    applied_date: Optional[str] = None
    response_date: Optional[str] = None
    response_by: Optional[int] = None
    comments: Optional[str] = None
