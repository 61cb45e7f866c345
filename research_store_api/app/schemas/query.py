"""
Pydantic schemas for customer queries.

A query is a support message a signed-in customer sends to staff.
Staff can move it through ``pending``, ``in-progress`` and
``resolved`` in any order and attach a single response.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

QueryStatus = Literal["pending", "in-progress", "resolved"]
QueryPriority = Literal["high", "medium", "low"]


class QueryCreate(BaseModel):
    subject: str = Field(..., min_length=1, examples=["Invoice request"])
    message: str = Field(..., min_length=1, examples=["Could you send a VAT invoice for my last order?"])
    priority: QueryPriority = "medium"


class QueryStatusUpdate(BaseModel):
    status: QueryStatus


class QueryRespond(BaseModel):
    response: str = Field(..., min_length=1)


class QueryRead(BaseModel):
    id: int
    user_id: int
    subject: str
    message: str
    status: QueryStatus
    priority: QueryPriority
    manager_response: Optional[str] = None
    responded_at: Optional[str] = None
    responded_by: Optional[int] = None
    user_full_name: Optional[str] = None
    user_email: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
