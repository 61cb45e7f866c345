"""
Pydantic schemas for the small owned records around the catalog:
categories, customer addresses and reading engagement.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    category_name: str = Field(..., min_length=1, examples=["Healthcare"])
    description: Optional[str] = None


class CategoryRead(CategoryCreate):
    id: int
    created_at: Optional[str] = None


class AddressCreate(BaseModel):
    address_line1: str = Field(..., min_length=1)
    address_line2: Optional[str] = None
    locality: Optional[str] = None
    city: str = Field(..., min_length=1)
    pin_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class AddressRead(AddressCreate):
    id: int
    user_id: int
    created_at: Optional[str] = None


class EngagementUpdate(BaseModel):
    reading_progress: Optional[float] = Field(None, ge=0, le=100)


class EngagementRead(BaseModel):
    id: int
    user_id: int
    report_id: int
    views: int
    reading_progress: float
    last_accessed: Optional[str] = None
