"""Pydantic schemas for sales leads captured from report pages."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .user import normalize_email


class PotentialCustomerCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    business_email: str = Field(..., examples=["buyer@company.com"])
    contact_number: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    job_title: str = Field(..., min_length=1)
    company_name: str = Field(..., min_length=1)
    report_id: int

    @field_validator("business_email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        return normalize_email(value)


class PotentialCustomerRead(PotentialCustomerCreate):
    id: int
    created_at: Optional[str] = None
