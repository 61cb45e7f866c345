"""
Pydantic models for the report catalog.

Binary payloads (the PDF, thumbnail and sample) are never part of a
JSON response.  ``ReportRead`` only says whether a thumbnail or sample
exists and what MIME type it has; the bytes are served by dedicated
endpoints.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ReportStatus = Literal["active", "archived", "draft"]


class ReportCreate(BaseModel):
    report_name: str = Field(..., min_length=1, examples=["Global EV Battery Market 2026"])
    industry: str = Field(..., min_length=1, examples=["Automotive"])
    cost: float = Field(..., ge=0, examples=[499.0])
    description: str = Field(..., min_length=1)
    serial_number: Optional[str] = Field(None, examples=["RS-0042"])
    status: ReportStatus = "draft"


class ReportUpdate(BaseModel):
    report_name: Optional[str] = Field(None, min_length=1)
    industry: Optional[str] = Field(None, min_length=1)
    cost: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, min_length=1)
    serial_number: Optional[str] = None
    status: Optional[ReportStatus] = None


class ReportRead(BaseModel):
    id: int
    serial_number: Optional[str] = None
    report_name: str
    industry: str
    cost: float
    size: str
    status: ReportStatus
    file_type: str = "PDF"
    description: str
    has_thumbnail: bool = False
    thumbnail_type: Optional[str] = None
    has_sample_pdf: bool = False
    sample_pdf_type: Optional[str] = None
    upload_date: Optional[str] = None
    last_modified: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PreviewSection(BaseModel):
    title: str
    content: str


class PreviewMetadata(BaseModel):
    size: str
    last_modified: Optional[str] = None
    cost: float
    total_pages: int


class ReportPreview(BaseModel):
    report_name: str
    sections: List[PreviewSection]
    metadata: PreviewMetadata
