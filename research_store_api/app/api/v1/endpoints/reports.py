"""
Report catalog endpoints.

Browsing and the binary endpoints are public.  Creating, editing and
deleting reports needs a staff token.  Uploads are multipart with the
parts ``file`` (the report PDF), ``thumbnail`` (an image) and
``sample_pdf``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from research_store_api.app.core.errors import ValidationFailed
from research_store_api.app.core.security import Identity, get_current_manager
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.schemas.report import ReportCreate, ReportUpdate
from research_store_api.app.services.asset_service import BinaryAsset, read_upload
from research_store_api.app.services.audit_service import AuditService, client_ip
from research_store_api.app.services.report_service import ReportService


router = APIRouter()


def _binary_response(asset: BinaryAsset, disposition: Optional[str] = None) -> Response:
    headers = {"Content-Disposition": disposition} if disposition else None
    return Response(content=asset.content, media_type=asset.content_type, headers=headers)


def _quoted(name: str) -> str:
    # Header values must be latin-1; keep the ASCII part of the name.
    return name.encode("ascii", "ignore").decode("ascii").replace('"', "'")


@router.get("/", response_model=Envelope)
async def list_reports() -> Envelope:
    """List every report without its binaries."""
    return Envelope(data=await ReportService.list_reports())


@router.get("/industry/{industry}", response_model=Envelope)
async def list_reports_by_industry(industry: str) -> Envelope:
    return Envelope(data=await ReportService.list_reports(industry=industry))


@router.post("/", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def create_report(
    request: Request,
    report_name: str = Form(...),
    industry: str = Form(...),
    cost: float = Form(...),
    description: str = Form(...),
    serial_number: Optional[str] = Form(None),
    report_status: str = Form("draft", alias="status"),
    file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    sample_pdf: Optional[UploadFile] = File(None),
    current: Identity = Depends(get_current_manager),
) -> Envelope:
    """Upload a report.  The PDF ``file`` part is required."""
    data = ReportCreate(
        report_name=report_name,
        industry=industry,
        cost=cost,
        description=description,
        serial_number=serial_number,
        status=report_status,
    )
    pdf = await read_upload(file, "file", "pdf")
    if pdf is None:
        raise ValidationFailed("No PDF file uploaded")
    report = await ReportService.create_report(
        data,
        pdf,
        thumbnail=await read_upload(thumbnail, "thumbnail", "image"),
        sample_pdf=await read_upload(sample_pdf, "sample_pdf", "pdf"),
    )
    await AuditService.log(current.subject_id, "report.create", f"report:{report.id}", client_ip(request))
    return Envelope(message="Report created successfully", data=report)


@router.get("/{report_id}", response_model=Envelope)
async def get_report(report_id: int) -> Envelope:
    return Envelope(data=await ReportService.get_report(report_id))


@router.put("/{report_id}", response_model=Envelope)
async def update_report(
    report_id: int,
    request: Request,
    report_name: Optional[str] = Form(None),
    industry: Optional[str] = Form(None),
    cost: Optional[float] = Form(None),
    description: Optional[str] = Form(None),
    serial_number: Optional[str] = Form(None),
    report_status: Optional[str] = Form(None, alias="status"),
    file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    sample_pdf: Optional[UploadFile] = File(None),
    current: Identity = Depends(get_current_manager),
) -> Envelope:
    """Edit a report.  Only the parts that are sent change."""
    data = ReportUpdate(
        report_name=report_name,
        industry=industry,
        cost=cost,
        description=description,
        serial_number=serial_number,
        status=report_status,
    )
    report = await ReportService.update_report(
        report_id,
        data,
        file=await read_upload(file, "file", "pdf"),
        thumbnail=await read_upload(thumbnail, "thumbnail", "image"),
        sample_pdf=await read_upload(sample_pdf, "sample_pdf", "pdf"),
    )
    await AuditService.log(current.subject_id, "report.update", f"report:{report_id}", client_ip(request))
    return Envelope(message="Report updated successfully", data=report)


@router.delete("/{report_id}", response_model=Envelope)
async def delete_report(
    report_id: int,
    request: Request,
    current: Identity = Depends(get_current_manager),
) -> Envelope:
    await ReportService.delete_report(report_id)
    await AuditService.log(current.subject_id, "report.delete", f"report:{report_id}", client_ip(request))
    return Envelope(message="Report deleted successfully")


@router.get("/{report_id}/preview", response_model=Envelope)
async def preview_report(report_id: int) -> Envelope:
    """Opening text of the report in four sections, plus size, cost and page count."""
    return Envelope(data=await ReportService.preview(report_id))


@router.get("/{report_id}/thumbnail")
async def get_thumbnail(report_id: int) -> Response:
    _, asset = await ReportService.get_asset(report_id, "thumbnail")
    return _binary_response(asset)


@router.get("/{report_id}/download")
async def download_report(report_id: int) -> Response:
    report, asset = await ReportService.get_asset(report_id, "file")
    return _binary_response(asset, f'attachment; filename="{_quoted(report.report_name)}.pdf"')


@router.get("/{report_id}/sample-pdf")
async def download_sample(report_id: int) -> Response:
    report, asset = await ReportService.get_asset(report_id, "sample_pdf")
    return _binary_response(asset, f'attachment; filename="sample-{_quoted(report.report_name)}.pdf"')


@router.get("/{report_id}/view")
async def view_report(report_id: int) -> Response:
    report, asset = await ReportService.get_asset(report_id, "file")
    return _binary_response(asset, f'inline; filename="{_quoted(report.report_name)}.pdf"')
