"""
Reading engagement endpoints.

The report reader posts here whenever a customer opens a report or
moves further through it.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from research_store_api.app.core.security import Identity, get_current_customer, get_current_manager
from research_store_api.app.schemas.catalog import EngagementUpdate
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.services.catalog_service import EngagementService


router = APIRouter()


@router.post("/{report_id}", response_model=Envelope)
async def record_engagement(
    report_id: int,
    payload: Optional[EngagementUpdate] = None,
    current: Identity = Depends(get_current_customer),
) -> Envelope:
    engagement = await EngagementService.record_view(current.subject_id, report_id, payload or EngagementUpdate())
    return Envelope(data=engagement)


@router.get("/", response_model=Envelope)
async def list_engagement(current: Identity = Depends(get_current_manager)) -> Envelope:
    return Envelope(data=await EngagementService.list_all())
