"""
Sales lead endpoints.

Visitors who ask about a report from its landing page leave their
business contact details here; staff follow up from the dashboard.
"""

from fastapi import APIRouter, Depends, status

from research_store_api.app.core.security import Identity, get_current_manager
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.schemas.potential_customer import PotentialCustomerCreate
from research_store_api.app.services.potential_customer_service import PotentialCustomerService


router = APIRouter()


@router.post("/", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def create_lead(payload: PotentialCustomerCreate) -> Envelope:
    lead = await PotentialCustomerService.create(payload)
    return Envelope(message="Thank you, our team will contact you shortly", data=lead)


@router.get("/", response_model=Envelope)
async def list_leads(current: Identity = Depends(get_current_manager)) -> Envelope:
    """All leads, newest first."""
    return Envelope(data=await PotentialCustomerService.list_all())
