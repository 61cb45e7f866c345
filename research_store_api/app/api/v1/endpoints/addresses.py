"""Saved addresses of the signed-in customer."""

from fastapi import APIRouter, Depends, status

from research_store_api.app.core.security import Identity, get_current_customer
from research_store_api.app.schemas.catalog import AddressCreate
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.services.catalog_service import AddressService


router = APIRouter()


@router.get("/", response_model=Envelope)
async def list_addresses(current: Identity = Depends(get_current_customer)) -> Envelope:
    return Envelope(data=await AddressService.list_for_user(current.subject_id))


@router.post("/", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def create_address(payload: AddressCreate, current: Identity = Depends(get_current_customer)) -> Envelope:
    return Envelope(message="Address saved", data=await AddressService.create(current.subject_id, payload))


@router.delete("/{address_id}", response_model=Envelope)
async def delete_address(address_id: int, current: Identity = Depends(get_current_customer)) -> Envelope:
    await AddressService.delete(current.subject_id, address_id)
    return Envelope(message="Address deleted")
