"""Report category endpoints.  Anyone can list; managers maintain them."""

from fastapi import APIRouter, Depends, status

from research_store_api.app.core.security import ROLE_MANAGER, Identity, require_role
from research_store_api.app.schemas.catalog import CategoryCreate
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.services.catalog_service import CategoryService


router = APIRouter()


@router.get("/", response_model=Envelope)
async def list_categories() -> Envelope:
    return Envelope(data=await CategoryService.list_categories())


@router.post("/", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    current: Identity = Depends(require_role(ROLE_MANAGER)),
) -> Envelope:
    return Envelope(message="Category created", data=await CategoryService.create_category(payload))


@router.delete("/{category_id}", response_model=Envelope)
async def delete_category(category_id: int, current: Identity = Depends(require_role(ROLE_MANAGER))) -> Envelope:
    await CategoryService.delete_category(category_id)
    return Envelope(message="Category deleted")
