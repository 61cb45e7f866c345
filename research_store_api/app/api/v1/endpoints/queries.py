"""
Customer query endpoints.

Customers open and read their own queries.  Any staff member can list
all queries, change their status, answer and delete them.
"""

from fastapi import APIRouter, Depends, status

from research_store_api.app.core.security import Identity, get_current_customer, get_current_manager
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.schemas.query import QueryCreate, QueryRespond, QueryStatusUpdate
from research_store_api.app.services.query_service import QueryService


router = APIRouter()


@router.post("/", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def create_query(payload: QueryCreate, current: Identity = Depends(get_current_customer)) -> Envelope:
    query = await QueryService.create_query(current.subject_id, payload)
    return Envelope(message="Query submitted successfully", data=query)


@router.get("/user", response_model=Envelope)
async def list_my_queries(current: Identity = Depends(get_current_customer)) -> Envelope:
    return Envelope(data=await QueryService.list_for_user(current.subject_id))


@router.get("/all", response_model=Envelope)
async def list_all_queries(current: Identity = Depends(get_current_manager)) -> Envelope:
    return Envelope(data=await QueryService.list_all())


@router.patch("/{query_id}/status", response_model=Envelope)
async def update_query_status(
    query_id: int,
    payload: QueryStatusUpdate,
    current: Identity = Depends(get_current_manager),
) -> Envelope:
    query = await QueryService.update_status(query_id, payload.status)
    return Envelope(message="Query status updated", data=query)


@router.post("/{query_id}/respond", response_model=Envelope)
async def respond_to_query(
    query_id: int,
    payload: QueryRespond,
    current: Identity = Depends(get_current_manager),
) -> Envelope:
    """Attach the staff answer; the query moves to ``in-progress``."""
    query = await QueryService.respond(query_id, current.subject_id, payload.response)
    return Envelope(message="Response sent successfully", data=query)


@router.delete("/{query_id}", response_model=Envelope)
async def delete_query(query_id: int, current: Identity = Depends(get_current_manager)) -> Envelope:
    await QueryService.delete_query(query_id)
    return Envelope(message="Query deleted successfully")
