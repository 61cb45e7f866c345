"""Serves stored uploads, such as profile pictures, by their opaque key."""

from fastapi import APIRouter, Response

from research_store_api.app.services.asset_service import AssetService


router = APIRouter()


@router.get("/{key}")
async def get_asset(key: str) -> Response:
    asset = await AssetService.get(key)
    return Response(content=asset.content, media_type=asset.content_type)
