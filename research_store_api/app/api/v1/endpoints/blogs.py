"""
Blog endpoints.

Reading is public.  Staff create and edit posts with a multipart form
in which ``author`` is a JSON object (``{"name": ...}``) and
``content`` a JSON list of blocks.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status

from research_store_api.app.core.errors import ValidationFailed
from research_store_api.app.core.security import Identity, get_current_manager
from research_store_api.app.schemas.blog import BlogWrite
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.services.asset_service import read_upload
from research_store_api.app.services.blog_service import BlogService


router = APIRouter()


def _json_field(raw: Optional[str], name: str) -> Any:
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise ValidationFailed(f"{name} must be valid JSON")


def _blog_form(
    title: Optional[str],
    author: Optional[str],
    content: Optional[str],
    published_date: Optional[str],
    thumbnail_alt: Optional[str],
) -> BlogWrite:
    return BlogWrite(
        title=title,
        author=_json_field(author, "author"),
        content=_json_field(content, "content"),
        published_date=published_date,
        thumbnail_alt=thumbnail_alt,
    )


@router.get("/", response_model=Envelope)
async def list_blogs() -> Envelope:
    return Envelope(data=await BlogService.list_blogs())


@router.get("/{blog_id}", response_model=Envelope)
async def get_blog(blog_id: int) -> Envelope:
    return Envelope(data=await BlogService.get_blog(blog_id))


@router.get("/{blog_id}/thumbnail")
async def get_blog_thumbnail(blog_id: int) -> Response:
    asset = await BlogService.get_thumbnail(blog_id)
    return Response(content=asset.content, media_type=asset.content_type)


@router.post("/", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def create_blog(
    title: str = Form(...),
    author: str = Form(...),
    content: str = Form("[]"),
    published_date: Optional[str] = Form(None),
    thumbnail_alt: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    current: Identity = Depends(get_current_manager),
) -> Envelope:
    data = _blog_form(title, author, content, published_date, thumbnail_alt)
    image = await read_upload(thumbnail, "thumbnail", "image")
    if image is None:
        raise ValidationFailed("Thumbnail image is required")
    blog = await BlogService.create_blog(data, image)
    return Envelope(message="Blog created successfully", data=blog)


@router.put("/{blog_id}", response_model=Envelope)
async def update_blog(
    blog_id: int,
    title: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    published_date: Optional[str] = Form(None),
    thumbnail_alt: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    current: Identity = Depends(get_current_manager),
) -> Envelope:
    data = _blog_form(title, author, content, published_date, thumbnail_alt)
    image = await read_upload(thumbnail, "thumbnail", "image")
    blog = await BlogService.update_blog(blog_id, data, image)
    return Envelope(message="Blog updated successfully", data=blog)


@router.delete("/{blog_id}", response_model=Envelope)
async def delete_blog(blog_id: int, current: Identity = Depends(get_current_manager)) -> Envelope:
    await BlogService.delete_blog(blog_id)
    return Envelope(message="Blog deleted successfully")
