"""Pydantic schemas for blog posts."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class BlogBlock(BaseModel):
    type: Literal["text", "heading", "subheading"]
    content: str


class BlogAuthor(BaseModel):
    name: str = Field(..., min_length=1)


class BlogWrite(BaseModel):
    """Parsed multipart form for creating or editing a post."""

    title: Optional[str] = Field(None, min_length=1)
    author: Optional[BlogAuthor] = None
    content: Optional[List[BlogBlock]] = None
    published_date: Optional[str] = None
    thumbnail_alt: Optional[str] = None


class BlogThumbnail(BaseModel):
    url: str
    content_type: str
    alt: Optional[str] = None


class BlogRead(BaseModel):
    id: int
    title: str
    thumbnail: BlogThumbnail
    author: BlogAuthor
    published_date: Optional[str] = None
    content: List[BlogBlock]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
