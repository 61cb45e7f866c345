"""
Business logic for blog posts.

A post body is a list of typed blocks (``text``, ``heading``,
``subheading``) stored as JSON.  Every post has a thumbnail, kept as an
asset and served by ``GET /api/blogs/{id}/thumbnail``.
"""

import json
import logging
import sqlite3
from typing import List, Optional

from research_store_api.app.core.db import get_connection, now_timestamp
from research_store_api.app.core.errors import NotFound, ValidationFailed
from research_store_api.app.schemas.blog import BlogAuthor, BlogBlock, BlogRead, BlogThumbnail, BlogWrite
from research_store_api.app.services.asset_service import AssetService, BinaryAsset

logger = logging.getLogger(__name__)

BLOG_COLUMNS = (
    "id, title, thumbnail_key, thumbnail_type, thumbnail_alt, author_name, published_date, content, "
    "created_at, updated_at"
)


def _row_to_blog(row: sqlite3.Row) -> BlogRead:
    return BlogRead(
        id=row["id"],
        title=row["title"],
        thumbnail=BlogThumbnail(
            url=f"/api/blogs/{row['id']}/thumbnail",
            content_type=row["thumbnail_type"],
            alt=row["thumbnail_alt"],
        ),
        author=BlogAuthor(name=row["author_name"]),
        published_date=row["published_date"],
        content=[BlogBlock(**block) for block in json.loads(row["content"] or "[]")],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _content_json(blocks: Optional[List[BlogBlock]]) -> str:
    return json.dumps([block.model_dump() for block in blocks or []])


class BlogService:
    """Operations on the ``blogs`` table."""

    @classmethod
    async def list_blogs(cls) -> List[BlogRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {BLOG_COLUMNS} FROM blogs ORDER BY published_date DESC, id DESC"
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_blog(row) for row in rows]

    @classmethod
    async def get_blog(cls, blog_id: int) -> BlogRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {BLOG_COLUMNS} FROM blogs WHERE id = ?", (blog_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Blog not found")
        return _row_to_blog(row)

    @classmethod
    async def create_blog(cls, data: BlogWrite, thumbnail: BinaryAsset) -> BlogRead:
        if not data.title or data.author is None:
            raise ValidationFailed("title and author are required")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            key = AssetService.put(cursor, thumbnail)
            cursor.execute(
                "INSERT INTO blogs (title, thumbnail_key, thumbnail_type, thumbnail_alt, author_name, "
                "published_date, content) VALUES (?, ?, ?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP), ?)",
                (
                    data.title,
                    key,
                    thumbnail.content_type,
                    data.thumbnail_alt or data.title,
                    data.author.name,
                    data.published_date,
                    _content_json(data.content),
                ),
            )
            blog_id = cursor.lastrowid
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Created blog post %s", blog_id)
        return await cls.get_blog(blog_id)

    @classmethod
    async def update_blog(cls, blog_id: int, data: BlogWrite, thumbnail: Optional[BinaryAsset] = None) -> BlogRead:
        changes = {}
        if data.title:
            changes["title"] = data.title
        if data.author is not None:
            changes["author_name"] = data.author.name
        if data.content is not None:
            changes["content"] = _content_json(data.content)
        if data.published_date:
            changes["published_date"] = data.published_date
        if data.thumbnail_alt is not None:
            changes["thumbnail_alt"] = data.thumbnail_alt
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT thumbnail_key FROM blogs WHERE id = ?", (blog_id,)).fetchone()
            if not row:
                raise NotFound("Blog not found")
            if thumbnail is not None:
                changes["thumbnail_key"] = AssetService.put(cursor, thumbnail)
                changes["thumbnail_type"] = thumbnail.content_type
            changes["updated_at"] = now_timestamp()
            assignments = ", ".join(f"{column} = ?" for column in changes)
            cursor.execute(f"UPDATE blogs SET {assignments} WHERE id = ?", (*changes.values(), blog_id))
            if thumbnail is not None:
                AssetService.delete(cursor, [row["thumbnail_key"]])
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        return await cls.get_blog(blog_id)

    @classmethod
    async def delete_blog(cls, blog_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT thumbnail_key FROM blogs WHERE id = ?", (blog_id,)).fetchone()
            if not row:
                raise NotFound("Blog not found")
            cursor.execute("DELETE FROM blogs WHERE id = ?", (blog_id,))
            AssetService.delete(cursor, [row["thumbnail_key"]])
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def get_thumbnail(cls, blog_id: int) -> BinaryAsset:
        conn = get_connection()
        try:
            row = conn.execute("SELECT thumbnail_key, thumbnail_type FROM blogs WHERE id = ?", (blog_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Blog not found")
        asset = await AssetService.get(row["thumbnail_key"])
        asset.content_type = row["thumbnail_type"] or asset.content_type
        return asset
