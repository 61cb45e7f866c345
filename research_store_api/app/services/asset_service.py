"""
Binary asset storage.

Report PDFs, thumbnails, sample PDFs, blog thumbnails and profile
pictures all go through ``AssetService``.  An asset is the raw bytes,
their MIME type and an opaque key; entity rows store only the key.
Assets live in the ``assets`` table.
"""

import logging
import secrets
import sqlite3
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import UploadFile

from research_store_api.app.core.config import settings
from research_store_api.app.core.db import get_connection
from research_store_api.app.core.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

PDF_TYPES = ("application/pdf",)


@dataclass
class BinaryAsset:
    content: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def is_pdf(self) -> bool:
        return self.content_type in PDF_TYPES


def asset_url(key: str) -> str:
    """Public URL under which ``GET /api/assets/{key}`` serves an asset."""
    return f"/api/assets/{key}"


def asset_key_from_url(url: Optional[str]) -> Optional[str]:
    """Inverse of ``asset_url``; ``None`` for external URLs such as social avatars."""
    prefix = asset_url("")
    if url and url.startswith(prefix):
        return url[len(prefix):]
    return None


async def read_upload(
    upload: Optional[UploadFile],
    field: str,
    kind: str,
    max_bytes: Optional[int] = None,
) -> Optional[BinaryAsset]:
    """Read an uploaded file into a ``BinaryAsset`` and check its type.

    ``kind`` is ``"pdf"`` or ``"image"``.  Returns ``None`` when nothing
    was uploaded for ``field``.
    """
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    content_type = (upload.content_type or "application/octet-stream").lower()
    asset = BinaryAsset(content=content, content_type=content_type, filename=upload.filename)
    if not content:
        raise ValidationFailed(f"Uploaded {field} is empty")
    if kind == "pdf" and not asset.is_pdf:
        raise ValidationFailed(f"{field} must be a PDF file")
    if kind == "image" and not asset.is_image:
        raise ValidationFailed(f"{field} must be an image file")
    limit = max_bytes if max_bytes is not None else settings.max_upload_bytes
    if kind == "image" and asset.size > limit:
        raise ValidationFailed(f"{field} exceeds the {limit // (1024 * 1024)} MB limit")
    return asset


class AssetService:
    """Store, fetch and drop binary assets by key."""

    @staticmethod
    def put(cursor: sqlite3.Cursor, asset: BinaryAsset) -> str:
        """Insert ``asset`` using the caller's cursor and return its key.

        Callers pass their own cursor so the asset and the row that
        references it are committed together.
        """
        key = secrets.token_urlsafe(24)
        cursor.execute(
            "INSERT INTO assets (key, content, content_type, filename, size) VALUES (?, ?, ?, ?, ?)",
            (key, sqlite3.Binary(asset.content), asset.content_type, asset.filename, asset.size),
        )
        return key

    @staticmethod
    def delete(cursor: sqlite3.Cursor, keys: Iterable[Optional[str]]) -> None:
        for key in keys:
            if key:
                cursor.execute("DELETE FROM assets WHERE key = ?", (key,))

    @classmethod
    async def get(cls, key: str) -> BinaryAsset:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT content, content_type, filename FROM assets WHERE key = ?",
                (key,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("File not found")
        return BinaryAsset(content=bytes(row["content"]), content_type=row["content_type"], filename=row["filename"])
