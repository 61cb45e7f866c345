"""
Business logic for the report catalog.

Reports are listed and fetched without their binaries.  The PDF, the
thumbnail and the optional sample are stored as assets and streamed by
dedicated endpoints with their original MIME types.
"""

import logging
import sqlite3
from typing import List, Optional, Tuple

from research_store_api.app.core.db import get_connection, now_timestamp
from research_store_api.app.core.errors import InternalError, NotFound
from research_store_api.app.schemas.report import (
    PreviewMetadata,
    PreviewSection,
    ReportCreate,
    ReportPreview,
    ReportRead,
    ReportUpdate,
)
from research_store_api.app.services.asset_service import AssetService, BinaryAsset
from research_store_api.app.services.preview import PreviewError, extract_pdf_text, split_into_sections

logger = logging.getLogger(__name__)

REPORT_COLUMNS = (
    "id, serial_number, report_name, industry, cost, size, status, file_type, description, "
    "thumbnail_key, thumbnail_type, sample_pdf_key, sample_pdf_type, upload_date, last_modified, "
    "created_at, updated_at"
)

# Asset kinds served by the binary endpoints: (key column, MIME column).
ASSET_COLUMNS = {
    "file": ("file_key", "file_content_type"),
    "thumbnail": ("thumbnail_key", "thumbnail_type"),
    "sample_pdf": ("sample_pdf_key", "sample_pdf_type"),
}


def format_size(num_bytes: int) -> str:
    """Human readable size as shown in the catalog, e.g. ``"1.25 MB"``."""
    return f"{num_bytes / (1024 * 1024):.2f} MB"


def _row_to_report(row: sqlite3.Row) -> ReportRead:
    data = dict(row)
    data["has_thumbnail"] = bool(data.pop("thumbnail_key", None))
    data["has_sample_pdf"] = bool(data.pop("sample_pdf_key", None))
    return ReportRead(**data)


class ReportService:
    """Catalog operations backed by the ``reports`` table."""

    @classmethod
    async def create_report(
        cls,
        data: ReportCreate,
        file: BinaryAsset,
        thumbnail: Optional[BinaryAsset] = None,
        sample_pdf: Optional[BinaryAsset] = None,
    ) -> ReportRead:
        """Store a new report and its assets in one transaction."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            file_key = AssetService.put(cursor, file)
            thumbnail_key = AssetService.put(cursor, thumbnail) if thumbnail else None
            sample_key = AssetService.put(cursor, sample_pdf) if sample_pdf else None
            now = now_timestamp()
            cursor.execute(
                """
                INSERT INTO reports (
                    serial_number, report_name, industry, cost, size, status, file_type,
                    file_key, file_content_type, description, thumbnail_key, thumbnail_type,
                    sample_pdf_key, sample_pdf_type, upload_date, last_modified
                ) VALUES (?, ?, ?, ?, ?, ?, 'PDF', ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.serial_number,
                    data.report_name,
                    data.industry,
                    data.cost,
                    format_size(file.size),
                    data.status,
                    file_key,
                    file.content_type,
                    data.description,
                    thumbnail_key,
                    thumbnail.content_type if thumbnail else None,
                    sample_key,
                    sample_pdf.content_type if sample_pdf else None,
                    now,
                    now,
                ),
            )
            report_id = cursor.lastrowid
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Created report %s (%s)", report_id, data.report_name)
        return await cls.get_report(report_id)

    @classmethod
    async def list_reports(cls, industry: Optional[str] = None) -> List[ReportRead]:
        query = f"SELECT {REPORT_COLUMNS} FROM reports"
        params: tuple = ()
        if industry:
            query += " WHERE industry = ? COLLATE NOCASE"
            params = (industry,)
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [_row_to_report(row) for row in rows]

    @classmethod
    async def get_report(cls, report_id: int) -> ReportRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {REPORT_COLUMNS} FROM reports WHERE id = ?", (report_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Report not found")
        return _row_to_report(row)

    @classmethod
    async def update_report(
        cls,
        report_id: int,
        data: ReportUpdate,
        file: Optional[BinaryAsset] = None,
        thumbnail: Optional[BinaryAsset] = None,
        sample_pdf: Optional[BinaryAsset] = None,
    ) -> ReportRead:
        """Apply a partial update.  Replaced assets are deleted."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT file_key, thumbnail_key, sample_pdf_key FROM reports WHERE id = ?",
                (report_id,),
            ).fetchone()
            if not row:
                raise NotFound("Report not found")
            replaced: List[Optional[str]] = []
            if file is not None:
                changes["file_key"] = AssetService.put(cursor, file)
                changes["file_content_type"] = file.content_type
                changes["size"] = format_size(file.size)
                replaced.append(row["file_key"])
            if thumbnail is not None:
                changes["thumbnail_key"] = AssetService.put(cursor, thumbnail)
                changes["thumbnail_type"] = thumbnail.content_type
                replaced.append(row["thumbnail_key"])
            if sample_pdf is not None:
                changes["sample_pdf_key"] = AssetService.put(cursor, sample_pdf)
                changes["sample_pdf_type"] = sample_pdf.content_type
                replaced.append(row["sample_pdf_key"])
            now = now_timestamp()
            changes["last_modified"] = now
            changes["updated_at"] = now
            assignments = ", ".join(f"{column} = ?" for column in changes)
            cursor.execute(
                f"UPDATE reports SET {assignments} WHERE id = ?",
                (*changes.values(), report_id),
            )
            AssetService.delete(cursor, replaced)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Updated report %s", report_id)
        return await cls.get_report(report_id)

    @classmethod
    async def delete_report(cls, report_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT file_key, thumbnail_key, sample_pdf_key FROM reports WHERE id = ?",
                (report_id,),
            ).fetchone()
            if not row:
                raise NotFound("Report not found")
            cursor.execute("DELETE FROM reports WHERE id = ?", (report_id,))
            AssetService.delete(cursor, [row["file_key"], row["thumbnail_key"], row["sample_pdf_key"]])
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Deleted report %s", report_id)

    @classmethod
    async def get_asset(cls, report_id: int, kind: str) -> Tuple[ReportRead, BinaryAsset]:
        """Return the report and one of its binaries (``file``, ``thumbnail``, ``sample_pdf``)."""
        key_column, type_column = ASSET_COLUMNS[kind]
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {key_column} AS asset_key, {type_column} AS asset_type FROM reports WHERE id = ?",
                (report_id,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Report not found")
        if not row["asset_key"]:
            raise NotFound("Thumbnail not found" if kind == "thumbnail" else "Sample PDF not found")
        asset = await AssetService.get(row["asset_key"])
        if row["asset_type"]:
            asset.content_type = row["asset_type"]
        return await cls.get_report(report_id), asset

    @classmethod
    async def preview(cls, report_id: int) -> ReportPreview:
        """Extract the report text and split it into the four preview sections."""
        report, asset = await cls.get_asset(report_id, "file")
        try:
            text, total_pages = extract_pdf_text(asset.content)
        except PreviewError:
            logger.exception("Could not extract text from report %s", report_id)
            raise InternalError("Error generating preview")
        return ReportPreview(
            report_name=report.report_name,
            sections=[PreviewSection(**section) for section in split_into_sections(text)],
            metadata=PreviewMetadata(
                size=report.size,
                last_modified=report.last_modified,
                cost=report.cost,
                total_pages=total_pages,
            ),
        )

    @classmethod
    async def ensure_exists(cls, report_id: int) -> None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT 1 FROM reports WHERE id = ?", (report_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Report not found")
