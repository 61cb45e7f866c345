"""Sales leads left by visitors who asked about a report."""

import logging
from typing import List

from research_store_api.app.core.db import get_connection
from research_store_api.app.schemas.potential_customer import PotentialCustomerCreate, PotentialCustomerRead
from research_store_api.app.services.report_service import ReportService

logger = logging.getLogger(__name__)


class PotentialCustomerService:
    @classmethod
    async def create(cls, data: PotentialCustomerCreate) -> PotentialCustomerRead:
        await ReportService.ensure_exists(data.report_id)
        conn = get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO potential_customers (full_name, business_email, contact_number, country, "
                "job_title, company_name, report_id) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    data.full_name,
                    data.business_email,
                    data.contact_number,
                    data.country,
                    data.job_title,
                    data.company_name,
                    data.report_id,
                ),
            )
            conn.commit()
            lead_id = cursor.lastrowid
            row = conn.execute("SELECT * FROM potential_customers WHERE id = ?", (lead_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Recorded lead %s for report %s", lead_id, data.report_id)
        return PotentialCustomerRead(**dict(row))

    @classmethod
    async def list_all(cls) -> List[PotentialCustomerRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM potential_customers ORDER BY created_at DESC, id DESC"
            ).fetchall()
        finally:
            conn.close()
        return [PotentialCustomerRead(**dict(row)) for row in rows]
