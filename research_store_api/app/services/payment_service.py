"""
Business logic for checkout and report entitlements.

``PaymentService.process_payment`` is called after a buyer approves a
PayPal order in the storefront.  It re-reads the order from PayPal,
provisions a customer account for first-time buyers, records the
payment and grants the entitlement (a ``user_reports`` row).  Account,
payment and entitlement are written in a single transaction, and the
PayPal order id is the idempotency key: replaying a processed order
returns the stored records instead of writing new ones.

Entitlements are checked and counted by ``verify_access`` with one
conditional ``UPDATE``, so concurrent readers never lose an increment.
"""

import logging
import secrets
import sqlite3
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from research_store_api.app.core.db import get_connection, now_timestamp
from research_store_api.app.core.errors import Conflict, Forbidden, NotFound, PaymentIncomplete
from research_store_api.app.core.security import hash_password
from research_store_api.app.schemas.payment import (
    PaymentDetailsRead,
    PaymentSuccessRequest,
    PaymentSuccessResult,
    TemporaryCredentials,
    UserReportRead,
)
from research_store_api.app.services.paypal_client import PayPalClient, order_amount
from research_store_api.app.services.report_service import ReportService
from research_store_api.app.services.user_service import UserService

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = {"address_line1", "address_line2", "city", "state", "zip_code", "country"}


class _AlreadyProcessed(Exception):
    """Another request recorded the same gateway transaction first."""


class PaymentService:
    """Checkout, entitlement and payment-record operations."""

    @classmethod
    async def process_payment(cls, request: PaymentSuccessRequest, paypal: PayPalClient) -> PaymentSuccessResult:
        """Verify a PayPal order and grant access to the purchased report.

        Steps, in order: confirm with PayPal that the order is
        ``COMPLETED``, check the report exists, short-circuit if the
        order was already processed, then create the account (if
        needed), the payment record and the entitlement together.

        Returns the payment and entitlement ids.  ``credentials`` is set
        only when a new account was created; it holds the temporary
        password the buyer needs for their first sign-in.
        """
        order = await paypal.get_order(request.paypal_data.id)
        if order.get("status") != "COMPLETED":
            logger.warning("PayPal order %s has status %s", request.paypal_data.id, order.get("status"))
            raise PaymentIncomplete("Payment not completed")
        amount = order_amount(order)
        await ReportService.ensure_exists(request.report_id)

        transaction_id = str(order.get("id") or request.paypal_data.id)
        existing = await cls._find_processed(transaction_id)
        if existing is not None:
            logger.info("PayPal order %s was already processed", transaction_id)
            return existing

        for _ in range(2):
            try:
                result = await cls._provision(request, transaction_id, amount)
                break
            except Conflict:
                # A concurrent checkout created the account for this e-mail;
                # the second attempt finds it and links the purchase to it.
                continue
            except _AlreadyProcessed:
                existing = await cls._find_processed(transaction_id)
                if existing is None:
                    # No stored payment: the insert failed on the report reference.
                    raise NotFound("Report not found")
                return existing
        else:
            raise Conflict("Could not provision an account for this payment")

        if result.credentials is not None:
            from research_store_api.app.services.mail_service import MailService
            await MailService.send_purchase_credentials(result.credentials.email, result.credentials.temporary_password)
        logger.info("Payment %s processed for report %s", result.payment_id, request.report_id)
        return result

    @classmethod
    async def _provision(cls, request: PaymentSuccessRequest, transaction_id: str, amount: float) -> PaymentSuccessResult:
        form = request.form_data
        conn = get_connection()
        try:
            cursor = conn.cursor()
            credentials: Optional[TemporaryCredentials] = None
            row = cursor.execute("SELECT id FROM user_auth WHERE email = ?", (form.email,)).fetchone()
            if row:
                user_id = row["id"]
            else:
                temporary_password = secrets.token_hex(4)
                user_id = UserService.insert_user(
                    cursor,
                    email=form.email,
                    password_hash=await run_in_threadpool(hash_password, temporary_password),
                    full_name=form.full_name,
                    phone=form.phone,
                    auth_provider="payment",
                    address=form.model_dump(include=ADDRESS_FIELDS),
                )
                credentials = TemporaryCredentials(email=form.email, temporary_password=temporary_password)

            now = now_timestamp()
            try:
                cursor.execute(
                    """
                    INSERT INTO payment_details (
                        user_id, report_id, transaction_id, paypal_order_id, amount, payment_status,
                        payment_date, full_name, email, phone, address_line1, address_line2,
                        city, state, zip_code, country
                    ) VALUES (?, ?, ?, ?, ?, 'completed', ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        request.report_id,
                        transaction_id,
                        request.paypal_data.id,
                        amount,
                        now,
                        form.full_name,
                        form.email,
                        form.phone,
                        form.address_line1,
                        form.address_line2,
                        form.city,
                        form.state,
                        form.zip_code,
                        form.country,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise _AlreadyProcessed() from exc
            payment_id = cursor.lastrowid

            # Buying a report again re-activates the existing entitlement.
            cursor.execute(
                """
                INSERT INTO user_reports (
                    user_id, report_id, purchase_date, transaction_id, payment_status, is_active, updated_at
                ) VALUES (?, ?, ?, ?, 'completed', 1, ?)
                ON CONFLICT (user_id, report_id) DO UPDATE SET
                    purchase_date = excluded.purchase_date,
                    transaction_id = excluded.transaction_id,
                    payment_status = 'completed',
                    is_active = 1,
                    updated_at = excluded.updated_at
                """,
                (user_id, request.report_id, now, transaction_id, now),
            )
            user_report_id = cursor.execute(
                "SELECT id FROM user_reports WHERE user_id = ? AND report_id = ?",
                (user_id, request.report_id),
            ).fetchone()["id"]
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        return PaymentSuccessResult(payment_id=payment_id, user_report_id=user_report_id, credentials=credentials)

    @classmethod
    async def _find_processed(cls, transaction_id: str) -> Optional[PaymentSuccessResult]:
        conn = get_connection()
        try:
            payment = conn.execute(
                "SELECT id, user_id, report_id FROM payment_details WHERE transaction_id = ?",
                (transaction_id,),
            ).fetchone()
            if not payment:
                return None
            entitlement = conn.execute(
                "SELECT id FROM user_reports WHERE transaction_id = ? "
                "OR (user_id = ? AND report_id = ?) ORDER BY transaction_id = ? DESC LIMIT 1",
                (transaction_id, payment["user_id"], payment["report_id"], transaction_id),
            ).fetchone()
        finally:
            conn.close()
        if not entitlement:
            raise NotFound("Entitlement for this payment no longer exists")
        return PaymentSuccessResult(
            payment_id=payment["id"],
            user_report_id=entitlement["id"],
            already_processed=True,
        )

    @classmethod
    async def list_purchased_reports(cls, user_id: int) -> List[Dict[str, Any]]:
        """Active, paid entitlements of the customer with report metadata, newest first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT ur.id, ur.user_id, ur.report_id, ur.transaction_id, ur.purchase_date,
                       ur.last_access_date, ur.payment_status, ur.access_count, ur.is_active,
                       r.report_name, r.industry, r.cost, r.size, r.description,
                       r.status AS report_status, r.thumbnail_key IS NOT NULL AS has_thumbnail
                FROM user_reports ur
                JOIN reports r ON r.id = ur.report_id
                WHERE ur.user_id = ? AND ur.is_active = 1 AND ur.payment_status = 'completed'
                ORDER BY ur.purchase_date DESC, ur.id DESC
                """,
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        purchased = []
        for row in rows:
            data = dict(row)
            report = {
                "id": data["report_id"],
                "report_name": data.pop("report_name"),
                "industry": data.pop("industry"),
                "cost": data.pop("cost"),
                "size": data.pop("size"),
                "description": data.pop("description"),
                "status": data.pop("report_status"),
                "has_thumbnail": bool(data.pop("has_thumbnail")),
            }
            purchased.append(UserReportRead(**data, report=report).to_response())
        return purchased

    @classmethod
    async def verify_access(cls, user_id: int, report_id: int) -> Dict[str, Any]:
        """Check the entitlement and count the access in one statement.

        The increment only happens when the entitlement is active and
        paid.  Zero rows updated means the caller has no access.
        """
        now = now_timestamp()
        conn = get_connection()
        try:
            cursor = conn.execute(
                """
                UPDATE user_reports
                SET access_count = access_count + 1, last_access_date = ?, updated_at = ?
                WHERE user_id = ? AND report_id = ? AND is_active = 1 AND payment_status = 'completed'
                """,
                (now, now, user_id, report_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise Forbidden("No access to this report")
            row = conn.execute(
                "SELECT id, user_id, report_id, transaction_id, purchase_date, last_access_date, "
                "payment_status, access_count, is_active FROM user_reports WHERE user_id = ? AND report_id = ?",
                (user_id, report_id),
            ).fetchone()
        finally:
            conn.close()
        return UserReportRead(**dict(row)).to_response()

    @classmethod
    async def list_payment_details(cls) -> List[PaymentDetailsRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT p.*, r.report_name
                FROM payment_details p
                LEFT JOIN reports r ON r.id = p.report_id
                ORDER BY p.payment_date DESC, p.id DESC
                """
            ).fetchall()
        finally:
            conn.close()
        return [PaymentDetailsRead(**dict(row)) for row in rows]

    @classmethod
    async def list_user_reports(cls) -> List[Dict[str, Any]]:
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT ur.id, ur.user_id, ur.report_id, ur.transaction_id, ur.purchase_date,
                       ur.last_access_date, ur.payment_status, ur.access_count, ur.is_active,
                       u.full_name, u.email, r.report_name
                FROM user_reports ur
                JOIN user_auth u ON u.id = ur.user_id
                JOIN reports r ON r.id = ur.report_id
                ORDER BY ur.purchase_date DESC, ur.id DESC
                """
            ).fetchall()
        finally:
            conn.close()
        entitlements = []
        for row in rows:
            data = dict(row)
            user = {"id": data["user_id"], "full_name": data.pop("full_name"), "email": data.pop("email")}
            report = {"id": data["report_id"], "report_name": data.pop("report_name")}
            entitlements.append(UserReportRead(**data, user=user, report=report).to_response())
        return entitlements
