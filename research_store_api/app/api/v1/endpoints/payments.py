"""
Checkout and entitlement endpoints.

``POST /payment-success`` is public: the buyer may not have an account
yet.  The order is verified with PayPal before anything is written.
Purchased reports and access checks need a customer token; the payment
and entitlement ledgers are for staff.
"""

from fastapi import APIRouter, Depends

from research_store_api.app.core.config import settings
from research_store_api.app.core.security import Identity, get_current_customer, get_current_manager
from research_store_api.app.schemas.common import Envelope
from research_store_api.app.schemas.payment import PaymentSuccessRequest
from research_store_api.app.services.payment_service import PaymentService
from research_store_api.app.services.paypal_client import PayPalClient, get_paypal_client


router = APIRouter()


@router.post("/payment-success", response_model=Envelope)
async def payment_success(
    payload: PaymentSuccessRequest,
    paypal: PayPalClient = Depends(get_paypal_client),
) -> Envelope:
    """Record a captured PayPal order and grant access to the report.

    First-time buyers get an account; its temporary password is
    returned once under ``data.credentials``.  Posting the same order
    again returns the original ids with ``already_processed`` set.
    """
    result = await PaymentService.process_payment(payload, paypal)
    message = "Payment already processed" if result.already_processed else "Payment processed successfully"
    return Envelope(message=message, data=result.model_dump(exclude_none=True))


@router.get("/purchased-reports", response_model=Envelope)
async def purchased_reports(current: Identity = Depends(get_current_customer)) -> Envelope:
    return Envelope(data=await PaymentService.list_purchased_reports(current.subject_id))


@router.get("/verify-access/{report_id}", response_model=Envelope)
async def verify_access(report_id: int, current: Identity = Depends(get_current_customer)) -> Envelope:
    """Confirm the caller may read the report and count the access."""
    entitlement = await PaymentService.verify_access(current.subject_id, report_id)
    return Envelope(message="Access granted", data=entitlement)


@router.get("/payment-details", response_model=Envelope)
async def payment_details(current: Identity = Depends(get_current_manager)) -> Envelope:
    return Envelope(data=await PaymentService.list_payment_details())


@router.get("/user-reports", response_model=Envelope)
async def user_reports(current: Identity = Depends(get_current_manager)) -> Envelope:
    return Envelope(data=await PaymentService.list_user_reports())


@router.get("/health", response_model=Envelope)
async def health() -> Envelope:
    """Liveness check.  Reports whether PayPal is configured, never the credentials."""
    return Envelope(
        message="Server is running",
        data={
            "version": settings.api_version,
            "paypal_configured": settings.paypal_configured,
            "paypal_mode": settings.paypal_mode,
        },
    )
