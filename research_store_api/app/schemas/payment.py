"""
Pydantic models for checkout, payment records and entitlements.

``PaymentSuccessRequest`` is what the storefront posts after the buyer
approves a PayPal order: the checkout form, the order object PayPal
returned to the browser and the report being bought.  Only the order
``id`` is trusted; status and amount are re-read from PayPal.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .user import normalize_email

PaymentStatus = Literal["pending", "completed", "failed"]


class PaymentFormData(BaseModel):
    """Billing details entered at checkout."""

    full_name: str = Field(..., min_length=1, examples=["Jane Doe"])
    email: str = Field(..., examples=["jane@example.com"])
    phone: str = Field(..., min_length=1, examples=["+1 555 0100"])
    address_line1: str = Field(..., min_length=1, examples=["1 Market St"])
    address_line2: Optional[str] = None
    city: str = Field(..., min_length=1, examples=["Toronto"])
    state: str = Field(..., min_length=1, examples=["ON"])
    zip_code: str = Field(..., min_length=1, examples=["M5V 2T6"])
    country: str = Field(..., min_length=1, examples=["Canada"])

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        return normalize_email(value)


class PayPalOrderData(BaseModel):
    """The order object as the browser received it.  Extra keys are kept."""

    id: str = Field(..., min_length=1, examples=["5O190127TN364715T"])
    status: Optional[str] = None

    model_config = {
        "extra": "allow",
    }


class PaymentSuccessRequest(BaseModel):
    form_data: PaymentFormData
    paypal_data: PayPalOrderData
    report_id: int


class TemporaryCredentials(BaseModel):
    email: str
    temporary_password: str
    message: str = "Please change your password after first login"


class PaymentSuccessResult(BaseModel):
    payment_id: int
    user_report_id: int
    already_processed: bool = False
    credentials: Optional[TemporaryCredentials] = None


class PaymentDetailsRead(BaseModel):
    id: int
    user_id: Optional[int] = None
    report_id: Optional[int] = None
    transaction_id: str
    paypal_order_id: Optional[str] = None
    amount: float
    payment_status: PaymentStatus
    payment_date: Optional[str] = None
    full_name: str
    email: str
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    zip_code: str
    country: str
    report_name: Optional[str] = None
    created_at: Optional[str] = None


class UserReportRead(BaseModel):
    """A customer's entitlement to one report."""

    id: int
    user_id: int
    report_id: int
    transaction_id: str
    purchase_date: Optional[str] = None
    last_access_date: Optional[str] = None
    payment_status: PaymentStatus
    access_count: int = 0
    is_active: bool = True
    report: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None

    @property
    def can_access(self) -> bool:
        return self.is_active and self.payment_status == "completed"

    def to_response(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        data["can_access"] = self.can_access
        return data
