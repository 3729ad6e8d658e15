"""
Pydantic schemas for the hosted-checkout payment hand-off.
"""

from typing import Optional
from pydantic import BaseModel, Field


class CreateOrderRequest(BaseModel):
    event_id: str = Field(..., serialization_alias="eventId")


class OrderDescriptor(BaseModel):
    id: str
    amount: int  # smallest currency unit
    currency: str = "INR"
    receipt: Optional[str] = None


class CheckoutPrefill(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None


class CheckoutOptions(BaseModel):
    key: str
    amount: int
    currency: str
    name: str
    description: str
    order_id: str
    prefill: CheckoutPrefill = Field(default_factory=CheckoutPrefill)


class CheckoutResult(BaseModel):
    """What the checkout widget reports back once the payer completes."""

    payment_id: str = Field(..., alias="razorpay_payment_id")
    order_id: str = Field(..., alias="razorpay_order_id")
    signature: str = Field(..., alias="razorpay_signature")

    model_config = {"populate_by_name": True}


class PaymentVerification(BaseModel):
    status: str
    message: Optional[str] = None
