"""
Payment hand-off for paid event participation.

Flow:
  1. Ask the server for an order for the event (POST /payments/create-order)
  2. Hand the order to the hosted checkout and wait for the payer
  3. Send the signed result to the server (POST /payments/verify)

Only step 3 succeeding counts as a payment. A result from the checkout on
its own is never trusted, and a dismissed checkout is not an error.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from timeleft.core.config import Settings, get_settings
from timeleft.core.errors import ApiError, AUTH_REQUIRED_MESSAGE
from timeleft.core.logging import get_logger
from timeleft.core.metrics import record_repository_error
from timeleft.infrastructure.api_client import ApiClient, decode
from timeleft.schemas.event import Event
from timeleft.schemas.payment import (
    CheckoutOptions,
    CheckoutPrefill,
    CheckoutResult,
    CreateOrderRequest,
    OrderDescriptor,
    PaymentVerification,
)
from timeleft.services.interfaces.checkout import CheckoutGateway
from timeleft.services.session_store import SessionStore

logger = get_logger(__name__)

GATEWAY_NOT_CONFIGURED_MESSAGE = "Payment gateway is not configured"
GATEWAY_LOAD_FAILED_MESSAGE = "Failed to load payment gateway. Please try again."
ORDER_FAILED_MESSAGE = "Failed to initiate payment"
VERIFICATION_FAILED_MESSAGE = "Payment verification failed. Please contact support."


class PaymentOutcome(str, Enum):
    VERIFIED = "verified"
    DISMISSED = "dismissed"
    FAILED = "failed"


@dataclass(frozen=True)
class PaymentResult:
    outcome: PaymentOutcome
    order_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == PaymentOutcome.VERIFIED


class PaymentService:
    def __init__(
        self,
        api: ApiClient,
        session: SessionStore,
        checkout: Optional[CheckoutGateway],
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self._api = api
        self._session = session
        self._checkout = checkout
        self._key_id = settings.RAZORPAY_KEY_ID
        self._merchant_name = settings.CHECKOUT_MERCHANT_NAME
        self.processing = False
        self.error: Optional[str] = None

    def clear_error(self) -> None:
        self.error = None

    async def create_order(self, event_id: str) -> Optional[OrderDescriptor]:
        try:
            payload = await self._api.request(
                "POST",
                "/payments/create-order",
                json=CreateOrderRequest(event_id=event_id).model_dump(by_alias=True),
            )
            order = decode(OrderDescriptor, payload)
        except ApiError as e:
            self._publish("create_order", e.describe(ORDER_FAILED_MESSAGE))
            logger.warning("payment_order_failed", event_id=event_id, error=str(e))
            return None
        logger.info("payment_order_created", event_id=event_id, order_id=order.id, amount=order.amount)
        return order

    async def verify(self, result: CheckoutResult) -> Optional[PaymentVerification]:
        try:
            payload = await self._api.request(
                "POST", "/payments/verify", json=result.model_dump(by_alias=True)
            )
            verification = decode(PaymentVerification, payload)
        except ApiError as e:
            self._publish("verify", e.describe(VERIFICATION_FAILED_MESSAGE))
            logger.warning("payment_verification_failed", order_id=result.order_id, error=str(e))
            return None
        logger.info("payment_verified", order_id=result.order_id, status=verification.status)
        return verification

    def checkout_options(self, event: Event, order: OrderDescriptor) -> CheckoutOptions:
        user = self._session.user
        return CheckoutOptions(
            key=self._key_id,
            amount=order.amount,
            currency=order.currency,
            name=self._merchant_name,
            description=f"Booking for {event.title}",
            order_id=order.id,
            prefill=CheckoutPrefill(
                name=user.name if user else None,
                email=user.email if user else None,
            ),
        )

    async def checkout(self, event: Event) -> PaymentResult:
        """Run the whole create-order / checkout / verify sequence for one event."""
        self.error = None
        if not self._session.is_authenticated:
            self._publish("checkout", AUTH_REQUIRED_MESSAGE)
            return PaymentResult(PaymentOutcome.FAILED, error=self.error)
        if self._checkout is None or not self._key_id:
            self._publish("checkout", GATEWAY_NOT_CONFIGURED_MESSAGE)
            return PaymentResult(PaymentOutcome.FAILED, error=self.error)

        self.processing = True
        try:
            if not await self._checkout.load():
                self._publish("checkout", GATEWAY_LOAD_FAILED_MESSAGE)
                return PaymentResult(PaymentOutcome.FAILED, error=self.error)

            order = await self.create_order(event.id)
            if order is None:
                return PaymentResult(PaymentOutcome.FAILED, error=self.error)

            result = await self._checkout.open(self.checkout_options(event, order))
            if result is None:
                logger.info("payment_dismissed", order_id=order.id)
                return PaymentResult(PaymentOutcome.DISMISSED, order_id=order.id)

            verification = await self.verify(result)
            if verification is None:
                return PaymentResult(PaymentOutcome.FAILED, order_id=order.id, error=self.error)
            return PaymentResult(PaymentOutcome.VERIFIED, order_id=order.id, status=verification.status)
        finally:
            self.processing = False

    def _publish(self, operation: str, message: str) -> None:
        self.error = message
        record_repository_error("payments", operation)
