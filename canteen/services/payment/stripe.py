"""
Stripe Payment Gateway

Alternative provider using the official Stripe Python SDK: a gateway order
is a PaymentIntent, and its client_secret is the checkout session token.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
"""

import logging
import time
from typing import Optional

import stripe

from canteen.core.config import Settings
from canteen.services.payment.base import (
    BasePaymentGateway,
    PaymentCustomer,
    PaymentOrderResult,
)

logger = logging.getLogger(__name__)


class StripePaymentGateway(BasePaymentGateway):
    def __init__(self, settings: Settings):
        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for the Stripe gateway. "
                "Set it in your .env file or environment variables."
            )

        # Configure Stripe SDK
        stripe.api_key = settings.stripe_secret_key
        stripe.api_version = "2023-10-16"  # Pin API version for stability

        self._currency = settings.payment_currency.lower()

        logger.info(f"StripePaymentGateway initialized (api_version={stripe.api_version})")

    @property
    def provider_name(self) -> str:
        return "stripe"

    def _convert_to_minor_units(self, amount: float) -> int:
        """Stripe expects the smallest currency unit (paise for INR)."""
        return int(round(amount * 100))

    async def create_order(
        self,
        amount: float,
        customer: PaymentCustomer,
        currency: Optional[str] = None,
        note: Optional[str] = None,
    ) -> PaymentOrderResult:
        start = time.perf_counter()
        currency = (currency or self._currency).lower()

        if amount <= 0:
            return PaymentOrderResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        try:
            intent = stripe.PaymentIntent.create(
                amount=self._convert_to_minor_units(amount),
                currency=currency,
                description=note or "Canteen Order",
                receipt_email=customer.email,
                automatic_payment_methods={"enabled": True},
                metadata={
                    "customer_id": customer.customer_id,
                    "customer_name": customer.name,
                    "source": "canteen_backend",
                },
            )
        except stripe.AuthenticationError as e:
            logger.critical(f"Stripe: Authentication failed - {e}")
            return PaymentOrderResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )
        except stripe.APIConnectionError as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Stripe: Connection error - {e}")
            return PaymentOrderResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=elapsed_ms,
            )
        except stripe.StripeError as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Stripe: Error - {e}")
            return PaymentOrderResult(
                success=False,
                error_message="Payment processing error",
                error_code="stripe_error",
                response_time_ms=elapsed_ms,
            )

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Stripe: PaymentIntent created - {intent.id} - status={intent.status}")

        return PaymentOrderResult(
            success=True,
            provider_order_id=intent.id,
            payment_session_id=intent.client_secret,
            amount=intent.amount / 100.0,
            currency=intent.currency.upper(),
            response_time_ms=elapsed_ms,
            metadata={"status": intent.status},
        )

    async def health_check(self) -> bool:
        try:
            # Retrieve account info (lightweight call)
            stripe.Account.retrieve()
            return True
        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
