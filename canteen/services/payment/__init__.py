"""
Payment Gateway Factory

Single entry point for obtaining a payment gateway. The application
lifespan builds one gateway and keeps it on ``app.state``.

Environment Switching:
    - ENV_MODE=development → MockPaymentGateway (no API calls)
    - ENV_MODE=staging/production → PAYMENT_PROVIDER (cashfree or stripe)
"""

import logging

from canteen.core.config import PaymentProvider, Settings
from canteen.services.payment.base import (
    BasePaymentGateway,
    PaymentCustomer,
    PaymentOrderResult,
)
from canteen.services.payment.cashfree import CashfreePaymentGateway
from canteen.services.payment.mock import MockPaymentGateway
from canteen.services.payment.stripe import StripePaymentGateway

logger = logging.getLogger(__name__)


def create_payment_gateway(settings: Settings) -> BasePaymentGateway:
    """
    Build the configured payment gateway.

    Raises:
        ValueError: a real provider is selected but its credentials are missing
    """
    if not settings.use_real_services:
        logger.info("Payment Gateway: Using MockPaymentGateway")
        return MockPaymentGateway(
            failure_rate=settings.mock_payment_failure_rate,
            latency=settings.mock_payment_latency,
            currency=settings.payment_currency,
        )

    logger.info(
        f"Payment Gateway: Using {settings.payment_provider.value} "
        f"({settings.env_mode.value} mode)"
    )
    if settings.payment_provider == PaymentProvider.STRIPE:
        return StripePaymentGateway(settings)
    return CashfreePaymentGateway(settings)


__all__ = [
    "create_payment_gateway",
    "BasePaymentGateway",
    "PaymentCustomer",
    "PaymentOrderResult",
    "MockPaymentGateway",
    "CashfreePaymentGateway",
    "StripePaymentGateway",
]
