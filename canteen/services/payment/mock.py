"""
Mock Payment Gateway

Simulates gateway order creation without network calls. Used in
development mode and by the test-suite.

Behavior:
    - Optional simulated latency
    - Declines a configurable fraction of orders
    - Generates Cashfree-like ids (CC_<timestamp>, session_...)
"""

import asyncio
import logging
import random
import time
import uuid
from collections import deque
from typing import Optional

from canteen.services.payment.base import (
    BasePaymentGateway,
    PaymentCustomer,
    PaymentOrderResult,
)

logger = logging.getLogger(__name__)


class MockPaymentGateway(BasePaymentGateway):
    """
    Attributes:
        failure_rate: Probability of a simulated decline (0.0-1.0)
        latency: Simulated response time in seconds
        currency: Default currency code
        created: Most recent successful orders (at most ``history_size``)
    """

    DECLINE_REASONS = [
        ("gateway_unavailable", "Payment gateway is temporarily unavailable."),
        ("order_rejected", "The payment order was rejected by the gateway."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.0,
        latency: float = 0.0,
        currency: str = "INR",
        history_size: int = 100,
    ):
        self.failure_rate = failure_rate
        self.latency = latency
        self.currency = currency
        self.created: deque[PaymentOrderResult] = deque(maxlen=history_size)

        logger.info(
            f"MockPaymentGateway initialized "
            f"(failure_rate={failure_rate:.0%}, latency={latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    def _should_fail(self) -> bool:
        return self.failure_rate > 0 and random.random() < self.failure_rate

    async def create_order(
        self,
        amount: float,
        customer: PaymentCustomer,
        currency: Optional[str] = None,
        note: Optional[str] = None,
    ) -> PaymentOrderResult:
        start = time.perf_counter()
        currency = currency or self.currency

        if amount <= 0:
            return PaymentOrderResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        if self.latency:
            await asyncio.sleep(self.latency)
        elapsed_ms = (time.perf_counter() - start) * 1000

        if self._should_fail():
            error_code, error_message = random.choice(self.DECLINE_REASONS)
            logger.debug(f"Mock: Gateway order declined - {error_code}")
            return PaymentOrderResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=elapsed_ms,
            )

        order_id = f"CC_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"
        result = PaymentOrderResult(
            success=True,
            provider_order_id=order_id,
            payment_session_id=f"session_mock_{uuid.uuid4().hex}",
            amount=amount,
            currency=currency,
            response_time_ms=elapsed_ms,
            metadata={
                "customer_id": customer.customer_id,
                "customer_name": customer.name,
                "note": note,
                "mock": True,
            },
        )
        self.created.append(result)

        logger.info(f"Mock: Gateway order created - {order_id} - {amount:.2f} {currency}")
        return result

    async def health_check(self) -> bool:
        return True
