"""
Cashfree Payment Gateway

Creates Cashfree PG orders over HTTPS with httpx. The mobile client opens
the checkout with the returned ``payment_session_id``; the backend records
the gateway order id on the canteen order as ``paymentOrderId``.

Requirements:
    - CASHFREE_CLIENT_ID / CASHFREE_CLIENT_SECRET
    - CASHFREE_BASE_URL (sandbox by default)
"""

import logging
import time
import uuid
from typing import Optional

import httpx

from canteen.core.config import Settings
from canteen.services.payment.base import (
    BasePaymentGateway,
    PaymentCustomer,
    PaymentOrderResult,
)

logger = logging.getLogger(__name__)

# Cashfree rejects orders without a phone number
DEFAULT_CUSTOMER_PHONE = "9999999999"


class CashfreePaymentGateway(BasePaymentGateway):
    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        if not settings.cashfree_client_id or not settings.cashfree_client_secret:
            raise ValueError(
                "CASHFREE_CLIENT_ID and CASHFREE_CLIENT_SECRET are required "
                "for the Cashfree gateway."
            )

        self._currency = settings.payment_currency
        self._return_url = settings.payment_return_url
        self._client = client or httpx.AsyncClient(
            base_url=settings.cashfree_base_url,
            timeout=settings.payment_timeout_seconds,
        )
        self._headers = {
            "x-client-id": settings.cashfree_client_id,
            "x-client-secret": settings.cashfree_client_secret,
            "x-api-version": settings.cashfree_api_version,
            "Content-Type": "application/json",
        }

        logger.info(f"CashfreePaymentGateway initialized ({settings.cashfree_base_url})")

    @property
    def provider_name(self) -> str:
        return "cashfree"

    async def create_order(
        self,
        amount: float,
        customer: PaymentCustomer,
        currency: Optional[str] = None,
        note: Optional[str] = None,
    ) -> PaymentOrderResult:
        start = time.perf_counter()
        currency = currency or self._currency

        if amount <= 0:
            return PaymentOrderResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        order_id = f"CC_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"
        payload = {
            "order_id": order_id,
            "order_amount": round(amount, 2),
            "order_currency": currency,
            "order_note": note or "Canteen Order",
            "customer_details": {
                "customer_id": customer.customer_id,
                "customer_name": customer.name,
                "customer_email": customer.email,
                "customer_phone": customer.phone or DEFAULT_CUSTOMER_PHONE,
            },
            "order_meta": {
                "return_url": self._return_url,
            },
        }

        try:
            response = await self._client.post("/orders", json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Cashfree: Connection error - {e}")
            return PaymentOrderResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=elapsed_ms,
            )

        elapsed_ms = (time.perf_counter() - start) * 1000

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {"message": response.text[:200]}
            logger.error(f"Cashfree: Order creation failed ({response.status_code}) - {body}")
            return PaymentOrderResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message=body.get("message", "Payment order creation failed"),
                error_code=body.get("code", f"http_{response.status_code}"),
                response_time_ms=elapsed_ms,
            )

        data = response.json()
        logger.info(
            f"Cashfree: Order created - {data.get('order_id')} "
            f"status={data.get('order_status')}"
        )

        return PaymentOrderResult(
            success=True,
            provider_order_id=data.get("order_id", order_id),
            payment_session_id=data.get("payment_session_id"),
            amount=float(data.get("order_amount", amount)),
            currency=data.get("order_currency", currency),
            response_time_ms=elapsed_ms,
            metadata={
                "cf_order_id": data.get("cf_order_id"),
                "order_status": data.get("order_status"),
            },
        )

    async def health_check(self) -> bool:
        """
        Look up a non-existent order: 404 means the credentials were
        accepted, 401/403 or a transport error means they were not.
        """
        try:
            response = await self._client.get("/orders/health_check", headers=self._headers)
        except httpx.HTTPError as e:
            logger.error(f"Cashfree: Health check failed - {e}")
            return False
        return response.status_code not in (401, 403) and response.status_code < 500

    async def close(self) -> None:
        await self._client.aclose()
