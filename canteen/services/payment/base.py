"""
Payment Gateway Abstract Base Class

Defines the contract the ordering backend needs from an online payment
provider: create a gateway-side order for an amount and a customer, and get
back the provider's order id plus the session token the mobile client uses
to complete checkout. How the provider settles the payment is its own
business.

Design Pattern: Strategy Pattern
    - Mock gateway in development, Cashfree or Stripe otherwise
    - Callers only ever see PaymentOrderResult
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class PaymentCustomer:
    """Customer details forwarded to the gateway."""
    customer_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class PaymentOrderResult:
    """
    Standardized result from gateway order creation.

    Attributes:
        success: Whether the gateway accepted the order
        provider_order_id: Gateway-side order identifier
        payment_session_id: Token the client uses to open the checkout
        amount: Order amount in major currency units
        currency: Currency code (e.g., "INR")
        error_message: Error description if creation failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the gateway call
        metadata: Additional data from the provider
    """
    success: bool
    provider_order_id: Optional[str] = None
    payment_session_id: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "INR"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: Optional[dict] = None


class BasePaymentGateway(ABC):
    """
    Abstract base class for payment gateways.

    Implementations never raise for provider-side failures; they return a
    PaymentOrderResult with success=False and let the caller decide.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider name (e.g., "mock", "cashfree", "stripe")."""

    @abstractmethod
    async def create_order(
        self,
        amount: float,
        customer: PaymentCustomer,
        currency: Optional[str] = None,
        note: Optional[str] = None,
    ) -> PaymentOrderResult:
        """
        Create a gateway order.

        Args:
            amount: Amount in major units (e.g., rupees), must be > 0
            customer: Who is paying
            currency: Currency code, defaults to the configured currency
            note: Free-text description shown by the provider
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the provider is reachable with the configured credentials."""

    async def close(self) -> None:
        """Release any held connections."""
