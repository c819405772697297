"""
Order Lifecycle Rules

Pure functions used by the order engine before anything is persisted:
request validation (each returning a Validation result), the status state
machine, priority and payment-status derivation, and line snapshots.
"""

import math
from dataclasses import dataclass
from typing import Optional

from canteen.core.exceptions import (
    CanteenError,
    EmptyCart,
    InvalidCanteen,
    InvalidMenuItem,
    InvalidTotal,
    InvalidTransition,
    ValidationError,
)
from canteen.models import (
    Canteen,
    MenuItem,
    OrderPriority,
    OrderStatus,
    PaymentMode,
    PaymentStatus,
    UserRole,
)


@dataclass(frozen=True)
class Validation:
    """Outcome of a validation step: success, or the specific error."""
    error: Optional[CanteenError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls) -> "Validation":
        return cls()

    @classmethod
    def failure(cls, error: CanteenError) -> "Validation":
        return cls(error=error)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


# =============================================================================
# STATE MACHINE
# =============================================================================

ALLOWED_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.PREPARING,),
    OrderStatus.PREPARING: (OrderStatus.READY,),
    OrderStatus.READY: (OrderStatus.COMPLETED,),
    OrderStatus.COMPLETED: (),
}

# Statuses shown on the kitchen queue
ACTIVE_STATUSES: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)


def validate_transition(current: OrderStatus, requested: OrderStatus) -> Validation:
    """Same-state requests are accepted as no-ops."""
    if requested == current or requested in ALLOWED_TRANSITIONS[current]:
        return Validation.success()
    return Validation.failure(InvalidTransition(current.value, requested.value))


def payment_status_after(
    mode: PaymentMode,
    payment_status: PaymentStatus,
    new_status: OrderStatus,
) -> PaymentStatus:
    # Cash is collected at the counter when the order is completed
    if new_status == OrderStatus.COMPLETED and mode == PaymentMode.COD:
        return PaymentStatus.PAID
    return payment_status


# =============================================================================
# CREATION
# =============================================================================

def validate_canteen(canteen_id: Optional[int], canteen: Optional[Canteen]) -> Validation:
    if canteen_id is None:
        return Validation.failure(ValidationError("canteenId is required"))
    if canteen is None or not canteen.active:
        return Validation.failure(InvalidCanteen())
    return Validation.success()


def validate_cart(items: list) -> Validation:
    if not items:
        return Validation.failure(EmptyCart())
    return Validation.success()


def validate_line(menu_item_id: int, menu_item: Optional[MenuItem]) -> Validation:
    """menu_item is the lookup result scoped to the order's canteen."""
    if menu_item is None:
        return Validation.failure(
            InvalidMenuItem(f"Invalid menu item {menu_item_id} for selected canteen")
        )
    return Validation.success()


def validate_totals(
    subtotal: Optional[float],
    tax: Optional[float],
    total: Optional[float],
) -> Validation:
    if subtotal is None or tax is None or total is None:
        return Validation.failure(ValidationError("Subtotal, tax and total are required"))
    if not (math.isfinite(subtotal) and math.isfinite(tax)):
        return Validation.failure(ValidationError("Subtotal and tax must be finite numbers"))
    if subtotal < 0 or tax < 0:
        return Validation.failure(ValidationError("Subtotal and tax must not be negative"))
    if not math.isfinite(total) or not total > 0:
        return Validation.failure(InvalidTotal())
    return Validation.success()


def derive_priority(role: UserRole) -> OrderPriority:
    return OrderPriority.HIGH if role == UserRole.STAFF else OrderPriority.NORMAL


def initial_payment_status(mode: PaymentMode) -> PaymentStatus:
    return PaymentStatus.PAID if mode == PaymentMode.UPI else PaymentStatus.PENDING


def snapshot_line(menu_item: MenuItem, quantity: int) -> dict:
    """Freeze the item's current name and price into the order line."""
    return {
        "menu_item_id": menu_item.id,
        "name": menu_item.name,
        "price": menu_item.price,
        "quantity": quantity,
    }
