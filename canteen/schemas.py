"""
Pydantic Schemas for Request/Response Validation

Field names are snake_case in Python and camelCase on the wire
(``canteenId``, ``paymentMode``, ``menuItem`` ...).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from canteen.models import (
    MenuCategory,
    OrderPriority,
    OrderStatus,
    PaymentMode,
    PaymentStatus,
    UserRole,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class SignupRequest(CamelModel):
    """
    Account registration. ``role`` is checked by the account service so an
    unknown value is reported as "Invalid role".
    """
    name: str = Field(..., min_length=1, max_length=100, examples=["Asha"])
    email: str = Field(..., min_length=3, max_length=255, examples=["asha@campus.edu"])
    password: str = Field(..., min_length=6, max_length=128)
    role: str = Field(..., examples=["student", "staff", "admin", "kitchen"])
    canteen_id: Optional[int] = Field(None, examples=[1])


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    role: str = Field(..., examples=["student"])


class OrderItemCreate(CamelModel):
    """
    Single cart line. Only the menu item id and quantity are read;
    any client-supplied name or price is dropped.
    """
    menu_item: int = Field(..., examples=[12])
    quantity: int = Field(..., ge=1, le=99, examples=[2])


class OrderCreate(CamelModel):
    """
    Request schema for placing an order.

    Presence of the canteen, the cart contents and the totals is checked by
    the order validators rather than here, so that each failure maps to its
    own error kind.
    """
    canteen_id: Optional[int] = Field(None, examples=[1])
    items: List[OrderItemCreate] = Field(default_factory=list)
    subtotal: Optional[float] = Field(None, allow_inf_nan=False, examples=[180.0])
    tax: Optional[float] = Field(None, allow_inf_nan=False, examples=[9.0])
    total: Optional[float] = Field(None, allow_inf_nan=False, examples=[189.0])
    payment_mode: Optional[PaymentMode] = Field(None, examples=["UPI", "COD"])
    payment_order_id: Optional[str] = Field(None, max_length=100)


class OrderStatusUpdate(CamelModel):
    status: OrderStatus = Field(..., examples=["preparing"])
    estimated_time: Optional[datetime] = Field(None, examples=["2026-01-15T12:30:00+05:30"])


class MenuItemCreate(CamelModel):
    canteen_id: int
    name: str = Field(..., min_length=1, max_length=100)
    category: MenuCategory
    price: float = Field(..., ge=0, allow_inf_nan=False)
    description: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = Field(None, max_length=500)
    available: bool = True


class MenuItemUpdate(CamelModel):
    """Partial update; the owning canteen cannot be changed."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[MenuCategory] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    description: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = Field(None, max_length=500)
    available: Optional[bool] = None


class PaymentOrderCreate(CamelModel):
    amount: Optional[float] = Field(None, allow_inf_nan=False, examples=[189.0])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    canteen_id: Optional[int] = None


class AuthResponse(CamelModel):
    user: UserResponse
    token: str


class CanteenResponse(CamelModel):
    id: int
    name: str
    code: str
    active: bool


class MenuItemResponse(CamelModel):
    id: int
    canteen_id: int
    name: str
    category: MenuCategory
    price: float
    description: Optional[str] = None
    image: Optional[str] = None
    available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderLineResponse(CamelModel):
    """A line snapshot plus the current menu item (None once deleted)."""
    menu_item_id: int
    name: str
    price: float
    quantity: int
    menu_item: Optional[MenuItemResponse] = None


class OrderResponse(CamelModel):
    id: int
    canteen_id: int
    user_id: int
    user_name: str
    items: List[OrderLineResponse]
    subtotal: float
    tax: float
    total: float
    payment_mode: PaymentMode
    payment_status: PaymentStatus
    payment_order_id: Optional[str] = None
    status: OrderStatus
    priority: OrderPriority
    estimated_time: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class DailyStatsResponse(CamelModel):
    today_orders: int
    total_revenue: float


class PaymentOrderResponse(CamelModel):
    success: bool
    provider: str
    payment_order_id: str
    payment_session_id: Optional[str] = None
    amount: float
    currency: str


class MessageResponse(CamelModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    payment_service: str
    timestamp: datetime
