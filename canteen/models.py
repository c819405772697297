"""
SQLAlchemy Database Models

Canteens, their menu items, the users that act on them, and orders with
embedded line items (stored as a JSON list, they have no identity of
their own).
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)

from canteen.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class UserRole(str, enum.Enum):
    STUDENT = "student"
    STAFF = "staff"
    ADMIN = "admin"
    KITCHEN = "kitchen"


class MenuCategory(str, enum.Enum):
    BEVERAGES = "Beverages"
    SNACKS = "Snacks"
    MEALS = "Meals"


class OrderStatus(str, enum.Enum):
    """Order status workflow: pending → preparing → ready → completed."""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"


class OrderPriority(str, enum.Enum):
    NORMAL = "normal"
    HIGH = "high"


class PaymentMode(str, enum.Enum):
    UPI = "UPI"
    COD = "COD"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class Canteen(Base):
    __tablename__ = "canteens"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    code = Column(String(20), nullable=False, unique=True)  # EAST, NAMMA, CORE, KS, MUNCH
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Canteen #{self.id} {self.code} active={self.active}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    canteen_id = Column(Integer, ForeignKey("canteens.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    category = Column(
        Enum(MenuCategory, name="menu_category", values_callable=_enum_values),
        nullable=False,
    )
    price = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    available = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Canteen-based menu loading
    __table_args__ = (
        Index("ix_menu_items_canteen_category_available", "canteen_id", "category", "available"),
    )

    def __repr__(self):
        return f"<MenuItem #{self.id} {self.name} canteen={self.canteen_id} price={self.price}>"


class User(Base):
    """
    Caller identity, created through /auth/signup or the seed script.
    Only kitchen accounts carry a canteen_id.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)  # stored lowercase
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        nullable=False,
    )
    canteen_id = Column(Integer, ForeignKey("canteens.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<User #{self.id} {self.email} role={self.role.value}>"


class Order(Base):
    """
    A placed order.

    ``items`` holds the line snapshots taken at creation:
    ``[{"menu_item_id", "name", "price", "quantity"}, ...]``.
    ``version`` is bumped on every UPDATE and checked in its WHERE clause,
    so two racing read-modify-writes cannot both succeed.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    canteen_id = Column(Integer, ForeignKey("canteens.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    user_name = Column(String(100), nullable=False)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    tax = Column(Float, nullable=False)
    total = Column(Float, nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_mode = Column(
        Enum(PaymentMode, name="payment_mode", values_callable=_enum_values),
        nullable=False,
        default=PaymentMode.COD,
    )
    payment_status = Column(
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_order_id = Column(String(100), nullable=True)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    priority = Column(
        Enum(OrderPriority, name="order_priority", values_callable=_enum_values),
        nullable=False,
        default=OrderPriority.NORMAL,
    )
    estimated_time = Column(DateTime(timezone=True), nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_orders_canteen_created", "canteen_id", "created_at"),
        Index("ix_orders_user_created", "user_id", "created_at"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_priority", "priority"),
    )

    def __repr__(self):
        return (
            f"<Order #{self.id} canteen={self.canteen_id} "
            f"{self.priority.value} {self.status.value}>"
        )
