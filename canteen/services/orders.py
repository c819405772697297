"""
Order Lifecycle Engine

Coordinates the canteen directory, menu catalog and order store:

    - create_order: validate, snapshot prices, derive priority, persist
    - kitchen_queue / history / today_orders: canteen-scoped read views
    - update_status: state-machine transition with payment side effects
    - daily_stats: order count and revenue for a local calendar day

Every operation asks the AccessPolicy first; all validation happens before
the single write an operation performs.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.exceptions import CanteenNotFound, OrderNotFound
from canteen.models import Order, OrderStatus, PaymentMode, utcnow
from canteen.schemas import (
    DailyStatsResponse,
    MenuItemResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
)
from canteen.services import lifecycle
from canteen.services.access import AccessPolicy, Capability, Principal
from canteen.services.directory import CanteenDirectory
from canteen.services.menu import MenuCatalog
from canteen.services.order_store import OrderStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def local_day_window(day: Optional[date] = None, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """
    UTC bounds of a server-local calendar day: [local midnight, next local midnight).

    ``day`` defaults to the local date of ``now`` (or of the current time).
    """
    if day is None:
        day = (now or utcnow()).astimezone().date()
    start = datetime.combine(day, time.min).astimezone()
    end = datetime.combine(day + timedelta(days=1), time.min).astimezone()
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


class OrderService:
    """
    Order lifecycle operations for one request.

    Args:
        session: request-scoped database session
        policy: access policy consulted by every operation
        clock: source of timezone-aware "now" values for timestamps
    """

    def __init__(
        self,
        session: AsyncSession,
        policy: Optional[AccessPolicy] = None,
        clock: Clock = utcnow,
    ):
        self.policy = policy or AccessPolicy()
        self.clock = clock
        self.directory = CanteenDirectory(session)
        self.catalog = MenuCatalog(session, self.directory)
        self.store = OrderStore(session)

    # =========================================================================
    # CREATION
    # =========================================================================

    async def create_order(self, principal: Optional[Principal], data: OrderCreate) -> OrderResponse:
        principal = self.policy.require(principal, Capability.CREATE_ORDER)

        canteen = None
        if data.canteen_id is not None:
            canteen = await self.directory.get(data.canteen_id)
        lifecycle.validate_canteen(data.canteen_id, canteen).raise_for_error()

        lifecycle.validate_cart(data.items).raise_for_error()

        menu_items = await self.catalog.get_many_scoped(
            (line.menu_item for line in data.items), data.canteen_id
        )
        for line in data.items:
            lifecycle.validate_line(line.menu_item, menu_items.get(line.menu_item)).raise_for_error()

        lifecycle.validate_totals(data.subtotal, data.tax, data.total).raise_for_error()

        payment_mode = data.payment_mode or PaymentMode.COD
        now = self.clock()

        order = Order(
            canteen_id=data.canteen_id,
            user_id=principal.user_id,
            user_name=principal.name,
            items=[
                lifecycle.snapshot_line(menu_items[line.menu_item], line.quantity)
                for line in data.items
            ],
            subtotal=data.subtotal,
            tax=data.tax,
            total=data.total,
            payment_mode=payment_mode,
            payment_status=lifecycle.initial_payment_status(payment_mode),
            payment_order_id=data.payment_order_id,
            status=OrderStatus.PENDING,
            priority=lifecycle.derive_priority(principal.role),
            estimated_time=None,
            created_at=now,
            updated_at=now,
        )
        order = await self.store.add(order)

        logger.info(
            f"Order #{order.id} created for canteen {order.canteen_id} by user "
            f"#{principal.user_id} ({order.priority.value}, {payment_mode.value}, "
            f"total={order.total:.2f})"
        )
        return (await self._present([order]))[0]

    # =========================================================================
    # READ VIEWS
    # =========================================================================

    async def my_orders(self, principal: Optional[Principal]) -> list[OrderResponse]:
        principal = self.policy.require(principal, Capability.READ_OWN_ORDERS)
        return await self._present(await self.store.list_for_user(principal.user_id))

    async def kitchen_queue(self, principal: Optional[Principal]) -> list[OrderResponse]:
        principal = self.policy.require(principal, Capability.VIEW_KITCHEN_QUEUE)
        canteen_id = self.policy.kitchen_canteen(principal)
        orders = await self.store.list_by_status(canteen_id, lifecycle.ACTIVE_STATUSES)
        return await self._present(orders)

    async def history(
        self,
        principal: Optional[Principal],
        canteen_id: Optional[int] = None,
    ) -> list[OrderResponse]:
        principal = self.policy.require(principal, Capability.VIEW_HISTORY)
        scope = self.policy.resolve_canteen_scope(principal, canteen_id)
        if not principal.is_kitchen and await self.directory.get(scope) is None:
            raise CanteenNotFound()
        return await self._present(await self.store.list_completed(scope))

    async def today_orders(
        self,
        principal: Optional[Principal],
        canteen_id: Optional[int] = None,
        day: Optional[date] = None,
    ) -> list[OrderResponse]:
        self.policy.require(principal, Capability.VIEW_DAILY_STATS)
        start, end = local_day_window(day, self.clock())
        orders = await self.store.list_created_between(start, end, canteen_id)
        return await self._present(orders)

    async def daily_stats(
        self,
        principal: Optional[Principal],
        canteen_id: Optional[int] = None,
        day: Optional[date] = None,
    ) -> DailyStatsResponse:
        self.policy.require(principal, Capability.VIEW_DAILY_STATS)
        start, end = local_day_window(day, self.clock())
        count, revenue = await self.store.totals_between(start, end, canteen_id)
        return DailyStatsResponse(today_orders=count, total_revenue=revenue)

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def update_status(
        self,
        principal: Optional[Principal],
        order_id: int,
        data: OrderStatusUpdate,
    ) -> OrderResponse:
        principal = self.policy.require(principal, Capability.TRANSITION_ORDER)

        order = await self.store.get(order_id)
        if order is None:
            raise OrderNotFound()

        self.policy.ensure_order_scope(principal, order.canteen_id)

        previous = order.status
        lifecycle.validate_transition(previous, data.status).raise_for_error()

        changed = False
        if data.status != previous:
            order.status = data.status
            changed = True

        payment_status = lifecycle.payment_status_after(
            order.payment_mode, order.payment_status, data.status
        )
        if payment_status != order.payment_status:
            order.payment_status = payment_status
            changed = True

        if data.estimated_time is not None:
            order.estimated_time = data.estimated_time
            changed = True

        if changed:
            order.updated_at = self.clock()
            order = await self.store.save(order)
            logger.info(
                f"Order #{order.id}: {previous.value} -> {order.status.value} "
                f"by user #{principal.user_id} ({principal.role.value})"
            )

        return (await self._present([order]))[0]

    # =========================================================================
    # PRESENTATION
    # =========================================================================

    async def _present(self, orders: Sequence[Order]) -> list[OrderResponse]:
        """Attach the current menu item to every line (read-side join)."""
        menu = await self.catalog.get_many(
            line["menu_item_id"] for order in orders for line in order.items
        )

        responses = []
        for order in orders:
            response = OrderResponse.model_validate(order)
            for line in response.items:
                item = menu.get(line.menu_item_id)
                line.menu_item = MenuItemResponse.model_validate(item) if item else None
            responses.append(response)
        return responses
