"""
Order Store

Persistence and indexed retrieval for orders. Each write commits a single
order; updates rely on the mapper's version column so a stale
read-modify-write fails instead of overwriting a concurrent change.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from canteen.core.exceptions import ConcurrentUpdateError, StoreError
from canteen.models import Order, OrderPriority, OrderStatus

logger = logging.getLogger(__name__)


class OrderStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # WRITES
    # =========================================================================

    async def add(self, order: Order) -> Order:
        """Insert one order; nothing is visible unless the commit succeeds."""
        self.session.add(order)
        await self._commit("create order")
        await self.session.refresh(order)
        return order

    async def save(self, order: Order) -> Order:
        """
        Persist changes to an already loaded order.

        Raises:
            ConcurrentUpdateError: the row changed since it was loaded
            StoreError: any other database failure
        """
        # Rollback expires the instance, so its id is read up front
        order_id = order.id
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            logger.warning(f"Concurrent update detected on order #{order_id}")
            raise ConcurrentUpdateError() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to update order #{order_id}: {e}")
            raise StoreError("Failed to update order") from e
        await self.session.refresh(order)
        return order

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to {action}: {e}")
            raise StoreError(f"Failed to {action}") from e

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, order_id: int) -> Optional[Order]:
        return await self.session.get(Order, order_id)

    async def list_for_user(self, user_id: int) -> Sequence[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return result.scalars().all()

    async def list_by_status(
        self,
        canteen_id: int,
        statuses: Iterable[OrderStatus],
    ) -> Sequence[Order]:
        """
        Kitchen queue ordering: high priority first, then oldest created,
        then oldest updated, then id.
        """
        priority_rank = case((Order.priority == OrderPriority.HIGH, 1), else_=0)
        result = await self.session.execute(
            select(Order)
            .where(Order.canteen_id == canteen_id, Order.status.in_(list(statuses)))
            .order_by(
                priority_rank.desc(),
                Order.created_at.asc(),
                Order.updated_at.asc(),
                Order.id.asc(),
            )
        )
        return result.scalars().all()

    async def list_completed(self, canteen_id: int) -> Sequence[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.canteen_id == canteen_id, Order.status == OrderStatus.COMPLETED)
            .order_by(Order.updated_at.desc(), Order.id.desc())
        )
        return result.scalars().all()

    async def list_created_between(
        self,
        start: datetime,
        end: datetime,
        canteen_id: Optional[int] = None,
    ) -> Sequence[Order]:
        query = (
            select(Order)
            .where(Order.created_at >= start, Order.created_at < end)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        if canteen_id is not None:
            query = query.where(Order.canteen_id == canteen_id)

        result = await self.session.execute(query)
        return result.scalars().all()

    async def totals_between(
        self,
        start: datetime,
        end: datetime,
        canteen_id: Optional[int] = None,
    ) -> tuple[int, float]:
        """Order count and summed total for orders created in [start, end)."""
        query = select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total), 0.0),
        ).where(Order.created_at >= start, Order.created_at < end)
        if canteen_id is not None:
            query = query.where(Order.canteen_id == canteen_id)

        result = await self.session.execute(query)
        count, revenue = result.one()
        return int(count or 0), float(revenue or 0.0)
