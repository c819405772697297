"""
Menu Catalog

Per-canteen menu items. The order engine resolves cart lines through
``get_many_scoped`` so an item id is only ever valid inside its own canteen;
admins maintain the catalog through the CRUD methods.
"""

import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.exceptions import InvalidCanteen, MenuItemNotFound, StoreError
from canteen.models import MenuItem
from canteen.schemas import MenuItemCreate, MenuItemUpdate
from canteen.services.directory import CanteenDirectory

logger = logging.getLogger(__name__)


class MenuCatalog:
    def __init__(self, session: AsyncSession, directory: Optional[CanteenDirectory] = None):
        self.session = session
        self.directory = directory or CanteenDirectory(session)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get(self, item_id: int) -> Optional[MenuItem]:
        return await self.session.get(MenuItem, item_id)

    async def get_many_scoped(self, item_ids: Iterable[int], canteen_id: int) -> dict[int, MenuItem]:
        """Items by id, restricted to ``canteen_id``; ids from other canteens are absent."""
        ids = set(item_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(MenuItem).where(MenuItem.id.in_(ids), MenuItem.canteen_id == canteen_id)
        )
        return {item.id: item for item in result.scalars().all()}

    async def get_many(self, item_ids: Iterable[int]) -> dict[int, MenuItem]:
        ids = set(item_ids)
        if not ids:
            return {}
        result = await self.session.execute(select(MenuItem).where(MenuItem.id.in_(ids)))
        return {item.id: item for item in result.scalars().all()}

    async def list(
        self,
        canteen_id: Optional[int] = None,
        available_only: bool = True,
    ) -> Sequence[MenuItem]:
        query = select(MenuItem).order_by(
            MenuItem.category.asc(), MenuItem.created_at.desc(), MenuItem.id.desc()
        )
        if canteen_id is not None:
            query = query.where(MenuItem.canteen_id == canteen_id)
        if available_only:
            query = query.where(MenuItem.available.is_(True))

        result = await self.session.execute(query)
        return result.scalars().all()

    # =========================================================================
    # ADMIN CRUD
    # =========================================================================

    async def create(self, data: MenuItemCreate) -> MenuItem:
        if await self.directory.get_active(data.canteen_id) is None:
            raise InvalidCanteen()

        item = MenuItem(**data.model_dump())
        self.session.add(item)
        await self._commit("create menu item")
        await self.session.refresh(item)

        logger.info(f"Menu item #{item.id} '{item.name}' added to canteen {item.canteen_id}")
        return item

    async def update(self, item_id: int, data: MenuItemUpdate) -> MenuItem:
        item = await self.get(item_id)
        if item is None:
            raise MenuItemNotFound()

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(item, field, value)

        await self._commit("update menu item")
        await self.session.refresh(item)

        logger.info(f"Menu item #{item.id} updated")
        return item

    async def delete(self, item_id: int) -> None:
        item = await self.get(item_id)
        if item is None:
            raise MenuItemNotFound()

        await self.session.delete(item)
        await self._commit("delete menu item")
        logger.info(f"Menu item #{item_id} deleted")

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to {action}: {e}")
            raise StoreError(f"Failed to {action}") from e
