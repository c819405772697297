"""
Canteen Directory

Read-only lookups over canteen records. Canteens are provisioned by admin
tooling (see scripts/seed.py).
"""

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.models import Canteen


class CanteenDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, canteen_id: int) -> Optional[Canteen]:
        return await self.session.get(Canteen, canteen_id)

    async def get_active(self, canteen_id: int) -> Optional[Canteen]:
        """Return the canteen only if it accepts new orders."""
        canteen = await self.get(canteen_id)
        if canteen is None or not canteen.active:
            return None
        return canteen

    async def list(self) -> Sequence[Canteen]:
        result = await self.session.execute(select(Canteen).order_by(Canteen.name))
        return result.scalars().all()
