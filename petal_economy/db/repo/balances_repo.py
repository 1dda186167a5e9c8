from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.balances import Balance


class BalancesRepo:
    @staticmethod
    async def get_by_user_id(session: AsyncSession, user_id: str) -> Balance | None:
        return await session.get(Balance, user_id)

    @staticmethod
    async def get_by_user_id_for_update(session: AsyncSession, user_id: str) -> Balance | None:
        stmt = (
            select(Balance)
            .where(Balance.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_default(session: AsyncSession, *, user_id: str, now_utc: datetime) -> Balance:
        balance = Balance(
            user_id=user_id,
            petals=0,
            spin_credits=0,
            last_spin_at=None,
            updated_at=now_utc,
        )
        session.add(balance)
        await session.flush()
        return balance
