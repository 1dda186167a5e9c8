from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.transactions import Transaction


class TransactionsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, entry: Transaction) -> Transaction:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def list_for_user(session: AsyncSession, *, user_id: str, limit: int) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_last_at_for_kind(
        session: AsyncSession,
        *,
        user_id: str,
        kind: str,
    ) -> datetime | None:
        stmt = select(func.max(Transaction.created_at)).where(
            Transaction.user_id == user_id,
            Transaction.kind == kind,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def count_for_kind(session: AsyncSession, *, user_id: str, kind: str) -> int:
        stmt = select(func.count(Transaction.id)).where(
            Transaction.user_id == user_id,
            Transaction.kind == kind,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)
