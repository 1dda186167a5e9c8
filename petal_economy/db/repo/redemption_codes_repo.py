from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.redemption_codes import RedemptionCode


class RedemptionCodesRepo:
    @staticmethod
    async def get_by_code(session: AsyncSession, code: str) -> RedemptionCode | None:
        return await session.get(RedemptionCode, code)

    @staticmethod
    async def get_by_code_for_update(session: AsyncSession, code: str) -> RedemptionCode | None:
        stmt = (
            select(RedemptionCode)
            .where(RedemptionCode.code == code)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, code: RedemptionCode) -> RedemptionCode:
        session.add(code)
        await session.flush()
        return code

    @staticmethod
    async def mark_used(
        session: AsyncSession,
        *,
        code: str,
        user_id: str,
        now_utc: datetime,
    ) -> bool:
        """Compare-and-set `is_used`; returns False when another activation won."""
        stmt = (
            update(RedemptionCode)
            .where(
                RedemptionCode.code == code,
                RedemptionCode.is_used.is_(False),
                or_(
                    RedemptionCode.bound_user_id.is_(None),
                    RedemptionCode.bound_user_id == user_id,
                ),
            )
            .values(is_used=True, used_at=now_utc, bound_user_id=user_id)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return int(getattr(result, "rowcount", 0) or 0) == 1

    @staticmethod
    async def list_bound_to_user(
        session: AsyncSession,
        *,
        user_id: str,
        code_type: str,
        limit: int,
    ) -> list[RedemptionCode]:
        stmt = (
            select(RedemptionCode)
            .where(
                RedemptionCode.bound_user_id == user_id,
                RedemptionCode.code_type == code_type,
            )
            .order_by(RedemptionCode.created_at.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
