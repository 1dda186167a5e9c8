from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.referrals import Referral
from petal_economy.db.models.users import User


class ReferralsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, referral: Referral) -> Referral:
        session.add(referral)
        await session.flush()
        return referral

    @staticmethod
    async def get_by_invitee_id(session: AsyncSession, *, invitee_id: str) -> Referral | None:
        stmt = select(Referral).where(Referral.invitee_id == invitee_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_pending_by_invitee_id_for_update(
        session: AsyncSession,
        *,
        invitee_id: str,
    ) -> Referral | None:
        stmt = (
            select(Referral)
            .where(
                Referral.invitee_id == invitee_id,
                Referral.first_order_confirmed_at.is_(None),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def count_by_inviter(session: AsyncSession, *, inviter_id: str) -> int:
        stmt = select(func.count(Referral.id)).where(Referral.inviter_id == inviter_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def count_paid_by_inviter(session: AsyncSession, *, inviter_id: str) -> int:
        stmt = select(func.count(Referral.id)).where(
            Referral.inviter_id == inviter_id,
            Referral.bonus_paid.is_(True),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def count_paid_by_inviter_confirmed_between(
        session: AsyncSession,
        *,
        inviter_id: str,
        from_utc: datetime,
        to_utc: datetime,
    ) -> int:
        stmt = select(func.count(Referral.id)).where(
            Referral.inviter_id == inviter_id,
            Referral.bonus_paid.is_(True),
            Referral.first_order_confirmed_at >= from_utc,
            Referral.first_order_confirmed_at < to_utc,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def list_by_inviter_with_invitees(
        session: AsyncSession,
        *,
        inviter_id: str,
        limit: int,
    ) -> list[tuple[Referral, User | None]]:
        stmt = (
            select(Referral, User)
            .outerjoin(User, User.id == Referral.invitee_id)
            .where(Referral.inviter_id == inviter_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [(referral, user) for referral, user in result.all()]
