from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: str) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def list_by_ids(session: AsyncSession, user_ids: Sequence[str]) -> list[User]:
        ids = tuple(set(user_ids))
        if not ids:
            return []
        stmt = select(User).where(User.id.in_(ids))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
        username: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        user = User(
            id=user_id,
            ref_parent_id=None,
            username=username,
            first_name=first_name,
            last_name=last_name,
            is_active=True,
            created_at=now_utc,
        )
        session.add(user)
        await session.flush()
        return user
