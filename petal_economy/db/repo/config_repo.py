from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.config_entries import ConfigEntry


class ConfigRepo:
    @staticmethod
    async def get_values(session: AsyncSession, keys: Sequence[str]) -> dict[str, dict[str, object]]:
        stmt = select(ConfigEntry).where(ConfigEntry.key.in_(tuple(keys)))
        result = await session.execute(stmt)
        return {entry.key: entry.value for entry in result.scalars().all()}

    @staticmethod
    async def get_entry(session: AsyncSession, key: str) -> ConfigEntry | None:
        return await session.get(ConfigEntry, key)

    @staticmethod
    async def upsert(
        session: AsyncSession,
        *,
        key: str,
        value: dict[str, object],
        updated_by: str | None,
        now_utc: datetime,
    ) -> ConfigEntry:
        entry = await session.get(ConfigEntry, key)
        if entry is None:
            entry = ConfigEntry(key=key, value=value, updated_by=updated_by, updated_at=now_utc)
            session.add(entry)
        else:
            entry.value = value
            entry.updated_by = updated_by
            entry.updated_at = now_utc
        await session.flush()
        return entry
