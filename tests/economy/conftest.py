from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.core.checksum import checksum
from petal_economy.db.models.redemption_codes import RedemptionCode


async def _create_code(
    session: AsyncSession,
    *,
    base: str,
    now_utc: datetime,
    code_type: str = "ORDER",
    petals_delta: int = 3,
    spin_credit: int = 0,
    expires_at: datetime | None = None,
    bound_user_id: str | None = None,
    labels: dict[str, object] | None = None,
) -> str:
    code_checksum = checksum(base)
    session.add(
        RedemptionCode(
            code=base + code_checksum,
            code_type=code_type,
            petals_delta=petals_delta,
            spin_credit=spin_credit,
            labels=labels or {},
            expires_at=expires_at or now_utc + timedelta(days=14),
            single_use=True,
            bound_user_id=bound_user_id,
            is_used=False,
            used_at=None,
            checksum=code_checksum,
            created_by="tests",
            created_at=now_utc,
        )
    )
    await session.flush()
    return base + code_checksum


@pytest.fixture
def create_code():
    return _create_code
