from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.repo.transactions_repo import TransactionsRepo
from petal_economy.economy.config import LoyaltyConfig
from petal_economy.economy.cooldowns.rules import (
    can_claim_social_activity,
    next_social_activity_date,
    social_days_until_next,
)
from petal_economy.economy.errors import storage_guard
from petal_economy.economy.ledger.types import TransactionKind
from petal_economy.economy.social.types import SocialEligibility, SocialStats


class SocialService:
    """Read-only views over SOCIAL_ACTIVITY entries in the transaction log."""

    @staticmethod
    async def eligibility(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
    ) -> SocialEligibility:
        config = config or LoyaltyConfig.defaults()
        cooldown = timedelta(days=config.social.cooldown_days)
        async with storage_guard():
            last_activity_at = await TransactionsRepo.get_last_at_for_kind(
                session,
                user_id=user_id,
                kind=TransactionKind.SOCIAL_ACTIVITY.value,
            )
        return SocialEligibility(
            eligible=can_claim_social_activity(last_activity_at, now_utc=now_utc, cooldown=cooldown),
            days_until_next=social_days_until_next(last_activity_at, now_utc=now_utc, cooldown=cooldown),
            last_activity_at=last_activity_at,
            next_available_at=(
                next_social_activity_date(last_activity_at, cooldown=cooldown)
                if last_activity_at is not None
                else None
            ),
        )

    @staticmethod
    async def stats(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
    ) -> SocialStats:
        eligibility = await SocialService.eligibility(
            session, user_id=user_id, now_utc=now_utc, config=config
        )
        async with storage_guard():
            total = await TransactionsRepo.count_for_kind(
                session,
                user_id=user_id,
                kind=TransactionKind.SOCIAL_ACTIVITY.value,
            )
        return SocialStats(
            total_activations=total,
            last_activity_at=eligibility.last_activity_at,
            next_available_at=eligibility.next_available_at,
            eligible_now=eligibility.eligible,
        )
