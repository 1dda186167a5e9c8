from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.repo.redemption_codes_repo import RedemptionCodesRepo
from petal_economy.economy.config import LoyaltyConfig
from petal_economy.economy.errors import (
    LoyaltyError,
    RewardNotFoundError,
    RewardUnavailableError,
    storage_guard,
)
from petal_economy.economy.ledger.service import LedgerService
from petal_economy.economy.ledger.types import TransactionKind
from petal_economy.economy.redemption.issuance import IssuanceService
from petal_economy.economy.redemption.types import CodeType
from petal_economy.economy.rewards.types import RewardExchangeResult, RewardHistoryItem, RewardItem

logger = structlog.get_logger(__name__)

REWARD_CODE_EXPIRES_IN_DAYS = 30
REWARD_HISTORY_LIMIT = 20
REWARD_CODE_CREATED_BY = "reward_exchange"


def _reward_labels(reward: RewardItem) -> dict[str, object]:
    labels: dict[str, object] = {
        "reward_id": reward.id,
        "reward_name": reward.name,
        "reward_type": reward.reward_type,
        "petals_cost": reward.petals_cost,
    }
    if reward.discount_percent is not None:
        labels["discount_percent"] = reward.discount_percent
        labels["max_discount_amount"] = reward.max_discount_amount
        labels["min_order_amount"] = reward.min_order_amount
    if reward.gift_type is not None:
        labels["gift_type"] = reward.gift_type
    return labels


class RewardsService:
    @staticmethod
    def catalogue(config: LoyaltyConfig | None = None) -> tuple[RewardItem, ...]:
        config = config or LoyaltyConfig.defaults()
        return tuple(reward for reward in config.rewards if reward.is_active)

    @staticmethod
    async def exchange(
        session: AsyncSession,
        *,
        user_id: str,
        reward_id: str,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
    ) -> RewardExchangeResult:
        """Spends petals on a catalogue reward and issues a REWARD code bound to the user."""
        config = config or LoyaltyConfig.defaults()
        try:
            reward = config.reward_by_id(reward_id)
            if reward is None:
                raise RewardNotFoundError
            if not reward.is_active:
                raise RewardUnavailableError

            async with storage_guard():
                async with session.begin_nested():
                    balance = await LedgerService.debit(
                        session,
                        user_id=user_id,
                        amount=reward.petals_cost,
                        kind=TransactionKind.REWARD_EXCHANGE,
                        now_utc=now_utc,
                        metadata={"reward_id": reward.id, "reward_name": reward.name},
                    )
                    issued = await IssuanceService.issue_code(
                        session,
                        code_type=CodeType.REWARD,
                        petals_delta=0,
                        spin_credit=0,
                        created_by=REWARD_CODE_CREATED_BY,
                        now_utc=now_utc,
                        expires_in_days=REWARD_CODE_EXPIRES_IN_DAYS,
                        labels=_reward_labels(reward),
                        bound_user_id=user_id,
                    )
        except LoyaltyError as exc:
            logger.info("reward_exchange_rejected", user_id=user_id, reward_id=reward_id, reason=exc.reason.value)
            return RewardExchangeResult(success=False, message=exc.message, reason=exc.reason)

        logger.info(
            "reward_exchanged",
            user_id=user_id,
            reward_id=reward.id,
            petals_cost=reward.petals_cost,
            petals=balance.petals,
        )
        return RewardExchangeResult(
            success=True,
            message=f"Reward \"{reward.name}\" received",
            code=issued.code,
            expires_at=issued.expires_at,
            petals=balance.petals,
            spin_credits=balance.spin_credits,
        )

    @staticmethod
    async def history(
        session: AsyncSession,
        *,
        user_id: str,
        limit: int = REWARD_HISTORY_LIMIT,
    ) -> list[RewardHistoryItem]:
        async with storage_guard():
            codes = await RedemptionCodesRepo.list_bound_to_user(
                session,
                user_id=user_id,
                code_type=CodeType.REWARD.value,
                limit=limit,
            )
        return [
            RewardHistoryItem(
                code=code.code,
                reward_id=(code.labels or {}).get("reward_id"),
                is_used=code.is_used,
                used_at=code.used_at,
                expires_at=code.expires_at,
                created_at=code.created_at,
                details=dict(code.labels or {}),
            )
            for code in codes
        ]
