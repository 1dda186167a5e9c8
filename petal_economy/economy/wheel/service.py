from __future__ import annotations

import random
from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.balances import Balance
from petal_economy.economy.config import LoyaltyConfig
from petal_economy.economy.errors import LoyaltyError, storage_guard
from petal_economy.economy.ledger.service import LedgerService
from petal_economy.economy.ledger.types import TransactionKind
from petal_economy.economy.wheel.selection import (
    presentation_angle,
    prize_message,
    select_prize_index,
)
from petal_economy.economy.wheel.types import SpinResult, WheelPrize

logger = structlog.get_logger(__name__)

SPIN_DURATION_MS = 3000

_system_rng = random.SystemRandom()


class WheelService:
    @staticmethod
    def configuration(config: LoyaltyConfig | None = None) -> tuple[WheelPrize, ...]:
        return (config or LoyaltyConfig.defaults()).wheel_prizes

    @staticmethod
    async def _pay_out(
        session: AsyncSession,
        *,
        user_id: str,
        prize: WheelPrize,
        now_utc: datetime,
    ) -> Balance:
        metadata = prize.as_metadata()
        if prize.type == "petals" and prize.value > 0:
            return await LedgerService.credit(
                session,
                user_id=user_id,
                amount=prize.value,
                kind=TransactionKind.WHEEL_WIN,
                now_utc=now_utc,
                metadata=metadata,
            )
        # Discounts and gifts are fulfilled through reward exchange; the win is only logged.
        return await LedgerService.record_event(
            session,
            user_id=user_id,
            kind=TransactionKind.WHEEL_WIN,
            now_utc=now_utc,
            metadata=metadata,
        )

    @staticmethod
    async def spin(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
        rng: random.Random | None = None,
    ) -> SpinResult:
        config = config or LoyaltyConfig.defaults()
        rng = rng or _system_rng
        prizes = config.wheel_prizes
        cooldown = timedelta(days=config.wheel_cooldown_days)

        try:
            async with storage_guard():
                async with session.begin_nested():
                    await LedgerService.consume_spin_credit(
                        session,
                        user_id=user_id,
                        now_utc=now_utc,
                        cooldown=cooldown,
                    )
                    index = select_prize_index(prizes, rng.random())
                    prize = prizes[index]
                    balance = await WheelService._pay_out(
                        session,
                        user_id=user_id,
                        prize=prize,
                        now_utc=now_utc,
                    )
        except LoyaltyError as exc:
            logger.info("wheel_spin_rejected", user_id=user_id, reason=exc.reason.value)
            return SpinResult(success=False, message=exc.message, reason=exc.reason)

        angle = presentation_angle(len(prizes), index, rng)
        logger.info(
            "wheel_spin_completed",
            user_id=user_id,
            prize_id=prize.id,
            prize_type=prize.type,
            prize_value=prize.value,
        )
        return SpinResult(
            success=True,
            message=prize_message(prize),
            prize=prize,
            presentation_angle=angle,
            duration_ms=SPIN_DURATION_MS,
            petals=balance.petals,
            spin_credits=balance.spin_credits,
            metadata=prize.as_metadata(),
        )
