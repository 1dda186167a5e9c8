from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.core.codes import generate_code
from petal_economy.db.models.redemption_codes import RedemptionCode
from petal_economy.db.repo.redemption_codes_repo import RedemptionCodesRepo
from petal_economy.economy.config import LoyaltyConfig
from petal_economy.economy.redemption.types import CODE_PREFIX_BY_TYPE, CodeType, IssuedCode

logger = structlog.get_logger(__name__)

CODE_BODY_LENGTH = 10
DEFAULT_EXPIRES_IN_DAYS = 14
SOCIAL_CODE_EXPIRES_IN_DAYS = 14
SOCIAL_ACTIVITY_TYPES = ("story", "post", "mention")
MAX_ISSUE_ATTEMPTS = 5


class IssuanceService:
    @staticmethod
    async def issue_code(
        session: AsyncSession,
        *,
        code_type: CodeType,
        petals_delta: int,
        spin_credit: int,
        created_by: str,
        now_utc: datetime,
        expires_in_days: int = DEFAULT_EXPIRES_IN_DAYS,
        labels: dict[str, object] | None = None,
        bound_user_id: str | None = None,
    ) -> IssuedCode:
        if spin_credit not in (0, 1):
            raise ValueError("spin_credit must be 0 or 1")
        if expires_in_days <= 0:
            raise ValueError("expires_in_days must be positive")

        code_type = CodeType(code_type)
        expires_at = now_utc + timedelta(days=expires_in_days)
        prefix = CODE_PREFIX_BY_TYPE[code_type]

        for _ in range(MAX_ISSUE_ATTEMPTS):
            generated = generate_code(prefix, CODE_BODY_LENGTH)
            try:
                async with session.begin_nested():
                    await RedemptionCodesRepo.create(
                        session,
                        code=RedemptionCode(
                            code=generated.code,
                            code_type=code_type.value,
                            petals_delta=petals_delta,
                            spin_credit=spin_credit,
                            labels=dict(labels or {}),
                            expires_at=expires_at,
                            single_use=True,
                            bound_user_id=bound_user_id,
                            is_used=False,
                            used_at=None,
                            checksum=generated.checksum,
                            created_by=created_by,
                            created_at=now_utc,
                        ),
                    )
            except IntegrityError:
                logger.warning("promo_code_collision", code_prefix=prefix)
                continue

            logger.info(
                "promo_code_issued",
                code_type=code_type.value,
                code_prefix=prefix,
                petals_delta=petals_delta,
                spin_credit=spin_credit,
                bound_user_id=bound_user_id,
                created_by=created_by,
            )
            return IssuedCode(
                code=generated.code,
                code_type=code_type,
                petals_delta=petals_delta,
                spin_credit=spin_credit,
                expires_at=expires_at,
                created_at=now_utc,
                bound_user_id=bound_user_id,
            )

        raise RuntimeError("unable to generate a unique redemption code")

    @staticmethod
    async def issue_order_code(
        session: AsyncSession,
        *,
        order_amount: Decimal,
        created_by: str,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
        expires_in_days: int = DEFAULT_EXPIRES_IN_DAYS,
    ) -> IssuedCode | None:
        """Issues an ORDER code sized by the economy order bands; None below the lowest band."""
        config = config or LoyaltyConfig.defaults()
        band = config.order_band_for(Decimal(order_amount))
        if band is None:
            return None
        return await IssuanceService.issue_code(
            session,
            code_type=CodeType.ORDER,
            petals_delta=band.petals,
            spin_credit=min(1, band.spins),
            created_by=created_by,
            now_utc=now_utc,
            expires_in_days=expires_in_days,
            labels={"order_amount": str(order_amount)},
        )

    @staticmethod
    async def issue_social_code(
        session: AsyncSession,
        *,
        created_by: str,
        now_utc: datetime,
        activity_type: str = "story",
        config: LoyaltyConfig | None = None,
    ) -> IssuedCode:
        if activity_type not in SOCIAL_ACTIVITY_TYPES:
            raise ValueError(f"unknown social activity type: {activity_type}")
        config = config or LoyaltyConfig.defaults()
        return await IssuanceService.issue_code(
            session,
            code_type=CodeType.SOCIAL,
            petals_delta=config.social.petals_reward,
            spin_credit=0,
            created_by=created_by,
            now_utc=now_utc,
            expires_in_days=SOCIAL_CODE_EXPIRES_IN_DAYS,
            labels={"activity_type": activity_type, "created_for": "social_activity"},
        )
