from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.referrals import Referral
from petal_economy.db.repo.referrals_repo import ReferralsRepo
from petal_economy.db.repo.users_repo import UsersRepo
from petal_economy.economy.config import LoyaltyConfig
from petal_economy.economy.cooldowns.rules import referral_year_window, referral_yearly_cap
from petal_economy.economy.errors import (
    LoyaltyError,
    RejectionReason,
    SelfReferralError,
    YearlyLimitReachedError,
    storage_guard,
)
from petal_economy.economy.ledger.service import LedgerService
from petal_economy.economy.ledger.types import TransactionKind
from petal_economy.economy.referrals.types import (
    DEFAULT_REFERRAL_LIST_LIMIT,
    FirstOrderResult,
    ReferralOutcome,
    ReferralRegistrationResult,
    ReferralStats,
    ReferralStatus,
    ReferralSummary,
)

logger = structlog.get_logger(__name__)


def derive_status(referral: Referral) -> ReferralStatus:
    if referral.bonus_paid:
        return ReferralStatus.BONUS_PAID
    if referral.first_order_confirmed_at is not None:
        return ReferralStatus.CONFIRMED
    return ReferralStatus.PENDING


class ReferralService:
    @staticmethod
    async def _count_paid_this_year(
        session: AsyncSession,
        *,
        inviter_id: str,
        now_utc: datetime,
    ) -> int:
        from_utc, to_utc = referral_year_window(now_utc)
        return await ReferralsRepo.count_paid_by_inviter_confirmed_between(
            session,
            inviter_id=inviter_id,
            from_utc=from_utc,
            to_utc=to_utc,
        )

    @staticmethod
    async def _register_in_savepoint(
        session: AsyncSession,
        *,
        invitee_id: str,
        inviter_id: str,
        now_utc: datetime,
        config: LoyaltyConfig,
    ) -> ReferralRegistrationResult:
        existing = await ReferralsRepo.get_by_invitee_id(session, invitee_id=invitee_id)
        if existing is not None:
            return ReferralRegistrationResult(
                success=True,
                outcome=ReferralOutcome.ALREADY_REFERRED,
                message="User has already been referred",
                referral_id=existing.id,
            )

        paid_this_year = await ReferralService._count_paid_this_year(
            session, inviter_id=inviter_id, now_utc=now_utc
        )
        if not referral_yearly_cap(paid_this_year, cap=config.referral.max_referrals_per_year):
            raise YearlyLimitReachedError(
                f"Inviter reached the limit of {config.referral.max_referrals_per_year} referrals per year"
            )

        for user_id in sorted((invitee_id, inviter_id)):
            await LedgerService.get_or_create(session, user_id=user_id, now_utc=now_utc)

        try:
            async with session.begin_nested():
                referral = await ReferralsRepo.create(
                    session,
                    referral=Referral(
                        inviter_id=inviter_id,
                        invitee_id=invitee_id,
                        first_order_confirmed_at=None,
                        first_order_amount=None,
                        bonus_paid=False,
                        created_at=now_utc,
                    ),
                )
        except IntegrityError:
            # A concurrent registration for the same invitee won; first referrer wins.
            existing = await ReferralsRepo.get_by_invitee_id(session, invitee_id=invitee_id)
            if existing is None:
                raise
            return ReferralRegistrationResult(
                success=True,
                outcome=ReferralOutcome.ALREADY_REFERRED,
                message="User has already been referred",
                referral_id=existing.id,
            )

        invitee = await UsersRepo.get_by_id(session, invitee_id)
        if invitee is not None and invitee.ref_parent_id is None:
            invitee.ref_parent_id = inviter_id
            await session.flush()

        return ReferralRegistrationResult(
            success=True,
            outcome=ReferralOutcome.CREATED,
            message="Referral registered",
            referral_id=referral.id,
        )

    @staticmethod
    async def process_referral(
        session: AsyncSession,
        *,
        invitee_id: str,
        inviter_id: str,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
    ) -> ReferralRegistrationResult:
        """Binds `invitee_id` to its first inviter; repeated calls are silent no-ops."""
        config = config or LoyaltyConfig.defaults()
        try:
            if invitee_id == inviter_id:
                raise SelfReferralError
            async with storage_guard():
                async with session.begin_nested():
                    result = await ReferralService._register_in_savepoint(
                        session,
                        invitee_id=invitee_id,
                        inviter_id=inviter_id,
                        now_utc=now_utc,
                        config=config,
                    )
        except LoyaltyError as exc:
            logger.info(
                "referral_rejected",
                invitee_id=invitee_id,
                inviter_id=inviter_id,
                reason=exc.reason.value,
            )
            return ReferralRegistrationResult(
                success=False,
                outcome=ReferralOutcome.REJECTED,
                message=exc.message,
                reason=exc.reason,
            )

        if result.outcome is ReferralOutcome.CREATED:
            logger.info(
                "referral_registered",
                invitee_id=invitee_id,
                inviter_id=inviter_id,
                referral_id=result.referral_id,
            )
        return result

    @staticmethod
    async def confirm_first_order(
        session: AsyncSession,
        *,
        invitee_id: str,
        order_amount: Decimal | int,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
    ) -> FirstOrderResult:
        """Pays both referral bonuses for the invitee's first qualifying order.

        The confirmation stamp, both credits and `bonus_paid` are written in one SAVEPOINT.
        """
        config = config or LoyaltyConfig.defaults()
        rules = config.referral
        amount = Decimal(order_amount)
        if amount < rules.min_order_amount:
            return FirstOrderResult(
                success=False,
                message=f"Minimum order amount for the referral bonus is {rules.min_order_amount}",
                reason=RejectionReason.BELOW_MIN_ORDER,
            )

        async with storage_guard():
            async with session.begin_nested():
                referral = await ReferralsRepo.get_pending_by_invitee_id_for_update(
                    session, invitee_id=invitee_id
                )
                if referral is None:
                    return FirstOrderResult(
                        success=False,
                        message="No pending referral for this user",
                        reason=RejectionReason.NO_PENDING_REFERRAL,
                    )

                inviter_id = referral.inviter_id
                # Lock both balances in a fixed order.
                for user_id in sorted((invitee_id, inviter_id)):
                    await LedgerService.get_or_create(session, user_id=user_id, now_utc=now_utc)

                referral.first_order_confirmed_at = now_utc
                referral.first_order_amount = amount
                metadata: dict[str, object] = {
                    "referral_id": referral.id,
                    "order_amount": str(amount),
                }
                if rules.invitee_petals > 0:
                    await LedgerService.credit(
                        session,
                        user_id=invitee_id,
                        amount=rules.invitee_petals,
                        kind=TransactionKind.REFERRAL_BONUS,
                        now_utc=now_utc,
                        metadata={**metadata, "role": "invitee", "inviter_id": inviter_id},
                    )
                if rules.inviter_petals > 0:
                    await LedgerService.credit(
                        session,
                        user_id=inviter_id,
                        amount=rules.inviter_petals,
                        kind=TransactionKind.REFERRAL_BONUS,
                        now_utc=now_utc,
                        metadata={**metadata, "role": "inviter", "invitee_id": invitee_id},
                    )
                referral.bonus_paid = True
                await session.flush()

        logger.info(
            "referral_bonus_paid",
            referral_id=referral.id,
            invitee_id=invitee_id,
            inviter_id=inviter_id,
            invitee_petals=rules.invitee_petals,
            inviter_petals=rules.inviter_petals,
        )
        return FirstOrderResult(
            success=True,
            message=f"Referral bonus paid: +{rules.invitee_petals} petals",
            inviter_id=inviter_id,
            invitee_petals_added=rules.invitee_petals,
            inviter_petals_added=rules.inviter_petals,
        )

    @staticmethod
    async def stats(
        session: AsyncSession,
        *,
        inviter_id: str,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
    ) -> ReferralStats:
        config = config or LoyaltyConfig.defaults()
        async with storage_guard():
            total = await ReferralsRepo.count_by_inviter(session, inviter_id=inviter_id)
            successful = await ReferralsRepo.count_paid_by_inviter(session, inviter_id=inviter_id)
            this_year = await ReferralService._count_paid_this_year(
                session, inviter_id=inviter_id, now_utc=now_utc
            )
        return ReferralStats(
            total=total,
            successful=successful,
            pending=total - successful,
            total_bonus_earned=successful * config.referral.inviter_petals,
            referrals_this_year=this_year,
            remaining_this_year=max(0, config.referral.max_referrals_per_year - this_year),
        )

    @staticmethod
    async def list_referrals(
        session: AsyncSession,
        *,
        inviter_id: str,
        limit: int = DEFAULT_REFERRAL_LIST_LIMIT,
    ) -> list[ReferralSummary]:
        async with storage_guard():
            rows = await ReferralsRepo.list_by_inviter_with_invitees(
                session, inviter_id=inviter_id, limit=limit
            )
        return [
            ReferralSummary(
                referral_id=referral.id,
                invitee_id=referral.invitee_id,
                username=invitee.username if invitee is not None else None,
                first_name=invitee.first_name if invitee is not None else None,
                last_name=invitee.last_name if invitee is not None else None,
                status=derive_status(referral),
                created_at=referral.created_at,
                first_order_confirmed_at=referral.first_order_confirmed_at,
                first_order_amount=referral.first_order_amount,
                bonus_paid=referral.bonus_paid,
            )
            for referral, invitee in rows
        ]
