from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.core.clock import as_utc
from petal_economy.core.codes import normalize_code, validate_code
from petal_economy.db.models.balances import Balance
from petal_economy.db.models.redemption_codes import RedemptionCode
from petal_economy.db.repo.redemption_codes_repo import RedemptionCodesRepo
from petal_economy.db.repo.transactions_repo import TransactionsRepo
from petal_economy.economy.config import LoyaltyConfig
from petal_economy.economy.cooldowns.rules import can_claim_social_activity
from petal_economy.economy.errors import (
    CodeAlreadyUsedError,
    CodeExpiredError,
    CodeNotFoundError,
    InvalidCodeError,
    LoyaltyError,
    SocialCooldownActiveError,
    WrongOwnerError,
    storage_guard,
)
from petal_economy.economy.ledger.service import LedgerService
from petal_economy.economy.ledger.types import TransactionKind
from petal_economy.economy.redemption.types import (
    TRANSACTION_KIND_BY_CODE_TYPE,
    ActivationResult,
    CodeType,
)

logger = structlog.get_logger(__name__)

LOGGED_CODE_PREFIX_LENGTH = 4


def _code_prefix(code: str) -> str:
    return code[:LOGGED_CODE_PREFIX_LENGTH]


def _success_message(*, petals_delta: int, spin_credit: int) -> str:
    parts: list[str] = []
    if petals_delta > 0:
        parts.append(f"+{petals_delta} petals")
    elif petals_delta < 0:
        parts.append(f"{petals_delta} petals")
    if spin_credit > 0:
        parts.append("+1 wheel spin")
    if not parts:
        return "Code activated"
    return "Code activated: " + ", ".join(parts)


class RedemptionService:
    @staticmethod
    def _check_code_state(code: RedemptionCode, *, user_id: str, now_utc: datetime) -> None:
        if now_utc >= as_utc(code.expires_at):
            raise CodeExpiredError
        if code.is_used:
            raise CodeAlreadyUsedError
        if code.bound_user_id is not None and code.bound_user_id != user_id:
            raise WrongOwnerError

    @staticmethod
    async def _check_social_cooldown(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
        config: LoyaltyConfig,
    ) -> None:
        last_social_at = await TransactionsRepo.get_last_at_for_kind(
            session,
            user_id=user_id,
            kind=TransactionKind.SOCIAL_ACTIVITY.value,
        )
        cooldown = timedelta(days=config.social.cooldown_days)
        if not can_claim_social_activity(last_social_at, now_utc=now_utc, cooldown=cooldown):
            raise SocialCooldownActiveError(
                f"Social activity can be claimed once every {config.social.cooldown_days} days"
            )

    @staticmethod
    async def _apply_payout(
        session: AsyncSession,
        *,
        user_id: str,
        code: RedemptionCode,
        code_type: CodeType,
        now_utc: datetime,
    ) -> Balance:
        kind = TRANSACTION_KIND_BY_CODE_TYPE[code_type]
        metadata: dict[str, object] = {
            "code_type": code_type.value,
            "code_prefix": _code_prefix(code.code),
            "labels": dict(code.labels or {}),
        }
        if code.petals_delta > 0:
            balance = await LedgerService.credit(
                session,
                user_id=user_id,
                amount=code.petals_delta,
                kind=kind,
                now_utc=now_utc,
                metadata=metadata,
            )
        elif code.petals_delta < 0:
            balance = await LedgerService.debit(
                session,
                user_id=user_id,
                amount=-code.petals_delta,
                kind=kind,
                now_utc=now_utc,
                metadata=metadata,
            )
        else:
            balance = await LedgerService.record_event(
                session,
                user_id=user_id,
                kind=kind,
                now_utc=now_utc,
                metadata=metadata,
            )

        if code.spin_credit > 0:
            balance = await LedgerService.grant_spin_credit(
                session,
                user_id=user_id,
                amount=code.spin_credit,
                now_utc=now_utc,
            )
        return balance

    @staticmethod
    async def _activate_in_savepoint(
        session: AsyncSession,
        *,
        user_id: str,
        normalized_code: str,
        now_utc: datetime,
        config: LoyaltyConfig,
    ) -> ActivationResult:
        code = await RedemptionCodesRepo.get_by_code_for_update(session, normalized_code)
        if code is None:
            raise CodeNotFoundError
        RedemptionService._check_code_state(code, user_id=user_id, now_utc=now_utc)

        code_type = CodeType(code.code_type)
        # Locks the balance row; serializes this user's activations from here on.
        await LedgerService.get_or_create(session, user_id=user_id, now_utc=now_utc)
        if code_type is CodeType.SOCIAL:
            await RedemptionService._check_social_cooldown(
                session, user_id=user_id, now_utc=now_utc, config=config
            )

        marked = await RedemptionCodesRepo.mark_used(
            session,
            code=normalized_code,
            user_id=user_id,
            now_utc=now_utc,
        )
        if not marked:
            raise CodeAlreadyUsedError

        balance = await RedemptionService._apply_payout(
            session,
            user_id=user_id,
            code=code,
            code_type=code_type,
            now_utc=now_utc,
        )
        return ActivationResult(
            success=True,
            message=_success_message(petals_delta=code.petals_delta, spin_credit=code.spin_credit),
            code_type=code_type,
            petals_added=code.petals_delta,
            spin_credits_added=code.spin_credit,
            petals=balance.petals,
            spin_credits=balance.spin_credits,
        )

    @staticmethod
    async def activate(
        session: AsyncSession,
        *,
        user_id: str,
        code: str,
        now_utc: datetime,
        config: LoyaltyConfig | None = None,
    ) -> ActivationResult:
        """Consumes a redemption code exactly once and pays it out.

        Checks run in a fixed order and the first failure wins: checksum, existence,
        expiry, prior use, owner binding, social cooldown. The payout and the code's
        `is_used` flip share one SAVEPOINT, so a rejection raised midway leaves no trace.
        """
        config = config or LoyaltyConfig.defaults()
        normalized_code = normalize_code(code)

        try:
            if not validate_code(normalized_code):
                raise InvalidCodeError
            async with storage_guard():
                async with session.begin_nested():
                    result = await RedemptionService._activate_in_savepoint(
                        session,
                        user_id=user_id,
                        normalized_code=normalized_code,
                        now_utc=now_utc,
                        config=config,
                    )
        except LoyaltyError as exc:
            logger.info(
                "promo_code_rejected",
                user_id=user_id,
                code_prefix=_code_prefix(normalized_code),
                reason=exc.reason.value,
            )
            return ActivationResult(success=False, message=exc.message, reason=exc.reason)

        logger.info(
            "promo_code_activated",
            user_id=user_id,
            code_prefix=_code_prefix(normalized_code),
            code_type=result.code_type.value if result.code_type else None,
            petals_added=result.petals_added,
            spin_credits_added=result.spin_credits_added,
        )
        return result
