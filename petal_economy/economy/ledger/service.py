from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.models.balances import Balance
from petal_economy.db.models.transactions import Transaction
from petal_economy.db.repo.balances_repo import BalancesRepo
from petal_economy.db.repo.transactions_repo import TransactionsRepo
from petal_economy.db.repo.users_repo import UsersRepo
from petal_economy.economy.cooldowns.constants import SPIN_COOLDOWN
from petal_economy.economy.cooldowns.rules import can_spin, days_until, next_spin_date
from petal_economy.economy.errors import (
    CooldownActiveError,
    InsufficientFundsError,
    NoCreditError,
    storage_guard,
)
from petal_economy.economy.ledger.types import SPIN_CREDITS_CAP, BalanceSummary, TransactionKind

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 20


class LedgerService:
    """Sole owner of balances and the append-only transaction log.

    Every mutation locks the user's balance row (`SELECT ... FOR UPDATE`) and writes the
    balance change and its transaction inside the caller's transaction.
    Storage failures surface as `LoyaltyStorageError`.
    """

    @staticmethod
    async def ensure_user(session: AsyncSession, *, user_id: str, now_utc: datetime) -> None:
        if await UsersRepo.get_by_id(session, user_id) is not None:
            return
        try:
            async with session.begin_nested():
                await UsersRepo.create(session, user_id=user_id, now_utc=now_utc)
        except IntegrityError:
            # Concurrent first touch created the user.
            if await UsersRepo.get_by_id(session, user_id) is None:
                raise

    @staticmethod
    async def _get_or_create(session: AsyncSession, *, user_id: str, now_utc: datetime) -> Balance:
        balance = await BalancesRepo.get_by_user_id_for_update(session, user_id)
        if balance is not None:
            return balance

        await LedgerService.ensure_user(session, user_id=user_id, now_utc=now_utc)
        try:
            async with session.begin_nested():
                return await BalancesRepo.create_default(session, user_id=user_id, now_utc=now_utc)
        except IntegrityError:
            balance = await BalancesRepo.get_by_user_id_for_update(session, user_id)
            if balance is None:
                raise
            return balance

    @staticmethod
    async def get_or_create(session: AsyncSession, *, user_id: str, now_utc: datetime) -> Balance:
        async with storage_guard():
            return await LedgerService._get_or_create(session, user_id=user_id, now_utc=now_utc)

    @staticmethod
    async def _append(
        session: AsyncSession,
        *,
        user_id: str,
        delta: int,
        kind: TransactionKind,
        metadata: dict[str, object] | None,
        now_utc: datetime,
    ) -> Transaction:
        return await TransactionsRepo.create(
            session,
            entry=Transaction(
                user_id=user_id,
                delta=delta,
                kind=kind.value,
                metadata_=dict(metadata or {}),
                created_at=now_utc,
            ),
        )

    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        user_id: str,
        amount: int,
        kind: TransactionKind,
        now_utc: datetime,
        metadata: dict[str, object] | None = None,
    ) -> Balance:
        if amount <= 0:
            raise ValueError("amount must be positive")

        async with storage_guard():
            balance = await LedgerService._get_or_create(session, user_id=user_id, now_utc=now_utc)
            balance.petals += amount
            balance.updated_at = now_utc
            await LedgerService._append(
                session, user_id=user_id, delta=amount, kind=kind, metadata=metadata, now_utc=now_utc
            )
            await session.flush()
        logger.info("ledger_credit", user_id=user_id, delta=amount, kind=kind.value, petals=balance.petals)
        return balance

    @staticmethod
    async def debit(
        session: AsyncSession,
        *,
        user_id: str,
        amount: int,
        kind: TransactionKind,
        now_utc: datetime,
        metadata: dict[str, object] | None = None,
    ) -> Balance:
        if amount <= 0:
            raise ValueError("amount must be positive")

        async with storage_guard():
            balance = await LedgerService._get_or_create(session, user_id=user_id, now_utc=now_utc)
            if balance.petals < amount:
                raise InsufficientFundsError(
                    f"Insufficient petals: required {amount}, available {balance.petals}"
                )

            balance.petals -= amount
            balance.updated_at = now_utc
            await LedgerService._append(
                session, user_id=user_id, delta=-amount, kind=kind, metadata=metadata, now_utc=now_utc
            )
            await session.flush()
        logger.info("ledger_debit", user_id=user_id, delta=-amount, kind=kind.value, petals=balance.petals)
        return balance

    @staticmethod
    async def record_event(
        session: AsyncSession,
        *,
        user_id: str,
        kind: TransactionKind,
        now_utc: datetime,
        metadata: dict[str, object] | None = None,
    ) -> Balance:
        """Appends a zero-delta entry, e.g. a non-petal wheel prize or a reward code spend."""
        async with storage_guard():
            balance = await LedgerService._get_or_create(session, user_id=user_id, now_utc=now_utc)
            await LedgerService._append(
                session, user_id=user_id, delta=0, kind=kind, metadata=metadata, now_utc=now_utc
            )
            await session.flush()
        logger.info("ledger_event", user_id=user_id, delta=0, kind=kind.value)
        return balance

    @staticmethod
    async def adjust(
        session: AsyncSession,
        *,
        user_id: str,
        delta: int,
        now_utc: datetime,
        reason: str,
        actor_id: str | None = None,
    ) -> Balance:
        metadata: dict[str, object] = {"reason": reason, "actor_id": actor_id}
        if delta > 0:
            return await LedgerService.credit(
                session,
                user_id=user_id,
                amount=delta,
                kind=TransactionKind.ADMIN_ADJUSTMENT,
                now_utc=now_utc,
                metadata=metadata,
            )
        if delta < 0:
            return await LedgerService.debit(
                session,
                user_id=user_id,
                amount=-delta,
                kind=TransactionKind.ADMIN_ADJUSTMENT,
                now_utc=now_utc,
                metadata=metadata,
            )
        raise ValueError("delta must be non-zero")

    @staticmethod
    async def grant_spin_credit(
        session: AsyncSession,
        *,
        user_id: str,
        amount: int,
        now_utc: datetime,
    ) -> Balance:
        if amount <= 0:
            raise ValueError("amount must be positive")

        async with storage_guard():
            balance = await LedgerService._get_or_create(session, user_id=user_id, now_utc=now_utc)
            before = balance.spin_credits
            # Credits above the cap are discarded, not queued.
            balance.spin_credits = min(SPIN_CREDITS_CAP, balance.spin_credits + amount)
            balance.updated_at = now_utc
            await session.flush()
        logger.info(
            "spin_credit_granted",
            user_id=user_id,
            requested=amount,
            spin_credits_before=before,
            spin_credits=balance.spin_credits,
        )
        return balance

    @staticmethod
    async def consume_spin_credit(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
        cooldown: timedelta = SPIN_COOLDOWN,
    ) -> Balance:
        async with storage_guard():
            balance = await LedgerService._get_or_create(session, user_id=user_id, now_utc=now_utc)
            if balance.spin_credits <= 0:
                raise NoCreditError
            if not can_spin(balance.last_spin_at, now_utc=now_utc, cooldown=cooldown):
                next_spin_at = next_spin_date(balance.last_spin_at, cooldown=cooldown)
                raise CooldownActiveError(
                    f"Wheel cooldown is active. Next spin in {days_until(next_spin_at, now_utc=now_utc)} days"
                )

            balance.spin_credits -= 1
            balance.last_spin_at = now_utc
            balance.updated_at = now_utc
            await session.flush()
        logger.info("spin_credit_consumed", user_id=user_id, spin_credits=balance.spin_credits)
        return balance

    @staticmethod
    async def history(
        session: AsyncSession,
        *,
        user_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[Transaction]:
        if limit <= 0:
            raise ValueError("limit must be positive")
        async with storage_guard():
            return await TransactionsRepo.list_for_user(session, user_id=user_id, limit=limit)

    @staticmethod
    async def summary(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
        cooldown: timedelta = SPIN_COOLDOWN,
    ) -> BalanceSummary:
        balance = await LedgerService.get_or_create(session, user_id=user_id, now_utc=now_utc)
        return BalanceSummary(
            petals=balance.petals,
            spin_credits=balance.spin_credits,
            can_spin=balance.spin_credits > 0
            and can_spin(balance.last_spin_at, now_utc=now_utc, cooldown=cooldown),
            last_spin_at=balance.last_spin_at,
            next_spin_available=(
                next_spin_date(balance.last_spin_at, cooldown=cooldown)
                if balance.last_spin_at is not None
                else None
            ),
        )
