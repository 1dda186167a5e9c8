from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from petal_economy.db.repo.transactions_repo import TransactionsRepo
from petal_economy.db.repo.users_repo import UsersRepo
from petal_economy.economy.errors import (
    CooldownActiveError,
    InsufficientFundsError,
    LoyaltyStorageError,
    NoCreditError,
    RejectionReason,
)
from petal_economy.economy.ledger.service import LedgerService
from petal_economy.economy.ledger.types import TransactionKind


@pytest.mark.asyncio
async def test_get_or_create_is_idempotent(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        first = await LedgerService.get_or_create(session, user_id="u1", now_utc=now_utc)
        second = await LedgerService.get_or_create(session, user_id="u1", now_utc=now_utc)

        assert first is second
        assert (first.petals, first.spin_credits, first.last_spin_at) == (0, 0, None)
        assert await UsersRepo.get_by_id(session, "u1") is not None


@pytest.mark.asyncio
async def test_credit_and_debit_append_transactions(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        await LedgerService.credit(
            session,
            user_id="u1",
            amount=10,
            kind=TransactionKind.PROMO_ACTIVATION,
            now_utc=now_utc,
            metadata={"source": "test"},
        )
        balance = await LedgerService.debit(
            session,
            user_id="u1",
            amount=4,
            kind=TransactionKind.REWARD_EXCHANGE,
            now_utc=now_utc + timedelta(minutes=1),
        )

    assert balance.petals == 6
    async with session_factory() as session:
        history = await LedgerService.history(session, user_id="u1")

    assert [(entry.delta, entry.kind) for entry in history] == [
        (-4, "REWARD_EXCHANGE"),
        (10, "PROMO_ACTIVATION"),
    ]
    assert history[1].metadata_ == {"source": "test"}


@pytest.mark.asyncio
async def test_debit_beyond_balance_leaves_state_unchanged(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        await LedgerService.credit(
            session, user_id="u1", amount=3, kind=TransactionKind.PROMO_ACTIVATION, now_utc=now_utc
        )

    async with session_factory.begin() as session:
        with pytest.raises(InsufficientFundsError) as exc_info:
            await LedgerService.debit(
                session, user_id="u1", amount=5, kind=TransactionKind.REWARD_EXCHANGE, now_utc=now_utc
            )
        assert exc_info.value.reason is RejectionReason.INSUFFICIENT_FUNDS
        assert "required 5, available 3" in exc_info.value.message

    async with session_factory() as session:
        summary = await LedgerService.summary(session, user_id="u1", now_utc=now_utc)
        assert summary.petals == 3
        assert await TransactionsRepo.count_for_kind(session, user_id="u1", kind="REWARD_EXCHANGE") == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -1])
async def test_non_positive_amounts_are_rejected(session_factory, now_utc, amount: int) -> None:
    async with session_factory.begin() as session:
        with pytest.raises(ValueError):
            await LedgerService.credit(
                session, user_id="u1", amount=amount, kind=TransactionKind.WHEEL_WIN, now_utc=now_utc
            )
        with pytest.raises(ValueError):
            await LedgerService.debit(
                session, user_id="u1", amount=amount, kind=TransactionKind.WHEEL_WIN, now_utc=now_utc
            )
        with pytest.raises(ValueError):
            await LedgerService.grant_spin_credit(session, user_id="u1", amount=amount, now_utc=now_utc)


@pytest.mark.asyncio
async def test_spin_credits_never_exceed_one(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        for amount in (1, 3, 1, 100):
            balance = await LedgerService.grant_spin_credit(
                session, user_id="u1", amount=amount, now_utc=now_utc
            )
            assert balance.spin_credits == 1


@pytest.mark.asyncio
async def test_consume_spin_credit_requires_credit_then_cooldown(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        with pytest.raises(NoCreditError):
            await LedgerService.consume_spin_credit(session, user_id="u1", now_utc=now_utc)

        await LedgerService.grant_spin_credit(session, user_id="u1", amount=1, now_utc=now_utc)
        balance = await LedgerService.consume_spin_credit(session, user_id="u1", now_utc=now_utc)
        assert balance.spin_credits == 0
        assert balance.last_spin_at == now_utc

        await LedgerService.grant_spin_credit(session, user_id="u1", amount=1, now_utc=now_utc)
        with pytest.raises(CooldownActiveError, match="Next spin in 1 days"):
            await LedgerService.consume_spin_credit(
                session, user_id="u1", now_utc=now_utc + timedelta(days=13)
            )

        balance = await LedgerService.consume_spin_credit(
            session, user_id="u1", now_utc=now_utc + timedelta(days=14)
        )
        assert balance.spin_credits == 0


@pytest.mark.asyncio
async def test_no_credit_is_reported_before_cooldown(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        await LedgerService.grant_spin_credit(session, user_id="u1", amount=1, now_utc=now_utc)
        await LedgerService.consume_spin_credit(session, user_id="u1", now_utc=now_utc)

        with pytest.raises(NoCreditError):
            await LedgerService.consume_spin_credit(
                session, user_id="u1", now_utc=now_utc + timedelta(days=1)
            )


@pytest.mark.asyncio
async def test_history_is_most_recent_first_and_limited(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        for minute in range(5):
            await LedgerService.credit(
                session,
                user_id="u1",
                amount=minute + 1,
                kind=TransactionKind.PROMO_ACTIVATION,
                now_utc=now_utc + timedelta(minutes=minute),
            )

    async with session_factory() as session:
        history = await LedgerService.history(session, user_id="u1", limit=3)
        again = await LedgerService.history(session, user_id="u1", limit=3)

    assert [entry.delta for entry in history] == [5, 4, 3]
    assert [entry.id for entry in again] == [entry.id for entry in history]


@pytest.mark.asyncio
async def test_history_rejects_non_positive_limit(session_factory) -> None:
    async with session_factory() as session:
        with pytest.raises(ValueError):
            await LedgerService.history(session, user_id="u1", limit=0)


@pytest.mark.asyncio
async def test_adjust_routes_signed_delta(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        await LedgerService.adjust(
            session, user_id="u1", delta=7, now_utc=now_utc, reason="compensation", actor_id="staff-1"
        )
        balance = await LedgerService.adjust(
            session, user_id="u1", delta=-2, now_utc=now_utc, reason="correction"
        )
        assert balance.petals == 5

        with pytest.raises(ValueError):
            await LedgerService.adjust(session, user_id="u1", delta=0, now_utc=now_utc, reason="noop")

        history = await LedgerService.history(session, user_id="u1")

    assert {entry.kind for entry in history} == {"ADMIN_ADJUSTMENT"}
    assert sorted(entry.delta for entry in history) == [-2, 7]
    assert {entry.metadata_["reason"] for entry in history} == {"compensation", "correction"}


@pytest.mark.asyncio
async def test_summary_reports_spin_availability(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        summary = await LedgerService.summary(session, user_id="u1", now_utc=now_utc)
        assert summary.can_spin is False
        assert summary.next_spin_available is None

        await LedgerService.grant_spin_credit(session, user_id="u1", amount=1, now_utc=now_utc)
        assert (await LedgerService.summary(session, user_id="u1", now_utc=now_utc)).can_spin is True

        await LedgerService.consume_spin_credit(session, user_id="u1", now_utc=now_utc)
        await LedgerService.grant_spin_credit(session, user_id="u1", amount=1, now_utc=now_utc)
        summary = await LedgerService.summary(session, user_id="u1", now_utc=now_utc + timedelta(days=1))

    assert summary.spin_credits == 1
    assert summary.can_spin is False
    assert summary.next_spin_available == now_utc + timedelta(days=14)


@pytest.mark.asyncio
async def test_history_surfaces_storage_failure(session_factory, monkeypatch) -> None:
    async def _lost_connection(session, *, user_id, limit):
        raise OperationalError("SELECT transactions", {}, ConnectionError("connection lost"))

    monkeypatch.setattr(TransactionsRepo, "list_for_user", staticmethod(_lost_connection))

    async with session_factory() as session:
        with pytest.raises(LoyaltyStorageError):
            await LedgerService.history(session, user_id="u1")
