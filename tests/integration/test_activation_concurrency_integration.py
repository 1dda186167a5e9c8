from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from petal_economy.db.repo.balances_repo import BalancesRepo
from petal_economy.db.repo.redemption_codes_repo import RedemptionCodesRepo
from petal_economy.db.session import SessionLocal
from petal_economy.economy.errors import InsufficientFundsError, RejectionReason
from petal_economy.economy.ledger.service import LedgerService
from petal_economy.economy.ledger.types import TransactionKind
from petal_economy.economy.redemption.issuance import IssuanceService
from petal_economy.economy.redemption.service import RedemptionService
from petal_economy.economy.redemption.types import CodeType

NOW_UTC = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


async def _issue(petals_delta: int = 3, spin_credit: int = 1) -> str:
    async with SessionLocal.begin() as session:
        issued = await IssuanceService.issue_code(
            session,
            code_type=CodeType.ORDER,
            petals_delta=petals_delta,
            spin_credit=spin_credit,
            created_by="integration",
            now_utc=NOW_UTC,
        )
    return issued.code


@pytest.mark.asyncio
async def test_concurrent_activation_of_one_code_succeeds_once() -> None:
    code = await _issue()
    start = asyncio.Event()

    async def _activate(user_id: str):
        await start.wait()
        async with SessionLocal.begin() as session:
            return await RedemptionService.activate(session, user_id=user_id, code=code, now_utc=NOW_UTC)

    tasks = [asyncio.create_task(_activate(f"racer-{index}")) for index in range(8)]
    start.set()
    results = await asyncio.gather(*tasks)

    winners = [result for result in results if result.success]
    losers = [result for result in results if not result.success]
    assert len(winners) == 1
    assert {result.reason for result in losers} == {RejectionReason.ALREADY_USED}

    async with SessionLocal.begin() as session:
        stored = await RedemptionCodesRepo.get_by_code(session, code)
        assert stored.is_used is True
        balance = await BalancesRepo.get_by_user_id(session, stored.bound_user_id)
        assert (balance.petals, balance.spin_credits) == (3, 1)


@pytest.mark.asyncio
async def test_concurrent_activations_by_one_user_do_not_lose_updates() -> None:
    codes = [await _issue(petals_delta=2, spin_credit=0) for _ in range(6)]
    start = asyncio.Event()

    async def _activate(code: str):
        await start.wait()
        async with SessionLocal.begin() as session:
            return await RedemptionService.activate(session, user_id="same-user", code=code, now_utc=NOW_UTC)

    async with SessionLocal.begin() as session:
        await LedgerService.get_or_create(session, user_id="same-user", now_utc=NOW_UTC)

    tasks = [asyncio.create_task(_activate(code)) for code in codes]
    start.set()
    results = await asyncio.gather(*tasks)

    assert all(result.success for result in results)
    async with SessionLocal.begin() as session:
        balance = await BalancesRepo.get_by_user_id(session, "same-user")
        history = await LedgerService.history(session, user_id="same-user")
    assert balance.petals == 12
    assert [entry.kind for entry in history] == [TransactionKind.PROMO_ACTIVATION.value] * 6


@pytest.mark.asyncio
async def test_concurrent_debits_never_overdraw() -> None:
    async with SessionLocal.begin() as session:
        await LedgerService.adjust(session, user_id="spender", delta=10, now_utc=NOW_UTC, reason="seed")
    start = asyncio.Event()

    async def _debit() -> bool:
        await start.wait()
        async with SessionLocal.begin() as session:
            try:
                await LedgerService.debit(
                    session,
                    user_id="spender",
                    amount=4,
                    kind=TransactionKind.REWARD_EXCHANGE,
                    now_utc=NOW_UTC,
                )
            except InsufficientFundsError:
                return False
        return True

    tasks = [asyncio.create_task(_debit()) for _ in range(5)]
    start.set()
    outcomes = await asyncio.gather(*tasks)

    assert outcomes.count(True) == 2
    async with SessionLocal.begin() as session:
        assert (await BalancesRepo.get_by_user_id(session, "spender")).petals == 2
