from datetime import timedelta
from decimal import Decimal

import pytest

from petal_economy.core.codes import GeneratedCode, validate_code
from petal_economy.db.repo.redemption_codes_repo import RedemptionCodesRepo
from petal_economy.economy.redemption import issuance as issuance_module
from petal_economy.economy.redemption.issuance import IssuanceService
from petal_economy.economy.redemption.service import RedemptionService
from petal_economy.economy.redemption.types import CodeType


@pytest.mark.asyncio
async def test_issue_code_persists_checksummed_code(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        issued = await IssuanceService.issue_code(
            session,
            code_type=CodeType.ORDER,
            petals_delta=5,
            spin_credit=1,
            created_by="staff-1",
            now_utc=now_utc,
            labels={"order_id": "A-100"},
        )

    assert issued.code.startswith("OR")
    assert len(issued.code) == 12
    assert validate_code(issued.code) is True
    assert issued.expires_at == now_utc + timedelta(days=14)

    async with session_factory() as session:
        stored = await RedemptionCodesRepo.get_by_code(session, issued.code)

    assert stored.checksum == issued.code[-2:]
    assert stored.labels == {"order_id": "A-100"}
    assert stored.single_use is True
    assert stored.is_used is False
    assert stored.created_by == "staff-1"


@pytest.mark.asyncio
async def test_issue_code_validates_inputs(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        with pytest.raises(ValueError):
            await IssuanceService.issue_code(
                session,
                code_type=CodeType.ORDER,
                petals_delta=1,
                spin_credit=2,
                created_by="staff-1",
                now_utc=now_utc,
            )
        with pytest.raises(ValueError):
            await IssuanceService.issue_code(
                session,
                code_type="BONUS",
                petals_delta=1,
                spin_credit=0,
                created_by="staff-1",
                now_utc=now_utc,
            )


@pytest.mark.asyncio
async def test_issue_code_retries_on_collision(session_factory, now_utc, monkeypatch) -> None:
    generated = iter(
        [
            GeneratedCode(code="ORAAAAAAAA" + "00", checksum="00"),
            GeneratedCode(code="ORAAAAAAAA" + "00", checksum="00"),
            GeneratedCode(code="ORBBBBBBBB" + "11", checksum="11"),
        ]
    )
    monkeypatch.setattr(issuance_module, "generate_code", lambda prefix, length: next(generated))

    async with session_factory.begin() as session:
        first = await IssuanceService.issue_code(
            session,
            code_type=CodeType.ORDER,
            petals_delta=1,
            spin_credit=0,
            created_by="staff-1",
            now_utc=now_utc,
        )
    async with session_factory.begin() as session:
        second = await IssuanceService.issue_code(
            session,
            code_type=CodeType.ORDER,
            petals_delta=1,
            spin_credit=0,
            created_by="staff-1",
            now_utc=now_utc,
        )

    assert first.code == "ORAAAAAAAA00"
    assert second.code == "ORBBBBBBBB11"


@pytest.mark.asyncio
async def test_issue_order_code_uses_order_bands(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        issued = await IssuanceService.issue_order_code(
            session, order_amount=Decimal("2500"), created_by="shop", now_utc=now_utc
        )
        below = await IssuanceService.issue_order_code(
            session, order_amount=Decimal("1000"), created_by="shop", now_utc=now_utc
        )

    assert below is None
    assert issued.code_type is CodeType.ORDER
    assert (issued.petals_delta, issued.spin_credit) == (3, 1)


@pytest.mark.asyncio
async def test_issue_social_code_and_activate(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        issued = await IssuanceService.issue_social_code(
            session, created_by="smm", now_utc=now_utc, activity_type="mention"
        )

    assert issued.code.startswith("SC")
    assert (issued.petals_delta, issued.spin_credit) == (5, 0)

    async with session_factory.begin() as session:
        result = await RedemptionService.activate(
            session, user_id="U1", code=issued.code, now_utc=now_utc + timedelta(hours=1)
        )
        stored = await RedemptionCodesRepo.get_by_code(session, issued.code)

    assert result.success is True
    assert result.petals == 5
    assert stored.labels["activity_type"] == "mention"


@pytest.mark.asyncio
async def test_issue_social_code_rejects_unknown_activity(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        with pytest.raises(ValueError):
            await IssuanceService.issue_social_code(
                session, created_by="smm", now_utc=now_utc, activity_type="reel"
            )
