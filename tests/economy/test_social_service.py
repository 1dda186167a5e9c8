from datetime import timedelta

import pytest

from petal_economy.economy.redemption.issuance import IssuanceService
from petal_economy.economy.redemption.service import RedemptionService
from petal_economy.economy.social.service import SocialService


@pytest.mark.asyncio
async def test_new_user_is_eligible(session_factory, now_utc) -> None:
    async with session_factory() as session:
        eligibility = await SocialService.eligibility(session, user_id="U1", now_utc=now_utc)
        stats = await SocialService.stats(session, user_id="U1", now_utc=now_utc)

    assert eligibility.eligible is True
    assert eligibility.days_until_next == 0
    assert eligibility.last_activity_at is None
    assert eligibility.next_available_at is None
    assert stats.total_activations == 0
    assert stats.eligible_now is True


@pytest.mark.asyncio
async def test_eligibility_is_derived_from_social_transactions(session_factory, now_utc) -> None:
    async with session_factory.begin() as session:
        issued = await IssuanceService.issue_social_code(session, created_by="smm", now_utc=now_utc)
        result = await RedemptionService.activate(session, user_id="U1", code=issued.code, now_utc=now_utc)
        assert result.success is True

    async with session_factory() as session:
        right_after = await SocialService.eligibility(session, user_id="U1", now_utc=now_utc)
        almost = await SocialService.eligibility(
            session, user_id="U1", now_utc=now_utc + timedelta(days=29, hours=12)
        )
        stats = await SocialService.stats(session, user_id="U1", now_utc=now_utc + timedelta(days=30))

    assert right_after.eligible is False
    assert right_after.days_until_next == 30
    assert right_after.last_activity_at == now_utc
    assert right_after.next_available_at == now_utc + timedelta(days=30)
    assert almost.days_until_next == 1
    assert stats.total_activations == 1
    assert stats.eligible_now is True
