from __future__ import annotations

import math
from datetime import datetime, timedelta

from petal_economy.core.clock import as_utc, year_bounds_utc
from petal_economy.economy.cooldowns.constants import (
    REFERRALS_PER_YEAR_CAP,
    SOCIAL_ACTIVITY_COOLDOWN,
    SPIN_COOLDOWN,
)

_SECONDS_PER_DAY = 24 * 60 * 60


def _cooldown_passed(last_at: datetime | None, *, now_utc: datetime, cooldown: timedelta) -> bool:
    if last_at is None:
        return True
    return as_utc(now_utc) - as_utc(last_at) >= cooldown


def days_until(target_at: datetime, *, now_utc: datetime) -> int:
    """Whole days (rounded up) until `target_at`; 0 once it has passed."""
    remaining = (as_utc(target_at) - as_utc(now_utc)).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining / _SECONDS_PER_DAY)


def can_spin(
    last_spin_at: datetime | None,
    *,
    now_utc: datetime,
    cooldown: timedelta = SPIN_COOLDOWN,
) -> bool:
    return _cooldown_passed(last_spin_at, now_utc=now_utc, cooldown=cooldown)


def next_spin_date(last_spin_at: datetime, *, cooldown: timedelta = SPIN_COOLDOWN) -> datetime:
    return as_utc(last_spin_at) + cooldown


def can_claim_social_activity(
    last_social_at: datetime | None,
    *,
    now_utc: datetime,
    cooldown: timedelta = SOCIAL_ACTIVITY_COOLDOWN,
) -> bool:
    return _cooldown_passed(last_social_at, now_utc=now_utc, cooldown=cooldown)


def next_social_activity_date(
    last_social_at: datetime,
    *,
    cooldown: timedelta = SOCIAL_ACTIVITY_COOLDOWN,
) -> datetime:
    return as_utc(last_social_at) + cooldown


def social_days_until_next(
    last_social_at: datetime | None,
    *,
    now_utc: datetime,
    cooldown: timedelta = SOCIAL_ACTIVITY_COOLDOWN,
) -> int:
    if last_social_at is None:
        return 0
    return days_until(next_social_activity_date(last_social_at, cooldown=cooldown), now_utc=now_utc)


def referral_yearly_cap(confirmed_this_year: int, *, cap: int = REFERRALS_PER_YEAR_CAP) -> bool:
    """True while the inviter may still take on referrals this calendar year."""
    return confirmed_this_year < cap


def referral_year_window(now_utc: datetime) -> tuple[datetime, datetime]:
    return year_bounds_utc(as_utc(now_utc))
