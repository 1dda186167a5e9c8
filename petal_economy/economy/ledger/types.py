from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TransactionKind(str, Enum):
    PROMO_ACTIVATION = "PROMO_ACTIVATION"
    WHEEL_WIN = "WHEEL_WIN"
    REFERRAL_BONUS = "REFERRAL_BONUS"
    SOCIAL_ACTIVITY = "SOCIAL_ACTIVITY"
    REWARD_EXCHANGE = "REWARD_EXCHANGE"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


SPIN_CREDITS_CAP = 1


@dataclass(frozen=True, slots=True)
class BalanceSummary:
    petals: int
    spin_credits: int
    can_spin: bool
    last_spin_at: datetime | None
    next_spin_available: datetime | None
