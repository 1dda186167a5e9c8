from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from petal_economy.economy.errors import RejectionReason

DEFAULT_REFERRAL_LIST_LIMIT = 50


class ReferralStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    BONUS_PAID = "bonus_paid"


class ReferralOutcome(str, Enum):
    CREATED = "CREATED"
    ALREADY_REFERRED = "ALREADY_REFERRED"
    REJECTED = "REJECTED"


@dataclass(frozen=True, slots=True)
class ReferralRegistrationResult:
    success: bool
    outcome: ReferralOutcome
    message: str
    reason: RejectionReason | None = None
    referral_id: int | None = None


@dataclass(frozen=True, slots=True)
class FirstOrderResult:
    success: bool
    message: str
    reason: RejectionReason | None = None
    inviter_id: str | None = None
    invitee_petals_added: int = 0
    inviter_petals_added: int = 0


@dataclass(frozen=True, slots=True)
class ReferralStats:
    total: int
    successful: int
    pending: int
    total_bonus_earned: int
    referrals_this_year: int
    remaining_this_year: int


@dataclass(frozen=True, slots=True)
class ReferralSummary:
    referral_id: int
    invitee_id: str
    username: str | None
    first_name: str | None
    last_name: str | None
    status: ReferralStatus
    created_at: datetime
    first_order_confirmed_at: datetime | None
    first_order_amount: Decimal | None
    bonus_paid: bool
