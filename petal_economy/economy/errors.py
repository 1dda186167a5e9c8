from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum

from sqlalchemy.exc import InterfaceError, OperationalError


class RejectionReason(str, Enum):
    INVALID_CODE = "INVALID_CODE"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    ALREADY_USED = "ALREADY_USED"
    WRONG_OWNER = "WRONG_OWNER"
    SOCIAL_COOLDOWN_ACTIVE = "SOCIAL_COOLDOWN_ACTIVE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    NO_CREDIT = "NO_CREDIT"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    YEARLY_LIMIT_REACHED = "YEARLY_LIMIT_REACHED"
    SELF_REFERRAL = "SELF_REFERRAL"
    BELOW_MIN_ORDER = "BELOW_MIN_ORDER"
    NO_PENDING_REFERRAL = "NO_PENDING_REFERRAL"
    REWARD_NOT_FOUND = "REWARD_NOT_FOUND"
    REWARD_UNAVAILABLE = "REWARD_UNAVAILABLE"


HTTP_STATUS_BY_REASON: dict[RejectionReason, int] = {
    RejectionReason.INVALID_CODE: 400,
    RejectionReason.NOT_FOUND: 404,
    RejectionReason.EXPIRED: 400,
    RejectionReason.ALREADY_USED: 409,
    RejectionReason.WRONG_OWNER: 400,
    RejectionReason.SOCIAL_COOLDOWN_ACTIVE: 400,
    RejectionReason.INSUFFICIENT_FUNDS: 400,
    RejectionReason.NO_CREDIT: 400,
    RejectionReason.COOLDOWN_ACTIVE: 400,
    RejectionReason.YEARLY_LIMIT_REACHED: 409,
    RejectionReason.SELF_REFERRAL: 400,
    RejectionReason.BELOW_MIN_ORDER: 400,
    RejectionReason.NO_PENDING_REFERRAL: 404,
    RejectionReason.REWARD_NOT_FOUND: 404,
    RejectionReason.REWARD_UNAVAILABLE: 400,
}


class LoyaltyError(Exception):
    reason: RejectionReason
    default_message = "Operation rejected"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCodeError(LoyaltyError):
    reason = RejectionReason.INVALID_CODE
    default_message = "Invalid code"


class CodeNotFoundError(LoyaltyError):
    reason = RejectionReason.NOT_FOUND
    default_message = "Code not found"


class CodeExpiredError(LoyaltyError):
    reason = RejectionReason.EXPIRED
    default_message = "Code has expired"


class CodeAlreadyUsedError(LoyaltyError):
    reason = RejectionReason.ALREADY_USED
    default_message = "Code has already been activated"


class WrongOwnerError(LoyaltyError):
    reason = RejectionReason.WRONG_OWNER
    default_message = "Code cannot be used by this user"


class SocialCooldownActiveError(LoyaltyError):
    reason = RejectionReason.SOCIAL_COOLDOWN_ACTIVE
    default_message = "Social activity can be claimed once every 30 days"


class InsufficientFundsError(LoyaltyError):
    reason = RejectionReason.INSUFFICIENT_FUNDS
    default_message = "Insufficient petals"


class NoCreditError(LoyaltyError):
    reason = RejectionReason.NO_CREDIT
    default_message = "No spin credits available"


class CooldownActiveError(LoyaltyError):
    reason = RejectionReason.COOLDOWN_ACTIVE
    default_message = "Wheel cooldown is active"


class YearlyLimitReachedError(LoyaltyError):
    reason = RejectionReason.YEARLY_LIMIT_REACHED
    default_message = "Yearly referral limit reached"


class SelfReferralError(LoyaltyError):
    reason = RejectionReason.SELF_REFERRAL
    default_message = "Users cannot refer themselves"


class RewardNotFoundError(LoyaltyError):
    reason = RejectionReason.REWARD_NOT_FOUND
    default_message = "Reward not found"


class RewardUnavailableError(LoyaltyError):
    reason = RejectionReason.REWARD_UNAVAILABLE
    default_message = "Reward is not available"


class LoyaltyStorageError(Exception):
    """Storage is unreachable; never a business rejection."""


@asynccontextmanager
async def storage_guard() -> AsyncIterator[None]:
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise LoyaltyStorageError(type(exc).__name__) from exc
