from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from petal_economy.economy.errors import RejectionReason
from petal_economy.economy.ledger.types import TransactionKind


class CodeType(str, Enum):
    ORDER = "ORDER"
    SOCIAL = "SOCIAL"
    REWARD = "REWARD"


CODE_PREFIX_BY_TYPE: dict[CodeType, str] = {
    CodeType.ORDER: "OR",
    CodeType.SOCIAL: "SC",
    CodeType.REWARD: "RW",
}

TRANSACTION_KIND_BY_CODE_TYPE: dict[CodeType, TransactionKind] = {
    CodeType.ORDER: TransactionKind.PROMO_ACTIVATION,
    CodeType.SOCIAL: TransactionKind.SOCIAL_ACTIVITY,
    CodeType.REWARD: TransactionKind.PROMO_ACTIVATION,
}


@dataclass(frozen=True, slots=True)
class IssuedCode:
    code: str
    code_type: CodeType
    petals_delta: int
    spin_credit: int
    expires_at: datetime
    created_at: datetime
    bound_user_id: str | None = None


@dataclass(frozen=True, slots=True)
class ActivationResult:
    success: bool
    message: str
    reason: RejectionReason | None = None
    code_type: CodeType | None = None
    petals_added: int = 0
    spin_credits_added: int = 0
    petals: int | None = None
    spin_credits: int | None = None
