from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from petal_economy.economy.errors import RejectionReason


@dataclass(frozen=True, slots=True)
class RewardItem:
    id: str
    name: str
    description: str
    petals_cost: int
    is_active: bool
    icon: str = ""
    color: str = ""
    discount_percent: int | None = None
    max_discount_amount: int | None = None
    min_order_amount: int | None = None
    gift_type: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RewardItem:
        def _optional_int(key: str) -> int | None:
            value = raw.get(key)
            return None if value is None else int(value)

        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name", raw["id"])),
            description=str(raw.get("description", "")),
            petals_cost=int(raw["petals_cost"]),
            is_active=bool(raw.get("is_active", True)),
            icon=str(raw.get("icon", "")),
            color=str(raw.get("color", "")),
            discount_percent=_optional_int("discount_percent"),
            max_discount_amount=_optional_int("max_discount_amount"),
            min_order_amount=_optional_int("min_order_amount"),
            gift_type=raw.get("gift_type"),
        )

    @property
    def reward_type(self) -> str:
        return "discount" if self.discount_percent else "gift"


@dataclass(frozen=True, slots=True)
class RewardExchangeResult:
    success: bool
    message: str
    reason: RejectionReason | None = None
    code: str | None = None
    expires_at: datetime | None = None
    petals: int | None = None
    spin_credits: int | None = None


@dataclass(frozen=True, slots=True)
class RewardHistoryItem:
    code: str
    reward_id: str | None
    is_used: bool
    used_at: datetime | None
    expires_at: datetime
    created_at: datetime
    details: dict[str, object]
