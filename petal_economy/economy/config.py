"""Versionless economy configuration snapshot.

Built from the keyed JSON blobs stored in the `config` table. Every blob (and every
field inside it) falls back to the built-in defaults below, so an empty table still
yields a working economy. The snapshot is immutable and passed into each call.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from petal_economy.db.repo.config_repo import ConfigRepo
from petal_economy.economy.rewards.types import RewardItem
from petal_economy.economy.wheel.types import WheelPrize

logger = structlog.get_logger(__name__)

ECONOMY_CONFIG_KEY = "economy_config"
WHEEL_CONFIG_KEY = "wheel_config"
REWARDS_CONFIG_KEY = "rewards_config"
RATE_LIMITS_CONFIG_KEY = "rate_limits_config"
CONFIG_KEYS = (ECONOMY_CONFIG_KEY, WHEEL_CONFIG_KEY, REWARDS_CONFIG_KEY, RATE_LIMITS_CONFIG_KEY)

DEFAULT_ORDER_RANGES: tuple[dict[str, int], ...] = (
    {"min_amount": 1500, "max_amount": 1999, "petals": 2, "spins": 0},
    {"min_amount": 2000, "max_amount": 2999, "petals": 3, "spins": 1},
    {"min_amount": 3000, "max_amount": 4999, "petals": 5, "spins": 1},
    {"min_amount": 5000, "max_amount": 9999, "petals": 8, "spins": 1},
    {"min_amount": 10000, "max_amount": 999999, "petals": 15, "spins": 1},
)

DEFAULT_WHEEL_PRIZES: tuple[dict[str, Any], ...] = (
    {"id": "petals_2", "type": "petals", "value": 2, "label": "+2 petals", "probability": 0.25, "color": "#FFB6C1"},
    {"id": "petals_5", "type": "petals", "value": 5, "label": "+5 petals", "probability": 0.20, "color": "#FF69B4"},
    {"id": "discount_5", "type": "discount", "value": 5, "label": "5% discount", "probability": 0.15, "color": "#DDA0DD"},
    {"id": "petals_10", "type": "petals", "value": 10, "label": "+10 petals", "probability": 0.15, "color": "#FF1493"},
    {"id": "discount_10", "type": "discount", "value": 10, "label": "10% discount", "probability": 0.10, "color": "#BA55D3"},
    {"id": "gift_bouquet", "type": "gift", "value": 1, "label": "Mini bouquet", "probability": 0.10, "color": "#9370DB"},
    {"id": "petals_20", "type": "petals", "value": 20, "label": "+20 petals", "probability": 0.04, "color": "#8B008B"},
    {"id": "gift_large", "type": "gift", "value": 2, "label": "Large bouquet", "probability": 0.01, "color": "#4B0082"},
)

DEFAULT_REWARDS: tuple[dict[str, Any], ...] = (
    {
        "id": "discount_5",
        "name": "5% discount",
        "description": "Promo code for 5% off the next order",
        "petals_cost": 10,
        "discount_percent": 5,
        "max_discount_amount": 100,
        "min_order_amount": 500,
        "is_active": True,
        "icon": "🏷️",
        "color": "#10b981",
    },
    {
        "id": "discount_10",
        "name": "10% discount",
        "description": "Promo code for 10% off the next order",
        "petals_cost": 20,
        "discount_percent": 10,
        "max_discount_amount": 200,
        "min_order_amount": 1000,
        "is_active": True,
        "icon": "🎫",
        "color": "#3b82f6",
    },
    {
        "id": "discount_15",
        "name": "15% discount",
        "description": "Promo code for 15% off the next order",
        "petals_cost": 35,
        "discount_percent": 15,
        "max_discount_amount": 500,
        "min_order_amount": 2000,
        "is_active": True,
        "icon": "🎟️",
        "color": "#8b5cf6",
    },
    {
        "id": "mini_bouquet",
        "name": "Mini bouquet",
        "description": "Free mini bouquet of 3 roses",
        "petals_cost": 50,
        "gift_type": "mini_bouquet",
        "is_active": True,
        "icon": "💐",
        "color": "#ec4899",
    },
    {
        "id": "certificate_500",
        "name": "Gift certificate 500",
        "description": "Gift certificate worth 500 RUB",
        "petals_cost": 100,
        "gift_type": "certificate",
        "is_active": True,
        "icon": "🎁",
        "color": "#f59e0b",
    },
    {
        "id": "large_bouquet",
        "name": "Large bouquet",
        "description": "Festive bouquet of 15 roses",
        "petals_cost": 200,
        "gift_type": "large_bouquet",
        "is_active": True,
        "icon": "🌹",
        "color": "#ef4444",
    },
)

DEFAULT_SOCIAL_PETALS_REWARD = 5
DEFAULT_SOCIAL_COOLDOWN_DAYS = 30
DEFAULT_WHEEL_COOLDOWN_DAYS = 14
DEFAULT_INVITER_PETALS = 3
DEFAULT_INVITEE_PETALS = 6
DEFAULT_REFERRAL_MIN_ORDER_AMOUNT = 2000
DEFAULT_MAX_REFERRALS_PER_YEAR = 20
DEFAULT_PROMO_ACTIVATIONS_PER_MINUTE = 5
DEFAULT_WHEEL_SPINS_PER_DAY = 1


@dataclass(frozen=True, slots=True)
class OrderBand:
    min_amount: int
    max_amount: int
    petals: int
    spins: int

    def matches(self, order_amount: Decimal) -> bool:
        return self.min_amount <= order_amount <= self.max_amount


@dataclass(frozen=True, slots=True)
class SocialActivityRules:
    petals_reward: int = DEFAULT_SOCIAL_PETALS_REWARD
    cooldown_days: int = DEFAULT_SOCIAL_COOLDOWN_DAYS


@dataclass(frozen=True, slots=True)
class ReferralRules:
    inviter_petals: int = DEFAULT_INVITER_PETALS
    invitee_petals: int = DEFAULT_INVITEE_PETALS
    min_order_amount: int = DEFAULT_REFERRAL_MIN_ORDER_AMOUNT
    max_referrals_per_year: int = DEFAULT_MAX_REFERRALS_PER_YEAR


@dataclass(frozen=True, slots=True)
class RateLimits:
    promo_activations_per_minute: int = DEFAULT_PROMO_ACTIVATIONS_PER_MINUTE
    wheel_spins_per_day: int = DEFAULT_WHEEL_SPINS_PER_DAY


@dataclass(frozen=True, slots=True)
class LoyaltyConfig:
    order_bands: tuple[OrderBand, ...]
    social: SocialActivityRules
    referral: ReferralRules
    wheel_cooldown_days: int
    wheel_prizes: tuple[WheelPrize, ...]
    rewards: tuple[RewardItem, ...]
    rate_limits: RateLimits

    def order_band_for(self, order_amount: Decimal) -> OrderBand | None:
        for band in self.order_bands:
            if band.matches(order_amount):
                return band
        return None

    def reward_by_id(self, reward_id: str) -> RewardItem | None:
        for reward in self.rewards:
            if reward.id == reward_id:
                return reward
        return None

    @classmethod
    def defaults(cls) -> LoyaltyConfig:
        return cls.from_blobs({})

    @classmethod
    def from_blobs(cls, blobs: dict[str, dict[str, Any]]) -> LoyaltyConfig:
        economy = blobs.get(ECONOMY_CONFIG_KEY) or {}
        wheel = blobs.get(WHEEL_CONFIG_KEY) or {}
        rewards = blobs.get(REWARDS_CONFIG_KEY) or {}
        rate_limits = blobs.get(RATE_LIMITS_CONFIG_KEY) or {}

        social_raw = economy.get("social_activity") or {}
        referral_raw = economy.get("referral") or {}

        return cls(
            order_bands=tuple(
                OrderBand(
                    min_amount=int(band["min_amount"]),
                    max_amount=int(band["max_amount"]),
                    petals=int(band["petals"]),
                    spins=int(band.get("spins", 0)),
                )
                for band in (economy.get("order_ranges") or DEFAULT_ORDER_RANGES)
            ),
            social=SocialActivityRules(
                petals_reward=int(social_raw.get("petals_reward", DEFAULT_SOCIAL_PETALS_REWARD)),
                cooldown_days=int(social_raw.get("cooldown_days", DEFAULT_SOCIAL_COOLDOWN_DAYS)),
            ),
            referral=ReferralRules(
                inviter_petals=int(referral_raw.get("inviter_petals", DEFAULT_INVITER_PETALS)),
                invitee_petals=int(referral_raw.get("invitee_petals", DEFAULT_INVITEE_PETALS)),
                min_order_amount=int(
                    referral_raw.get("min_order_amount", DEFAULT_REFERRAL_MIN_ORDER_AMOUNT)
                ),
                max_referrals_per_year=int(
                    referral_raw.get("max_referrals_per_year", DEFAULT_MAX_REFERRALS_PER_YEAR)
                ),
            ),
            wheel_cooldown_days=int(wheel.get("cooldown_days", DEFAULT_WHEEL_COOLDOWN_DAYS)),
            wheel_prizes=tuple(
                WheelPrize.from_dict(prize) for prize in (wheel.get("prizes") or DEFAULT_WHEEL_PRIZES)
            ),
            rewards=tuple(
                RewardItem.from_dict(reward) for reward in (rewards.get("rewards") or DEFAULT_REWARDS)
            ),
            rate_limits=RateLimits(
                promo_activations_per_minute=int(
                    rate_limits.get("promo_activations_per_minute", DEFAULT_PROMO_ACTIVATIONS_PER_MINUTE)
                ),
                wheel_spins_per_day=int(
                    rate_limits.get("wheel_spins_per_day", DEFAULT_WHEEL_SPINS_PER_DAY)
                ),
            ),
        )


def default_config_blobs() -> dict[str, dict[str, Any]]:
    return {
        ECONOMY_CONFIG_KEY: {
            "order_ranges": [dict(band) for band in DEFAULT_ORDER_RANGES],
            "social_activity": {
                "petals_reward": DEFAULT_SOCIAL_PETALS_REWARD,
                "cooldown_days": DEFAULT_SOCIAL_COOLDOWN_DAYS,
            },
            "referral": {
                "inviter_petals": DEFAULT_INVITER_PETALS,
                "invitee_petals": DEFAULT_INVITEE_PETALS,
                "min_order_amount": DEFAULT_REFERRAL_MIN_ORDER_AMOUNT,
                "max_referrals_per_year": DEFAULT_MAX_REFERRALS_PER_YEAR,
            },
        },
        WHEEL_CONFIG_KEY: {
            "cooldown_days": DEFAULT_WHEEL_COOLDOWN_DAYS,
            "prizes": [dict(prize) for prize in DEFAULT_WHEEL_PRIZES],
        },
        # The seeded catalogue stops at the certificate; the large bouquet is fallback-only.
        REWARDS_CONFIG_KEY: {"rewards": [dict(reward) for reward in DEFAULT_REWARDS[:5]]},
        RATE_LIMITS_CONFIG_KEY: {
            "promo_activations_per_minute": DEFAULT_PROMO_ACTIVATIONS_PER_MINUTE,
            "wheel_spins_per_day": DEFAULT_WHEEL_SPINS_PER_DAY,
        },
    }


async def load_loyalty_config(session: AsyncSession) -> LoyaltyConfig:
    blobs = await ConfigRepo.get_values(session, CONFIG_KEYS)
    return LoyaltyConfig.from_blobs(blobs)


async def seed_default_config(
    session: AsyncSession,
    *,
    now_utc: datetime,
    updated_by: str = "system",
) -> list[str]:
    """Inserts default blobs for absent keys only; returns the keys created."""
    created: list[str] = []
    for key, value in default_config_blobs().items():
        if await ConfigRepo.get_entry(session, key) is not None:
            logger.info("config_seed_skipped", key=key)
            continue
        await ConfigRepo.upsert(session, key=key, value=value, updated_by=updated_by, now_utc=now_utc)
        created.append(key)
        logger.info("config_seed_created", key=key)
    return created
