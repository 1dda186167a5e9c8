from __future__ import annotations

import random
from collections.abc import Sequence

from petal_economy.economy.wheel.types import WheelPrize

FULL_TURN_DEGREES = 360.0
MIN_FULL_ROTATIONS = 2
MAX_FULL_ROTATIONS = 4
SECTOR_JITTER_SHARE = 0.8


def select_prize_index(prizes: Sequence[WheelPrize], r: float) -> int:
    """Cumulative-probability walk over `prizes` in table order.

    Returns the first index with a positive weight whose running sum reaches `r`. A draw
    above the total (probabilities summing to less than 1) falls back to the first prize.
    """
    if not prizes:
        raise ValueError("prize table is empty")

    cumulative = 0.0
    for index, prize in enumerate(prizes):
        cumulative += prize.probability
        if prize.probability > 0 and r <= cumulative:
            return index
    return 0


def select_prize(prizes: Sequence[WheelPrize], r: float) -> WheelPrize:
    return prizes[select_prize_index(prizes, r)]


def presentation_angle(prize_count: int, index: int, rng: random.Random) -> float:
    """Cosmetic stop angle for the winning sector; computed after the prize is fixed."""
    if prize_count <= 0:
        raise ValueError("prize_count must be positive")
    if not 0 <= index < prize_count:
        raise ValueError("index out of range")

    sector = FULL_TURN_DEGREES / prize_count
    full_rotations = rng.randint(MIN_FULL_ROTATIONS, MAX_FULL_ROTATIONS)
    jitter = (rng.random() - 0.5) * sector * SECTOR_JITTER_SHARE
    return full_rotations * FULL_TURN_DEGREES + index * sector + sector / 2 + jitter


def prize_message(prize: WheelPrize) -> str:
    if prize.type == "petals":
        return f"You won {prize.value} petals!"
    if prize.type == "discount":
        return f"You won a {prize.value}% discount on your next order!"
    return f"You won a gift: {prize.label}!"
