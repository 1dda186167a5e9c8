import random
from collections import Counter

import pytest

from petal_economy.economy.config import DEFAULT_WHEEL_PRIZES
from petal_economy.economy.wheel.selection import (
    presentation_angle,
    prize_message,
    select_prize,
    select_prize_index,
)
from petal_economy.economy.wheel.types import WheelPrize


def _prize(prize_id: str, probability: float, prize_type: str = "petals", value: int = 1) -> WheelPrize:
    return WheelPrize(
        id=prize_id,
        type=prize_type,
        value=value,
        label=prize_id,
        probability=probability,
        color="#FFFFFF",
    )


DEFAULT_TABLE = tuple(WheelPrize.from_dict(raw) for raw in DEFAULT_WHEEL_PRIZES)


def test_zero_draw_selects_first_prize() -> None:
    assert select_prize(DEFAULT_TABLE, 0.0).id == "petals_2"


def test_draw_on_cumulative_boundary_selects_that_prize() -> None:
    prizes = (_prize("a", 0.5), _prize("b", 0.5))

    assert select_prize_index(prizes, 0.5) == 0
    assert select_prize_index(prizes, 0.5000001) == 1


def test_zero_probability_head_is_skipped_for_positive_draws() -> None:
    prizes = (_prize("never", 0.0), _prize("always", 1.0))

    assert select_prize(prizes, 0.3).id == "always"


def test_draw_above_total_probability_falls_back_to_first_prize() -> None:
    prizes = (_prize("a", 0.3), _prize("b", 0.3), _prize("c", 0.3))

    assert select_prize_index(prizes, 0.95) == 0


def test_empty_prize_table_is_rejected() -> None:
    with pytest.raises(ValueError):
        select_prize_index((), 0.1)


def test_empirical_frequencies_match_configured_probabilities() -> None:
    rng = random.Random(20260310)
    draws = 40_000
    counts = Counter(select_prize(DEFAULT_TABLE, rng.random()).id for _ in range(draws))

    for prize in DEFAULT_TABLE:
        assert abs(counts[prize.id] / draws - prize.probability) < 0.015, prize.id


def test_presentation_angle_lands_inside_winning_sector() -> None:
    rng = random.Random(7)
    prize_count = len(DEFAULT_TABLE)
    sector = 360 / prize_count

    for index in range(prize_count):
        for _ in range(50):
            angle = presentation_angle(prize_count, index, rng)
            assert 2 * 360 <= angle < 5 * 360
            offset = angle % 360
            assert index * sector + 0.1 * sector <= offset <= (index + 1) * sector - 0.1 * sector


def test_presentation_angle_validates_index() -> None:
    with pytest.raises(ValueError):
        presentation_angle(8, 8, random.Random(1))
    with pytest.raises(ValueError):
        presentation_angle(0, 0, random.Random(1))


def test_prize_message_depends_on_type() -> None:
    assert prize_message(_prize("p", 1.0, "petals", 5)) == "You won 5 petals!"
    assert "10% discount" in prize_message(_prize("d", 1.0, "discount", 10))
    assert "gift" in prize_message(_prize("Mini bouquet", 1.0, "gift", 1))


def test_zero_draw_skips_zero_probability_prizes() -> None:
    prizes = (_prize("never", 0.0), _prize("first_real", 0.4), _prize("other", 0.6))

    assert select_prize(prizes, 0.0).id == "first_real"
