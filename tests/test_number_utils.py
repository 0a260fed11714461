import pytest

from utils.number_utils import money, round_half_up


@pytest.mark.parametrize("value, digits, expected", [
    (2.5, 0, 3),
    (3.5, 0, 4),
    (0.25, 1, 0.3),
    (0.125, 2, 0.13),
    (7.0, 0, 7),
])
def test_round_half_up(value, digits, expected):
    assert round_half_up(value, digits) == expected


def test_round_half_up_returns_int_for_whole_numbers():
    assert isinstance(round_half_up(9.6), int)


def test_money_rounds_halves_up():
    # round() would give 0.12 here
    assert money(0.125) == 0.13
    assert money(1200) == 1200


@pytest.mark.parametrize("value", [None, 0, float("nan")])
def test_money_missing_values(value):
    assert money(value) == 0.0
