"""Tests for price normalization."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from services.errors import InvalidPrice
from services.pricing import (
    american_to_decimal,
    decimal_to_american,
    implied_probability,
    parse_price,
    probability_to_american,
    safe_implied_probability,
)


def test_implied_probability_negative():
    # -110 → 110/210 ≈ 0.5238
    assert abs(implied_probability(-110) - 0.52381) < 0.001


def test_implied_probability_positive():
    # +200 → 100/300 ≈ 0.3333
    assert abs(implied_probability(200) - 0.33333) < 0.001


def test_implied_probability_missing_or_zero():
    assert implied_probability(None) is None
    assert implied_probability(0) is None


def test_implied_probability_below_minimum_magnitude():
    with pytest.raises(InvalidPrice):
        implied_probability(50)
    with pytest.raises(InvalidPrice):
        implied_probability(-99)
    assert safe_implied_probability(-99) is None


def test_even_money_both_signs():
    assert implied_probability(100) == 0.5
    assert implied_probability(-100) == 0.5


def test_round_trip_over_valid_prices():
    for price in list(range(-2000, -99, 7)) + list(range(100, 5001, 13)):
        back = probability_to_american(implied_probability(price))
        if price == 100:
            assert back == -100  # even money folds to the favourite form
        else:
            assert abs(back - price) <= 1, price


def test_probability_to_american_edges():
    assert probability_to_american(0.6) == -150
    assert probability_to_american(1 / 3) == 200
    assert probability_to_american(0.0) is None
    assert probability_to_american(1.0) is None
    assert probability_to_american(None) is None


def test_decimal_conversions():
    assert american_to_decimal(150) == 2.5
    assert abs(american_to_decimal(-200) - 1.5) < 1e-9
    assert decimal_to_american(2.5) == 150
    assert decimal_to_american(1.5) == -200
    assert decimal_to_american(1.0) is None


def test_parse_price():
    assert parse_price("+150") == 150
    assert parse_price("-110") == -110
    assert parse_price("−115") == -115
    assert parse_price(-105.0) == -105
    assert parse_price("EVEN") is None
    assert parse_price(float('nan')) is None
    assert parse_price(True) is None
    assert parse_price(None) is None
