"""Tests for consensus fair value calculation."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.fair_value import book_weight, calculate_fair_probability, coverage_confidence


def test_book_weight_by_id_or_abbreviation():
    assert book_weight('draftkings') == 0.2027
    assert book_weight('DraftKings') == 0.2027
    assert book_weight('DK') == 0.2027
    assert book_weight('b3') == 0.0
    assert book_weight('someneWbook') == 0.01


def test_coverage_confidence():
    assert coverage_confidence(1) == 0.25
    assert coverage_confidence(10) == 0.81
    assert coverage_confidence(40) == 1.0
    assert coverage_confidence(0) == 0.50


def test_empty_book_odds():
    prob, calc = calculate_fair_probability({})
    assert prob is None
    assert calc == 'none'


def test_two_way_single_book():
    prob, calc = calculate_fair_probability({'draftkings': -110}, {'draftkings': -110})
    assert abs(prob - 0.5) < 0.001
    assert calc == '2-way'


def test_one_way_single_book():
    prob, calc = calculate_fair_probability({'draftkings': -110}, None, 'player_points')
    assert calc == '1-way'
    assert 0.0 < prob < 1.0


def test_hybrid_mixed():
    book_odds = {'draftkings': -110, 'fanduel': -108}
    opp_odds = {'draftkings': -110}
    prob, calc = calculate_fair_probability(book_odds, opp_odds, 'player_points')
    assert calc == 'hybrid'
    assert 0.0 < prob < 1.0


def test_multi_book_weighted():
    book_odds = {'draftkings': -110, 'fanduel': -105, 'betmgm': -115}
    opp_odds = {'draftkings': -110, 'fanduel': -115, 'betmgm': -105}
    prob, calc = calculate_fair_probability(book_odds, opp_odds, 'player_points')
    assert calc == '2-way'
    assert 0.45 < prob < 0.55


def test_missing_and_invalid_prices_skipped():
    book_odds = {'draftkings': 0, 'caesars': None, 'betmgm': 50, 'fanduel': -110}
    prob, calc = calculate_fair_probability(book_odds, None, 'player_points')
    assert calc == '1-way'
    assert abs(prob - (110 / 210) * 0.92) < 1e-9


def test_power_method():
    prob, calc = calculate_fair_probability({'draftkings': -300}, {'draftkings': 240}, method='power')
    assert calc == '2-way'
    assert 0.7 < prob < 0.76
