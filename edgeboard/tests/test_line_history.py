"""Tests for line-history analytics."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from datetime import timedelta

import pytest

from models.domain import PriceObservation
from services.devig import power_devig
from services.errors import InsufficientData
from services.line_history import (
    analyze_history,
    build_series,
    closing_price,
    compute_move_value,
    detect_rlm_against_books,
    detect_steam_moves,
    ev_timeline,
    filter_window,
    price_at,
    series_clv,
    summary_stats,
    window_ms,
)
from services.metrics import expected_value

HOUR = 60 * 60 * 1000


def _obs(book, points):
    return [PriceObservation(timestamp=ts, book=book, price=price) for ts, price in points]


def test_build_series_sorts_and_last_wins():
    series = build_series(_obs('dk', [(3, -105), (1, -110), (3, -100), (2, -110)]))
    assert [(o.timestamp, o.price) for o in series] == [(1, -110), (2, -110), (3, -100)]


def test_summary_stats_counts_distinct_moves():
    stats = summary_stats(build_series(_obs('dk', [(1, -110), (2, -110), (3, -105)])))
    assert stats.moves == 1
    assert stats.open_price == -110
    assert stats.current_price == -105
    assert stats.high_price == -105 and stats.high_timestamp == 3
    assert stats.low_price == -110 and stats.low_timestamp == 1
    assert abs(stats.implied_prob_change - (105 / 205 - 110 / 210) * 100) < 1e-9


def test_summary_stats_first_extreme_wins_ties():
    stats = summary_stats(_obs('dk', [(1, 120), (2, 130), (3, 110), (4, 130), (5, 110)]))
    assert stats.high_timestamp == 2
    assert stats.low_timestamp == 3
    assert stats.moves == 4


def test_summary_stats_skips_missing_prices():
    stats = summary_stats(_obs('dk', [(1, None), (2, 150), (3, None), (4, 150)]))
    assert stats.open_price == 150
    assert stats.moves == 0
    assert stats.implied_prob_change == 0


def test_summary_stats_empty_series():
    with pytest.raises(InsufficientData):
        summary_stats(())
    with pytest.raises(InsufficientData):
        summary_stats(_obs('dk', [(1, None)]))


def test_window_lookup():
    assert window_ms('1h') == HOUR
    assert window_ms('24h') == 24 * HOUR
    assert window_ms('7d') == 7 * 24 * HOUR
    assert window_ms('all') is None
    assert window_ms(None) is None
    assert window_ms(timedelta(minutes=30)) == HOUR // 2
    with pytest.raises(ValueError):
        window_ms('2w')


def test_filter_window_keeps_only_observed_points():
    now = 10 * HOUR
    series = build_series(_obs('dk', [(now - 2 * HOUR, -110), (now - HOUR, -115), (now - 10, -120), (now + 5, -125)]))
    recent = filter_window(series, '1h', now)
    assert [o.price for o in recent] == [-115, -120]
    assert [o.price for o in filter_window(series, None, now)] == [-110, -115, -120, -125]


def test_closing_price_respects_cutoff():
    series = _obs('dk', [(1, -110), (5, -120), (9, -130)])
    assert closing_price(series) == -130
    assert closing_price(series, cutoff=6) == -120
    assert closing_price(series, cutoff=0) is None


def test_series_clv_defaults_to_opening_price():
    series = _obs('dk', [(1, -110), (5, -120)])
    clv = series_clv(series)
    assert clv.beat_clv is True
    assert abs(clv.delta - (120 / 220 - 110 / 210) * 100) < 1e-9
    assert series_clv(series, entry_price=-130).beat_clv is False
    assert series_clv(()) is None


def test_move_value_folds_even_money():
    assert compute_move_value(-110, 100) == 10
    assert compute_move_value(100, -110) == -10
    assert compute_move_value(150, 120) == -30
    assert compute_move_value(None, 120) is None


def test_steam_moves():
    series = _obs('pinnacle', [(1, -110), (2, -112), (3, 105), (4, 103)])
    moves = detect_steam_moves(series, threshold=10)
    assert len(moves) == 1
    assert moves[0].timestamp == 3
    assert moves[0].prev_price == -112
    assert moves[0].normalized_delta == 17
    assert moves[0].direction == 'up'


def test_rlm_against_books():
    series = {
        'pinnacle': _obs('pinnacle', [(1, -110), (2, -130)]),
        'circa': _obs('circa', [(1, -110), (2, -111)]),
        'draftkings': _obs('draftkings', [(1, -110), (2, 100)]),
    }
    assert detect_rlm_against_books(series, 'draftkings', ['pinnacle']) is True
    assert detect_rlm_against_books(series, 'draftkings', ['circa'], min_move=2.0) is False
    assert detect_rlm_against_books(series, 'draftkings', ['prophetx']) is False
    assert detect_rlm_against_books(series, 'fanduel', ['pinnacle']) is False
    assert detect_rlm_against_books(series, 'pinnacle', ['pinnacle']) is False


def test_analyze_history():
    now = 100 * HOUR
    series = {
        'pinnacle': _obs('pinnacle', [(now - 3 * HOUR, -110), (now - 30 * 60 * 1000, -125)]),
        'draftkings': _obs('draftkings', [(now - 3 * HOUR, -110), (now - 20 * 60 * 1000, 105)]),
        'fanduel': _obs('fanduel', [(now - 3 * HOUR, -110)]),
    }
    result = analyze_history(series, 'draftkings', ['Pinnacle'], now=now)
    assert result['reverse_line_movement'] is True
    dk = result['books']['draftkings']
    assert dk['observations'] == 2
    assert dk['stats'].moves == 1
    assert dk['move_value'] == 15
    assert dk['clv'].beat_clv is False
    assert [m.price for m in dk['steam_moves']] == [105]

    windowed = analyze_history(series, 'draftkings', ['pinnacle'], now=now, window='1h')
    assert windowed['books']['fanduel']['observations'] == 0
    assert windowed['books']['fanduel']['stats'] is None
    assert windowed['books']['fanduel']['clv'] is None
    assert windowed['books']['draftkings']['stats'].moves == 0
    assert windowed['reverse_line_movement'] is False


def test_price_at_uses_last_price_in_effect():
    series = _obs('dk', [(10, -110), (20, None), (30, 105)])
    assert price_at(series, 5) is None
    assert price_at(series, 10) == -110
    assert price_at(series, 25) == -110
    assert price_at(series, 99) == 105


def test_ev_timeline_devigs_each_sharp_point():
    sharp = _obs('pinnacle', [(1, -110), (3, -130), (4, None)])
    opposite = _obs('pinnacle', [(1, -110), (3, 110)])
    target = _obs('draftkings', [(2, 105)])

    points = ev_timeline(sharp, opposite, target)
    # at t=1 the target book had not posted yet
    assert [p.timestamp for p in points] == [3]
    fair, _ = power_devig(130 / 230, 100 / 210)
    assert abs(points[0].fair_prob - fair) < 1e-12
    assert points[0].target_price == 105
    assert abs(points[0].ev - expected_value(fair, 105) * 100) < 1e-9
    assert points[0].ev > 0


def test_ev_timeline_needs_every_input():
    sharp = _obs('pinnacle', [(1, -110)])
    assert ev_timeline(sharp, [], _obs('dk', [(1, 100)])) == []
    assert ev_timeline([], sharp, _obs('dk', [(1, 100)])) == []
    assert ev_timeline(sharp, _obs('pinnacle', [(2, -110)]), _obs('dk', [(1, 100)])) == []


def test_analyze_history_ev_timeline_for_sharp_books_only():
    series = {
        'pinnacle': _obs('pinnacle', [(1, -110), (3, -130)]),
        'draftkings': _obs('draftkings', [(1, 105)]),
        'fanduel': _obs('fanduel', [(1, -105)]),
    }
    opposite = {
        'pinnacle': _obs('pinnacle', [(1, -110), (3, 110)]),
        'fanduel': _obs('fanduel', [(1, -115)]),
    }
    result = analyze_history(series, 'draftkings', ['pinnacle'], now=10, opposite_by_book=opposite)
    assert list(result['ev_timeline']) == ['pinnacle']
    assert [p.timestamp for p in result['ev_timeline']['pinnacle']] == [1, 3]
    assert result['ev_timeline']['pinnacle'][0].fair_prob == pytest.approx(0.5)

    assert analyze_history(series, 'draftkings', ['pinnacle'], now=10)['ev_timeline'] == {}
