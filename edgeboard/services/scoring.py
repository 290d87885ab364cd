"""
Market scoring: turn raw per-book quotes into EV and arbitrage opportunity metrics.
"""
from typing import Dict, Iterable, List, Optional

from services.fair_value import calculate_fair_probability, coverage_confidence
from services.metrics import arbitrage, best_price, expected_value, kelly_units, to_basis_points
from services.pricing import american_to_decimal, probability_to_american


def score_ev_market(market: dict, sharp_books: Iterable[str], method: str = 'multiplicative') -> dict:
    """Score one side of a market against the consensus fair probability."""
    book_odds: Dict[str, Optional[int]] = market.get('book_odds') or {}
    opposite_odds = market.get('opposite_odds')
    market_key = market.get('market_key', '')

    sharp = {b.lower() for b in sharp_books}
    retail = {b: p for b, p in book_odds.items() if b.lower() not in sharp}
    pick = best_price(retail) or best_price(book_odds)
    if pick is None:
        return _empty_ev_result(market)
    best_book, best_odds, _ = pick

    fair_prob, calc_type = calculate_fair_probability(book_odds, opposite_odds, market_key, method)
    if fair_prob is None:
        return _empty_ev_result(market)

    ev = expected_value(fair_prob, best_odds)
    if ev is None:
        return _empty_ev_result(market)

    stake_units = kelly_units(fair_prob, best_odds)
    coverage = len(book_odds)
    conf_multiplier = coverage_confidence(coverage)

    return {
        'player': market.get('player', ''),
        'market_key': market_key,
        'line': market.get('line'),
        'side': market.get('side', ''),
        'fair_probability': round(fair_prob, 4),
        'fair_odds': probability_to_american(fair_prob),
        'calc_type': calc_type,
        'best_book': best_book,
        'best_odds': best_odds,
        'ev_bps': to_basis_points(ev),
        'kelly_fraction': round(stake_units * conf_multiplier, 4),
        'coverage': coverage,
        'confidence_multiplier': round(conf_multiplier, 2),
    }


def _empty_ev_result(market: dict) -> dict:
    return {
        'player': market.get('player', ''),
        'market_key': market.get('market_key', ''),
        'line': market.get('line'),
        'side': market.get('side', ''),
        'fair_probability': None,
        'fair_odds': None,
        'calc_type': 'none',
        'best_book': '',
        'best_odds': None,
        'ev_bps': None,
        'kelly_fraction': 0.0,
        'coverage': 0,
        'confidence_multiplier': 0.0,
    }


def score_arb_market(market: dict, stake: float = 100.0) -> dict:
    """Best price per outcome, ROI and stake split for a total `stake`."""
    outcomes: List[Dict[str, Optional[int]]] = market.get('outcomes') or []
    result = arbitrage(outcomes)
    if result is None:
        return {
            'market_key': market.get('market_key', ''),
            'line': market.get('line'),
            'roi_bps': None,
            'is_arb': False,
            'legs': [],
        }

    legs = []
    for leg in result.legs:
        leg_stake = stake * leg.stake_fraction
        legs.append({
            'book': leg.book,
            'price': leg.price,
            'stake': round(leg_stake, 2),
            'payout': round(leg_stake * american_to_decimal(leg.price), 2),
        })
    return {
        'market_key': market.get('market_key', ''),
        'line': market.get('line'),
        'roi_bps': result.roi_bps,
        'is_arb': result.roi_bps > 0,
        'legs': legs,
    }
