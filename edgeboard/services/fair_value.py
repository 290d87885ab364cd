"""
Consensus fair probability: per-book devig combined by book weight.

Books are weighted by their share of the sharp-consensus table in config;
a book missing from the table gets DEFAULT_WEIGHT, and books carrying a
zero weight (the sharp reference books) still count toward coverage.
"""
from typing import Dict, Optional, Tuple

from config import BOOK_ABBREV_MAP, CONFIDENCE_MULTIPLIERS, DEFAULT_WEIGHT, GLOBAL_WEIGHTS
from services.devig import two_way_devig, one_way_devig
from services.pricing import safe_implied_probability

FULL_CONFIDENCE_COVERAGE = 15


def book_weight(book: str) -> float:
    """Consensus weight for a book id ('draftkings') or abbreviation ('DK')."""
    key = book.strip()
    abbrev = BOOK_ABBREV_MAP.get(key.lower())
    if abbrev is None:
        abbrev = key.upper() if key.upper() in GLOBAL_WEIGHTS else key.upper()[:2]
    return GLOBAL_WEIGHTS.get(abbrev, DEFAULT_WEIGHT)


def coverage_confidence(coverage: int) -> float:
    """Stake scaling for how many books quoted the market."""
    if coverage >= FULL_CONFIDENCE_COVERAGE:
        return 1.0
    return CONFIDENCE_MULTIPLIERS.get(coverage, 0.50)


def calculate_fair_probability(
    book_odds: Dict[str, Optional[int]],
    opposite_odds: Optional[Dict[str, Optional[int]]] = None,
    market_key: str = '',
    method: str = 'multiplicative',
) -> Tuple[Optional[float], str]:
    """
    Calculate the weighted consensus fair probability for one side.

    Per book:
        - book quotes both sides -> two-way devig with `method`
        - book quotes one side -> one-way multiplier devig
    Then combine via weighted average. Quotes that are missing or below the
    representable magnitude are skipped.

    Returns:
        (fair_probability, calc_type) where calc_type is 'hybrid'|'2-way'|'1-way'|'none'
        and fair_probability is None for 'none'.
    """
    if not book_odds:
        return None, 'none'

    opposite_odds = opposite_odds or {}
    weighted_sum = 0.0
    weight_total = 0.0
    two_way_count = 0
    one_way_count = 0

    for book, price in book_odds.items():
        implied_prob = safe_implied_probability(price)
        if not implied_prob:
            continue

        weight = book_weight(book)
        opp_prob = safe_implied_probability(opposite_odds.get(book))

        fair_prob = two_way_devig(implied_prob, opp_prob, method) if opp_prob else 0.0
        if fair_prob > 0:
            two_way_count += 1
        else:
            fair_prob = one_way_devig(implied_prob, price, market_key)
            one_way_count += 1
        weighted_sum += fair_prob * weight
        weight_total += weight

    if weight_total <= 0:
        return None, 'none'

    if two_way_count and one_way_count:
        calc_type = 'hybrid'
    elif two_way_count:
        calc_type = '2-way'
    else:
        calc_type = '1-way'
    return weighted_sum / weight_total, calc_type
