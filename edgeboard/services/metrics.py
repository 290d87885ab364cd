"""
Metric calculations: arbitrage ROI, EV, closing line value, reverse line movement.

Basis points are rounded half-to-even so re-computing a score from the same
prices always lands on the same integer.
"""
from typing import Dict, Optional, Sequence, Tuple

from config import RLM_MIN_MOVE
from models.domain import ArbLeg, ArbResult, CLVResult, PriceObservation
from services.errors import InvalidPrice
from services.pricing import american_to_decimal, safe_implied_probability


def to_basis_points(ratio: float) -> int:
    """0.0123 -> 123. round() is half-to-even; the inner round drops float noise."""
    return int(round(round(ratio * 10000, 6)))


def best_price(quotes: Dict[str, Optional[int]]) -> Optional[Tuple[str, int, float]]:
    """Highest-paying (book, price, decimal) among valid quotes."""
    best = None
    for book, price in quotes.items():
        try:
            decimal_odds = american_to_decimal(price)
        except InvalidPrice:
            continue
        if decimal_odds is None:
            continue
        if best is None or decimal_odds > best[2]:
            best = (book, price, decimal_odds)
    return best


def arbitrage(outcomes: Sequence[Dict[str, Optional[int]]]) -> Optional[ArbResult]:
    """Return of staking across the best price of every outcome.

    `outcomes` holds one {book: price} mapping per outcome of the market
    (two for over/under, three for 1X2). Stakes are proportional to
    1/decimal so every outcome pays the same amount.
    """
    if len(outcomes) < 2:
        return None

    picks = []
    for quotes in outcomes:
        pick = best_price(quotes or {})
        if pick is None:
            return None
        picks.append(pick)

    inverse_sum = sum(1 / decimal_odds for _, _, decimal_odds in picks)
    roi = 1 / inverse_sum - 1
    legs = tuple(
        ArbLeg(book=book, price=price, stake_fraction=(1 / decimal_odds) / inverse_sum)
        for book, price, decimal_odds in picks
    )
    return ArbResult(roi=roi, roi_bps=to_basis_points(roi), legs=legs)


def expected_value(fair_prob: Optional[float], price: Optional[int]) -> Optional[float]:
    """1-unit EV of betting `price` when the true probability is `fair_prob`."""
    if fair_prob is None or fair_prob <= 0 or fair_prob >= 1:
        return None
    try:
        decimal_odds = american_to_decimal(price)
    except InvalidPrice:
        return None
    if decimal_odds is None:
        return None
    return fair_prob * decimal_odds - 1


def expected_value_bps(fair_prob: Optional[float], price: Optional[int]) -> Optional[int]:
    ev = expected_value(fair_prob, price)
    return None if ev is None else to_basis_points(ev)


def kelly_units(fair_prob: Optional[float], price: Optional[int], fraction: float = 0.25) -> float:
    """Fractional Kelly stake in units (percent of bankroll); 0 without an edge."""
    ev = expected_value(fair_prob, price)
    if ev is None or ev <= 0:
        return 0.0
    decimal_odds = american_to_decimal(price)
    return ev / (decimal_odds - 1) * fraction * 100


def compute_clv(entry_price: Optional[int], closing_price: Optional[int]) -> Optional[CLVResult]:
    """Closing line value of a bet taken at `entry_price`.

    delta is in implied-probability points (closing minus entry). The market
    closing at a higher implied probability than the bettor paid means the
    bettor got the better number, so a positive delta is always favourable.
    Returns None when either price is missing or unrepresentable.
    """
    entry_prob = safe_implied_probability(entry_price)
    closing_prob = safe_implied_probability(closing_price)
    if entry_prob is None or closing_prob is None:
        return None
    delta = (closing_prob - entry_prob) * 100
    return CLVResult(beat_clv=delta > 0, delta=delta)


def net_probability_move(series: Sequence[PriceObservation]) -> Optional[float]:
    """Implied-probability points moved between the first and last priced observation."""
    probs = [p for p in (safe_implied_probability(obs.price) for obs in series) if p is not None]
    if len(probs) < 2:
        return None
    return (probs[-1] - probs[0]) * 100


def detect_reverse_line_movement(
    sharp_series: Sequence[PriceObservation],
    best_series: Sequence[PriceObservation],
    min_move: float = RLM_MIN_MOVE,
) -> bool:
    """True when the sharp book and the best-available book moved in opposite directions.

    Both series need two priced observations and a net move larger than
    `min_move` implied-probability points. The default of one point filters
    out one- and two-cent jitter (-110 -> -112 is under half a point) that
    books post while rebalancing, which would otherwise flag nearly every
    pair of series; pass 0.0 to count any opposite move.
    """
    sharp_move = net_probability_move(sharp_series)
    best_move = net_probability_move(best_series)
    if sharp_move is None or best_move is None:
        return False
    if abs(sharp_move) <= min_move or abs(best_move) <= min_move:
        return False
    return (sharp_move > 0) != (best_move > 0)
