"""
De-vig calculations: two-way (multiplicative, additive, power) and one-way multiplier.
"""
from typing import Optional, Tuple

from config import ONE_WAY_MULTIPLIERS, MARKET_MULTIPLIERS

DEVIG_METHODS = ('multiplicative', 'additive', 'power')


def get_one_way_multiplier(price: float) -> float:
    """Get the vig-removal multiplier based on odds level."""
    if price < -200:
        return ONE_WAY_MULTIPLIERS[0]
    elif price < -110:
        return ONE_WAY_MULTIPLIERS[1]
    elif price <= 110:
        return ONE_WAY_MULTIPLIERS[2]
    elif price <= 200:
        return ONE_WAY_MULTIPLIERS[3]
    elif price <= 400:
        return ONE_WAY_MULTIPLIERS[4]
    elif price <= 700:
        return ONE_WAY_MULTIPLIERS[5]
    elif price <= 1000:
        return ONE_WAY_MULTIPLIERS[6]
    elif price <= 2000:
        return ONE_WAY_MULTIPLIERS[7]
    elif price <= 5000:
        return ONE_WAY_MULTIPLIERS[8]
    else:
        return ONE_WAY_MULTIPLIERS[9]


def multiplicative_devig(prob: float, opposite_prob: float) -> Optional[Tuple[float, float]]:
    """Proportional de-vig: fair = p / (p + q)."""
    total = prob + opposite_prob
    if prob <= 0 or opposite_prob <= 0 or total <= 0:
        return None
    return prob / total, opposite_prob / total


def additive_devig(prob: float, opposite_prob: float) -> Optional[Tuple[float, float]]:
    """Subtract half the margin from each side, clamp, renormalize."""
    if prob <= 0 or opposite_prob <= 0:
        return None
    margin = prob + opposite_prob - 1
    fair = min(max(prob - margin / 2, 0.001), 0.999)
    fair_opp = min(max(opposite_prob - margin / 2, 0.001), 0.999)
    total = fair + fair_opp
    return fair / total, fair_opp / total


def power_devig(prob: float, opposite_prob: float,
                tolerance: float = 1e-10, max_iterations: int = 100) -> Optional[Tuple[float, float]]:
    """Find k with p^k + q^k = 1 by bisection; handles favorite/longshot bias."""
    if prob <= 0 or opposite_prob <= 0 or prob >= 1 or opposite_prob >= 1:
        return None
    k_low, k_high, k = 0.1, 10.0, 1.0
    for _ in range(max_iterations):
        k = (k_low + k_high) / 2
        total = prob ** k + opposite_prob ** k
        if abs(total - 1) < tolerance:
            break
        if total > 1:
            k_low = k
        else:
            k_high = k
    fair, fair_opp = prob ** k, opposite_prob ** k
    total = fair + fair_opp
    return fair / total, fair_opp / total


def two_way_devig(prob: float, opposite_prob: float, method: str = 'multiplicative') -> float:
    """Fair probability of the first side; 0.0 when the pair is unusable."""
    if method == 'additive':
        result = additive_devig(prob, opposite_prob)
    elif method == 'power':
        result = power_devig(prob, opposite_prob)
    elif method == 'multiplicative':
        result = multiplicative_devig(prob, opposite_prob)
    else:
        raise ValueError(f"Unknown devig method: {method}")
    return result[0] if result else 0.0


def one_way_devig(implied_prob: float, price: int, market_key: str) -> float:
    """One-way de-vig using multiplier based on odds level and market type."""
    odds_multiplier = get_one_way_multiplier(price)

    # Longshots: the odds-level multiplier already dominates
    if price >= 1000:
        return implied_prob * odds_multiplier

    # Use the higher (more conservative) of market vs odds multiplier
    for market_pattern, mult in MARKET_MULTIPLIERS.items():
        if market_pattern in market_key:
            return implied_prob * max(mult, odds_multiplier)

    return implied_prob * odds_multiplier
