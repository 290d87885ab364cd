"""
Price normalization: American odds <-> implied probability / decimal odds.
Pure functions, no state.
"""
import math
from typing import Optional, Union

from config import MIN_AMERICAN_MAGNITUDE
from services.errors import InvalidPrice


def _check_price(price: int) -> None:
    if abs(price) < MIN_AMERICAN_MAGNITUDE:
        raise InvalidPrice(price)


def implied_probability(price: Optional[int]) -> Optional[float]:
    """Convert American odds to implied probability.

    Returns None for a missing or zero price. Raises InvalidPrice when the
    magnitude is below the minimum representable threshold (e.g. +50, -99).
    """
    if price is None or price == 0:
        return None
    _check_price(price)
    if price > 0:
        return 100 / (price + 100)
    return -price / (-price + 100)


def probability_to_american(prob: Optional[float]) -> Optional[int]:
    """Convert probability to American odds (inverse of implied_probability)."""
    if prob is None or prob <= 0 or prob >= 1:
        return None
    if prob >= 0.5:
        return int(round(-100 * prob / (1 - prob)))
    return int(round(100 * (1 - prob) / prob))


def american_to_decimal(price: Optional[int]) -> Optional[float]:
    """Convert American odds to decimal odds."""
    if price is None or price == 0:
        return None
    _check_price(price)
    if price > 0:
        return 1 + price / 100
    return 1 + 100 / abs(price)


def decimal_to_american(decimal_odds: Optional[float]) -> Optional[int]:
    """Convert decimal odds to American odds."""
    if decimal_odds is None or decimal_odds <= 1:
        return None
    if decimal_odds >= 2:
        return int(round((decimal_odds - 1) * 100))
    return int(round(-100 / (decimal_odds - 1)))


def parse_price(value: Union[int, float, str, None]) -> Optional[int]:
    """Parse a stored/vendor price into an integer American price.

    Accepts ints, finite floats and strings such as "+150", "-110" or the
    unicode minus variant. Anything else returns None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value)) if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = value.replace('−', '-').strip().lstrip('+')
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return int(round(number)) if math.isfinite(number) else None
    return None


def safe_implied_probability(price: Optional[int]) -> Optional[float]:
    """implied_probability that maps unrepresentable prices to None."""
    try:
        return implied_probability(price)
    except InvalidPrice:
        return None
