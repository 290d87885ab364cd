"""
Line-history analytics over one book's price series for one selection.

Everything here is a pure function of an immutable series. A BookSeries is
a tuple of PriceObservation sorted by timestamp with one observation per
timestamp (the last one received wins).
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from config import HISTORY_WINDOWS_MS, RLM_MIN_MOVE
from models.domain import CLVResult, DerivedStats, PriceObservation
from services.devig import power_devig
from services.errors import InsufficientData
from services.metrics import compute_clv, detect_reverse_line_movement, expected_value
from services.pricing import safe_implied_probability

BookSeries = Tuple[PriceObservation, ...]
Window = Union[str, int, timedelta, None]


@dataclass(frozen=True)
class SteamMove:
    timestamp: int
    price: int
    prev_price: int
    normalized_delta: int
    direction: str
    book: str


def build_series(observations: Iterable[PriceObservation]) -> BookSeries:
    """Sort by timestamp and keep the last observation for each timestamp."""
    by_ts: Dict[int, PriceObservation] = {}
    for obs in observations:
        by_ts[obs.timestamp] = obs
    return tuple(by_ts[ts] for ts in sorted(by_ts))


def window_ms(window: Window) -> Optional[int]:
    """'1h' / '24h' / '7d' / 'all', a timedelta, or milliseconds. None means no truncation."""
    if window is None or window == 'all':
        return None
    if isinstance(window, timedelta):
        return int(window.total_seconds() * 1000)
    if isinstance(window, int) and not isinstance(window, bool):
        return window
    if isinstance(window, str) and window in HISTORY_WINDOWS_MS:
        return HISTORY_WINDOWS_MS[window]
    raise ValueError(f"Unknown history window: {window!r}")


def filter_window(series: Sequence[PriceObservation], window: Window, now: int) -> BookSeries:
    """Observations inside [now - window, now]; no boundary points are invented."""
    span = window_ms(window)
    if span is None:
        return tuple(series)
    start = now - span
    return tuple(obs for obs in series if start <= obs.timestamp <= now)


def priced(series: Sequence[PriceObservation]) -> List[PriceObservation]:
    return [obs for obs in series if obs.price is not None]


def summary_stats(series: Sequence[PriceObservation]) -> DerivedStats:
    """Open/high/low/current, implied-probability change and move count.

    Moves count consecutive distinct prices: -110, -110, -105 is one move.
    Raises InsufficientData when the series has no priced observation.
    """
    points = priced(series)
    if not points:
        raise InsufficientData("Series has no priced observations")

    high = low = points[0]
    for obs in points[1:]:
        if obs.price > high.price:
            high = obs
        if obs.price < low.price:
            low = obs

    open_price = points[0].price
    current_price = points[-1].price
    open_prob = safe_implied_probability(open_price)
    current_prob = safe_implied_probability(current_price)
    change = None
    if open_prob is not None and current_prob is not None:
        change = (current_prob - open_prob) * 100

    moves = sum(1 for prev, cur in zip(points, points[1:]) if cur.price != prev.price)

    return DerivedStats(
        open_price=open_price,
        current_price=current_price,
        high_price=high.price,
        high_timestamp=high.timestamp,
        low_price=low.price,
        low_timestamp=low.timestamp,
        implied_prob_change=change,
        moves=moves,
    )


def closing_price(series: Sequence[PriceObservation], cutoff: Optional[int] = None) -> Optional[int]:
    """Last priced observation at or before `cutoff` (event start)."""
    closing = None
    for obs in priced(series):
        if cutoff is not None and obs.timestamp > cutoff:
            break
        closing = obs.price
    return closing


def series_clv(series: Sequence[PriceObservation], entry_price: Optional[int] = None,
               cutoff: Optional[int] = None) -> Optional[CLVResult]:
    """CLV of `entry_price` (default: the opening price) against the closing price."""
    points = priced(series)
    if not points:
        return None
    if entry_price is None:
        entry_price = points[0].price
    return compute_clv(entry_price, closing_price(points, cutoff))


def normalize_for_move(price: Optional[int]) -> Optional[int]:
    """Fold American odds around even money so -100 and +100 both map to 0."""
    if price is None:
        return None
    if price >= 100:
        return price - 100
    if price <= -100:
        return price + 100
    return price


def compute_move_value(open_price: Optional[int], current_price: Optional[int]) -> Optional[int]:
    """Cents moved; -110 -> +100 is +10, not +210."""
    a, b = normalize_for_move(open_price), normalize_for_move(current_price)
    if a is None or b is None:
        return None
    return b - a


def detect_steam_moves(series: Sequence[PriceObservation], threshold: int = 10) -> List[SteamMove]:
    """Consecutive observations that moved at least `threshold` normalized cents."""
    points = priced(series)
    moves = []
    for prev, cur in zip(points, points[1:]):
        delta = compute_move_value(prev.price, cur.price)
        if delta is not None and abs(delta) >= threshold:
            moves.append(SteamMove(
                timestamp=cur.timestamp,
                price=cur.price,
                prev_price=prev.price,
                normalized_delta=delta,
                direction='up' if delta > 0 else 'down',
                book=cur.book,
            ))
    return moves


@dataclass(frozen=True)
class EVPoint:
    timestamp: int
    fair_prob: float
    target_price: int
    ev: float


def price_at(series: Sequence[PriceObservation], timestamp: int) -> Optional[int]:
    """Price in effect at `timestamp`: the last priced observation at or before it."""
    price = None
    for obs in priced(series):
        if obs.timestamp > timestamp:
            break
        price = obs.price
    return price


def ev_timeline(
    sharp: Sequence[PriceObservation],
    opposite: Sequence[PriceObservation],
    target: Sequence[PriceObservation],
) -> List[EVPoint]:
    """EV of the target book's price at every sharp observation.

    Each sharp price is power-devigged against the opposite side's price in
    effect at the same moment. Points where the opposite side or the target
    book had not yet posted a price, or the pair cannot be devigged, are
    skipped. `ev` is a percentage.
    """
    if not sharp or not opposite or not target:
        return []
    points = []
    for obs in priced(sharp):
        opp_price = price_at(opposite, obs.timestamp)
        target_price = price_at(target, obs.timestamp)
        if opp_price is None or target_price is None:
            continue
        prob = safe_implied_probability(obs.price)
        opp_prob = safe_implied_probability(opp_price)
        if prob is None or opp_prob is None:
            continue
        fair = power_devig(prob, opp_prob)
        if fair is None:
            continue
        ev = expected_value(fair[0], target_price)
        if ev is None:
            continue
        points.append(EVPoint(timestamp=obs.timestamp, fair_prob=fair[0], target_price=target_price, ev=ev * 100))
    return points


def detect_rlm_against_books(
    series_by_book: Mapping[str, Sequence[PriceObservation]],
    best_book: str,
    sharp_books: Iterable[str],
    min_move: float = RLM_MIN_MOVE,
) -> bool:
    """Reverse line movement of the best book against any of the given sharp books."""
    best_series = series_by_book.get(best_book)
    if not best_series:
        return False
    for book in sharp_books:
        if book == best_book or book not in series_by_book:
            continue
        if detect_reverse_line_movement(series_by_book[book], best_series, min_move):
            return True
    return False


def analyze_history(
    series_by_book: Mapping[str, Iterable[PriceObservation]],
    best_book: str,
    sharp_books: Iterable[str],
    now: int,
    window: Window = None,
    entry_price: Optional[int] = None,
    cutoff: Optional[int] = None,
    min_move: float = RLM_MIN_MOVE,
    steam_threshold: int = 10,
    opposite_by_book: Optional[Mapping[str, Iterable[PriceObservation]]] = None,
) -> dict:
    """Per-book derived views plus the cross-book reverse line movement flag.

    When `opposite_by_book` carries the other side's history for a sharp book,
    `ev_timeline` holds that book's fair-value EV timeline for the best book.
    """
    books = {
        book: filter_window(build_series(observations), window, now)
        for book, observations in series_by_book.items()
    }

    views = {}
    for book, series in books.items():
        try:
            stats = summary_stats(series)
        except InsufficientData:
            stats = None
        views[book] = {
            'observations': len(series),
            'stats': stats,
            'move_value': compute_move_value(stats.open_price, stats.current_price) if stats else None,
            'clv': series_clv(series, entry_price, cutoff),
            'steam_moves': detect_steam_moves(series, steam_threshold),
        }

    sharp = [b.lower() for b in sharp_books]
    timelines = {}
    for book, observations in (opposite_by_book or {}).items():
        if book not in sharp or book not in books or best_book not in books:
            continue
        opposite = filter_window(build_series(observations), window, now)
        timelines[book] = ev_timeline(books[book], opposite, books[best_book])

    return {
        'best_book': best_book,
        'books': views,
        'reverse_line_movement': detect_rlm_against_books(books, best_book, sharp, min_move),
        'ev_timeline': timelines,
    }
