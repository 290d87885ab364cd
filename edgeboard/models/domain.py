"""Domain types shared by the services (not part of the HTTP schema)."""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

ALL = 'all'
LIVE = 'live'
PREGAME = 'pregame'
SCOPES = (ALL, LIVE, PREGAME)


@dataclass(frozen=True)
class RankingKey:
    """One sorted index: (domain, sport, scope, market, metric).

    Segments equal to 'all' are left out of the store key, so the default
    arbitrage index is ``arbs:sort:roi`` and its live variant
    ``arbs:sort:roi:live``.
    """
    domain: str
    sport: str = ALL
    scope: str = ALL
    market: str = ALL
    metric: str = 'roi'

    @property
    def store_key(self) -> str:
        parts = [self.domain]
        if self.sport != ALL:
            parts.append(self.sport)
        parts += ['sort', self.metric]
        if self.market != ALL:
            parts.append(self.market)
        if self.scope != ALL:
            parts.append(self.scope)
        return ':'.join(parts)

    @property
    def row_key(self) -> str:
        if self.sport != ALL:
            return f"{self.domain}:{self.sport}:rows"
        return f"{self.domain}:rows"

    @property
    def version_key(self) -> str:
        return f"{self.domain}:v"

    def event_key(self, event_id: str) -> str:
        """SET of ids belonging to one event."""
        if self.sport != ALL:
            return f"{self.domain}:{self.sport}:by_event:{event_id}"
        return f"{self.domain}:by_event:{event_id}"

    def with_scope(self, scope: str) -> 'RankingKey':
        return replace(self, scope=scope)


@dataclass(frozen=True)
class PriceObservation:
    timestamp: int
    book: str
    price: Optional[int]


@dataclass(frozen=True)
class DerivedStats:
    open_price: int
    current_price: int
    high_price: int
    high_timestamp: int
    low_price: int
    low_timestamp: int
    implied_prob_change: Optional[float]
    moves: int


@dataclass(frozen=True)
class CLVResult:
    beat_clv: bool
    delta: float


@dataclass(frozen=True)
class ArbLeg:
    book: str
    price: int
    stake_fraction: float


@dataclass(frozen=True)
class ArbResult:
    roi: float
    roi_bps: int
    legs: Tuple[ArbLeg, ...]


@dataclass
class FetchResult:
    rows: List[Tuple[str, Optional[Dict[str, Any]]]] = field(default_factory=list)
    missing_ids: List[str] = field(default_factory=list)
    used_fallback: bool = False
