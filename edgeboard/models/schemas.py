"""Pydantic models for request/response."""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    version: str


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class BookOdds(BaseModel):
    price: Optional[int] = None


class EVMarketRequest(BaseModel):
    player: str = ''
    market_key: str = ''
    line: Optional[float] = None
    side: str = ''
    book_odds: Dict[str, BookOdds]
    opposite_odds: Optional[Dict[str, BookOdds]] = None


class ScoreEVRequest(BaseModel):
    markets: List[EVMarketRequest]
    devig_method: str = 'multiplicative'


class EVMarketResult(BaseModel):
    player: str
    market_key: str
    line: Optional[float]
    side: str
    fair_probability: Optional[float]
    fair_odds: Optional[int]
    calc_type: str
    best_book: str
    best_odds: Optional[int]
    ev_bps: Optional[int]
    kelly_fraction: float
    coverage: int
    confidence_multiplier: float


class ScoreEVResponse(BaseModel):
    results: List[EVMarketResult]


class ArbMarketRequest(BaseModel):
    market_key: str = ''
    line: Optional[float] = None
    outcomes: List[Dict[str, BookOdds]]
    stake: float = Field(100.0, gt=0)


class ScoreArbRequest(BaseModel):
    markets: List[ArbMarketRequest]


class ArbLegResult(BaseModel):
    book: str
    price: int
    stake: float
    payout: float


class ArbMarketResult(BaseModel):
    market_key: str
    line: Optional[float]
    roi_bps: Optional[int]
    is_arb: bool
    legs: List[ArbLegResult]


class ScoreArbResponse(BaseModel):
    results: List[ArbMarketResult]


# ---------------------------------------------------------------------------
# Ranked reads
# ---------------------------------------------------------------------------

class CountsResponse(BaseModel):
    all: int
    live: int
    pregame: int
    version: int


class RowEntry(BaseModel):
    id: str
    row: Optional[Dict[str, Any]] = None


class RowsResponse(BaseModel):
    format: int
    rows: List[RowEntry]
    missing: List[str]


class TeaserResponse(BaseModel):
    format: int
    source_key: Optional[str] = None
    rows: List[RowEntry]


class TopResponse(BaseModel):
    format: int
    version: int
    key: str
    ids: List[str]
    rows: List[Dict[str, Any]]
    premium: bool
    filtered_count: int = 0
    filtered_reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Odds ladder
# ---------------------------------------------------------------------------

class LadderBook(BaseModel):
    book: str
    over: Optional[int] = None
    under: Optional[int] = None
    link_over: Optional[str] = None
    link_under: Optional[str] = None
    mobile_link_over: Optional[str] = None
    mobile_link_under: Optional[str] = None


class LadderLinks(BaseModel):
    desktop: Optional[str] = None
    mobile: Optional[str] = None


class LadderBest(BaseModel):
    book: str
    over: Optional[int] = None
    under: Optional[int] = None
    links: LadderLinks


class LadderLine(BaseModel):
    line: float
    best: Optional[LadderBest] = None
    top_books: List[LadderBook]
    book_count: int


class OddsLadderResponse(BaseModel):
    event_id: str
    market: str
    player_id: str
    primary_line: Optional[float] = None
    lines: List[LadderLine]
    updated_at: int


# ---------------------------------------------------------------------------
# Line history
# ---------------------------------------------------------------------------

class PricePoint(BaseModel):
    timestamp: int
    price: Optional[Union[int, str]] = None


class LineHistoryRequest(BaseModel):
    books: Dict[str, List[PricePoint]]
    opposite_books: Optional[Dict[str, List[PricePoint]]] = None
    best_book: str
    sharp_books: Optional[List[str]] = None
    entry_price: Optional[int] = None
    cutoff: Optional[int] = None
    window: Optional[str] = None
    now: Optional[int] = None


class SummaryStatsModel(BaseModel):
    open_price: int
    current_price: int
    high_price: int
    high_timestamp: int
    low_price: int
    low_timestamp: int
    implied_prob_change: Optional[float] = None
    moves: int


class CLVModel(BaseModel):
    beat_clv: bool
    delta: float


class SteamMoveModel(BaseModel):
    timestamp: int
    price: int
    prev_price: int
    normalized_delta: int
    direction: str
    book: str


class EVPointModel(BaseModel):
    timestamp: int
    fair_prob: float
    target_price: int
    ev: float


class BookHistoryView(BaseModel):
    observations: int
    stats: Optional[SummaryStatsModel] = None
    move_value: Optional[int] = None
    clv: Optional[CLVModel] = None
    steam_moves: List[SteamMoveModel]


class LineHistoryResponse(BaseModel):
    best_book: str
    window: Optional[str] = None
    books: Dict[str, BookHistoryView]
    reverse_line_movement: bool
    ev_timeline: Dict[str, List[EVPointModel]] = {}
