"""
Line-history analytics and odds ladder endpoints.
"""
import dataclasses
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query

from config import EngineSettings
from models.domain import PriceObservation
from models.schemas import LineHistoryRequest, LineHistoryResponse, OddsLadderResponse
from routes.deps import get_settings, get_store
from services.ladder import build_ladder
from services.line_history import analyze_history, window_ms
from services.pricing import parse_price

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["history"])


def _observations(books):
    return {
        book.lower(): [
            PriceObservation(timestamp=p.timestamp, book=book.lower(), price=parse_price(p.price))
            for p in points
        ]
        for book, points in books.items()
    }


@router.post("/line-history/analyze", response_model=LineHistoryResponse)
def analyze_line_history(
    request: LineHistoryRequest,
    settings: EngineSettings = Depends(get_settings),
):
    try:
        window_ms(request.window)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    series_by_book = _observations(request.books)
    opposite_by_book = _observations(request.opposite_books or {})
    sharp_books = request.sharp_books if request.sharp_books is not None else settings.sharp_books
    now = request.now if request.now is not None else int(time.time() * 1000)

    result = analyze_history(
        series_by_book,
        best_book=request.best_book.lower(),
        sharp_books=sharp_books,
        now=now,
        window=request.window,
        entry_price=request.entry_price,
        cutoff=request.cutoff,
        min_move=settings.rlm_min_move,
        steam_threshold=settings.steam_threshold,
        opposite_by_book=opposite_by_book,
    )

    books = {}
    for book, view in result['books'].items():
        books[book] = {
            'observations': view['observations'],
            'stats': dataclasses.asdict(view['stats']) if view['stats'] else None,
            'move_value': view['move_value'],
            'clv': dataclasses.asdict(view['clv']) if view['clv'] else None,
            'steam_moves': [dataclasses.asdict(m) for m in view['steam_moves']],
        }
    return {
        'best_book': result['best_book'],
        'window': request.window,
        'books': books,
        'reverse_line_movement': result['reverse_line_movement'],
        'ev_timeline': {
            book: [dataclasses.asdict(p) for p in points]
            for book, points in result['ev_timeline'].items()
        },
    }


@router.get("/odds-ladder", response_model=OddsLadderResponse)
async def odds_ladder(
    event_id: str = Query(..., min_length=1),
    market: str = Query(..., min_length=1),
    player_id: str = Query(..., min_length=1),
    limit_books_per_line: int = Query(3, ge=1, le=20),
    sport: str = 'nba',
    store=Depends(get_store),
):
    started = time.monotonic()
    ladder = await build_ladder(store, sport.lower(), event_id, market, player_id, limit_books_per_line)
    logger.info(
        f"Odds ladder {event_id}/{market}/{ladder['player_id']}: {len(ladder['lines'])} lines "
        f"in {(time.monotonic() - started) * 1000:.0f}ms"
    )
    return ladder
