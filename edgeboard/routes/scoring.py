"""
Metric calculator endpoints: score posted quotes without touching the store.
"""
from fastapi import APIRouter, Depends, HTTPException

from config import EngineSettings
from models.schemas import ScoreArbRequest, ScoreArbResponse, ScoreEVRequest, ScoreEVResponse
from routes.deps import get_settings
from services.devig import DEVIG_METHODS
from services.scoring import score_arb_market, score_ev_market

router = APIRouter(prefix="/v1/score", tags=["scoring"])


def _prices(book_odds):
    return {book: odds.price for book, odds in book_odds.items()}


@router.post("/ev", response_model=ScoreEVResponse)
def score_ev(request: ScoreEVRequest, settings: EngineSettings = Depends(get_settings)):
    if request.devig_method not in DEVIG_METHODS:
        raise HTTPException(status_code=422, detail=f"devig_method must be one of {DEVIG_METHODS}")

    results = []
    for market in request.markets:
        market_dict = {
            'player': market.player,
            'market_key': market.market_key,
            'line': market.line,
            'side': market.side,
            'book_odds': _prices(market.book_odds),
            'opposite_odds': _prices(market.opposite_odds) if market.opposite_odds else None,
        }
        results.append(score_ev_market(market_dict, settings.sharp_books, request.devig_method))
    return {'results': results}


@router.post("/arb", response_model=ScoreArbResponse)
def score_arb(request: ScoreArbRequest):
    results = []
    for market in request.markets:
        market_dict = {
            'market_key': market.market_key,
            'line': market.line,
            'outcomes': [_prices(outcome) for outcome in market.outcomes],
        }
        results.append(score_arb_market(market_dict, stake=market.stake))
    return {'results': results}
