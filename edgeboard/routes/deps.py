"""Request-scoped access to the store and settings held on the app."""
from fastapi import HTTPException, Request

from config import DEFAULT_METRIC, DOMAINS, EngineSettings
from models.domain import RankingKey
from services.store import RankedStore


def get_store(request: Request) -> RankedStore:
    return request.app.state.store


def get_settings(request: Request) -> EngineSettings:
    return request.app.state.settings


def ranking_key(domain: str, sport: str, scope: str, market: str, metric: str = None) -> RankingKey:
    if domain not in DOMAINS:
        raise HTTPException(status_code=404, detail=f"Unknown domain: {domain}")
    return RankingKey(
        domain=domain,
        sport=sport.lower(),
        scope=scope,
        market=market,
        metric=metric or DEFAULT_METRIC[domain],
    )
