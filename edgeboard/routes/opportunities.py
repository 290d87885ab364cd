"""
Ranked opportunity reads: counts, top-K, teaser preview and bulk row hydration.
"""
import asyncio
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response

from config import ROWS_FORMAT, EngineSettings
from models.domain import ALL, LIVE, PREGAME, SCOPES
from models.schemas import CountsResponse, RowEntry, RowsResponse, TeaserResponse, TopResponse
from routes.deps import get_settings, get_store, ranking_key
from services.batch import event_top_ids, fetch_rows, fetch_teaser, gate_rows
from services.errors import InvalidInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["opportunities"])

SCOPE_PATTERN = f"^({'|'.join(SCOPES)})$"


def _extract_ids(body: Any) -> List[Any]:
    if not isinstance(body, dict):
        raise InvalidInput("Body must be a JSON object")
    ids = body.get('ids')
    if not isinstance(ids, list):
        raise InvalidInput("'ids' must be an array")
    return ids


@router.get("/{domain}/counts", response_model=CountsResponse)
async def ranking_counts(
    domain: str,
    sport: str = ALL,
    market: str = ALL,
    store=Depends(get_store),
):
    key = ranking_key(domain, sport, ALL, market)
    total, live, pregame, version = await asyncio.gather(
        store.cardinality(key),
        store.cardinality(key.with_scope(LIVE)),
        store.cardinality(key.with_scope(PREGAME)),
        store.version(key),
    )
    return {'all': total, 'live': live, 'pregame': pregame, 'version': version}


@router.get("/{domain}/top", response_model=TopResponse)
async def top_rows(
    domain: str,
    sport: str = ALL,
    scope: str = Query(ALL, pattern=SCOPE_PATTERN),
    market: str = ALL,
    metric: Optional[str] = None,
    limit: int = Query(100, ge=1),
    cursor: int = Query(0, ge=0),
    v: int = Query(0, ge=0),
    event_id: Optional[str] = Query(None, min_length=1),
    x_premium: Optional[str] = Header(None),
    store=Depends(get_store),
    settings: EngineSettings = Depends(get_settings),
):
    key = ranking_key(domain, sport, scope, market, metric)
    is_premium = x_premium == '1'
    limit = min(limit, settings.max_top_limit)

    version = await store.version(key)
    if v and v == version:
        return Response(status_code=304, headers={'Cache-Control': 'no-store'})

    if event_id:
        ids = await event_top_ids(store, key, event_id, limit, offset=cursor)
    else:
        ids = await store.top_k(key, limit, offset=cursor)
    fetched = await fetch_rows(store, key.row_key, ids, settings)
    rows = [row for _, row in fetched.rows if row is not None]
    rows, filtered_count = gate_rows(rows, is_premium, settings)

    body = {
        'format': ROWS_FORMAT,
        'version': version,
        'key': key.store_key,
        'ids': ids,
        'rows': rows,
        'premium': is_premium,
        'filtered_count': filtered_count,
    }
    if filtered_count:
        body['filtered_reason'] = (
            f"Non-premium access is limited to pregame rows with ROI <= {settings.free_roi_cap_bps / 100:g}%"
        )
    return body


@router.get("/{domain}/teaser", response_model=TeaserResponse)
async def teaser_rows(
    domain: str,
    sport: str = ALL,
    scope: str = Query(PREGAME, pattern=SCOPE_PATTERN),
    market: str = ALL,
    metric: Optional[str] = None,
    store=Depends(get_store),
    settings: EngineSettings = Depends(get_settings),
):
    primary = ranking_key(domain, sport, scope, market, metric)
    secondary = primary.with_scope(ALL) if scope != ALL else None
    rows, source = await fetch_teaser(store, primary, secondary, settings)
    return {
        'format': ROWS_FORMAT,
        'source_key': source.store_key,
        'rows': [RowEntry(id=i, row=row) for i, row in rows],
    }


@router.post("/{domain}/rows", response_model=RowsResponse)
async def bulk_rows(
    domain: str,
    request: Request,
    response: Response,
    sport: str = ALL,
    store=Depends(get_store),
    settings: EngineSettings = Depends(get_settings),
):
    key = ranking_key(domain, sport, ALL, ALL)
    try:
        body = await request.json()
    except ValueError:
        body = None
    try:
        ids = _extract_ids(body)
    except InvalidInput as e:
        logger.info(f"Bulk rows request for {domain} rejected: {e}")
        return {'format': ROWS_FORMAT, 'rows': [], 'missing': []}

    fetched = await fetch_rows(store, key.row_key, ids, settings)
    if fetched.used_fallback:
        response.headers['X-Rows-Fallback'] = '1'
    if fetched.missing_ids:
        response.headers['X-Rows-Missing'] = str(len(fetched.missing_ids))
    return {
        'format': ROWS_FORMAT,
        'rows': [RowEntry(id=i, row=row) for i, row in fetched.rows],
        'missing': fetched.missing_ids,
    }
