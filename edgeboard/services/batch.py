"""
Batch row retrieval: normalize ids, fetch rows in concurrent chunks, report missing ids.

Each chunk is fetched with one HMGET. If that reply is empty or malformed the
chunk is fetched again with one HGET per id; that itemized pass is the only
retry and is never itself retried. Rows that are absent or fail to parse are
reported as missing without failing the batch.
"""
import asyncio
import json
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config import EngineSettings
from models.domain import FetchResult, LIVE, RankingKey
from services.errors import ParseFailure, RetrievalTimeout

logger = logging.getLogger(__name__)


def normalize_ids(ids: Iterable[Any], max_ids: int) -> List[str]:
    """Trimmed string ids, empties dropped, first occurrence kept, capped at max_ids.

    Booleans are not ids. Whole-number floats collapse to their integer form
    so 1.0 and "1" name the same row.
    """
    seen = set()
    out = []
    for raw in ids:
        if raw is None or isinstance(raw, (bool, dict, list, tuple, set)):
            continue
        if isinstance(raw, float):
            if not math.isfinite(raw):
                continue
            if raw.is_integer():
                raw = int(raw)
        value = str(raw).strip()
        if not value or value in seen:
            continue
        seen.add(value)
        out.append(value)
        if len(out) >= max_ids:
            break
    return out


def chunked(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def parse_row(raw: Any) -> Optional[Dict[str, Any]]:
    """Decode a stored row; None when absent, ParseFailure when corrupt."""
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8', errors='replace')
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ParseFailure(f"Row is not valid JSON: {e}") from e
    if isinstance(raw, dict):
        return raw
    raise ParseFailure(f"Row has unexpected type {type(raw).__name__}")


def _bulk_reply_usable(reply: Any, chunk: List[str]) -> bool:
    return isinstance(reply, (list, tuple)) and len(reply) == len(chunk)


async def _fetch_chunk(store, row_key: str, chunk: List[str]) -> Tuple[List[Any], bool]:
    reply = await store.get_rows(row_key, chunk)
    if _bulk_reply_usable(reply, chunk):
        return list(reply), False

    logger.warning(f"HMGET on {row_key} returned an unusable reply for {len(chunk)} ids, falling back to HGET")
    values = await asyncio.gather(*(store.get_row(row_key, i) for i in chunk))
    return list(values), True


async def fetch_rows(store, row_key: str, ids: Iterable[Any], settings: EngineSettings) -> FetchResult:
    """Hydrate rows for `ids`, preserving the order of the deduplicated input."""
    normalized = normalize_ids(ids, settings.max_ids)
    if not normalized:
        return FetchResult()

    chunks = chunked(normalized, settings.chunk_size)
    try:
        replies = await asyncio.wait_for(
            asyncio.gather(*(_fetch_chunk(store, row_key, c) for c in chunks)),
            timeout=settings.fetch_timeout_s,
        )
    except asyncio.TimeoutError as e:
        logger.error(f"Row fetch on {row_key} timed out after {settings.fetch_timeout_s}s ({len(normalized)} ids)")
        raise RetrievalTimeout(f"Row fetch timed out after {settings.fetch_timeout_s}s") from e

    result = FetchResult()
    for chunk, (values, used_fallback) in zip(chunks, replies):
        result.used_fallback = result.used_fallback or used_fallback
        for opportunity_id, raw in zip(chunk, values):
            try:
                row = parse_row(raw)
            except ParseFailure as e:
                logger.warning(f"Dropping corrupt row {opportunity_id} from {row_key}: {e}")
                row = None
            result.rows.append((opportunity_id, row))
            if row is None:
                result.missing_ids.append(opportunity_id)

    if result.missing_ids:
        logger.info(f"{len(result.missing_ids)}/{len(normalized)} rows missing from {row_key}")
    return result


def row_roi_bps(row: Dict[str, Any]) -> Optional[float]:
    value = row.get('roi_bps')
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return value


def is_live_row(row: Dict[str, Any]) -> bool:
    if row.get('scope') == LIVE:
        return True
    event = row.get('ev')
    return isinstance(event, dict) and event.get('live') is True


async def event_top_ids(store, key: RankingKey, event_id: str, limit: int, offset: int = 0) -> List[str]:
    """Ids of one event ordered by their score in `key`, highest first.

    Ids the ranking does not know score as 0, so they sort after every
    positive score but stay visible.
    """
    ids = await store.set_members(key.event_key(event_id))
    if not ids:
        return []
    scores = await store.scores(key, ids)
    pairs = sorted(zip(ids, scores), key=lambda pair: pair[1] or 0.0, reverse=True)
    start = max(0, offset)
    return [opportunity_id for opportunity_id, _ in pairs[start:start + limit]]


async def fetch_teaser(
    store,
    primary: RankingKey,
    secondary: Optional[RankingKey],
    settings: EngineSettings,
) -> Tuple[List[Tuple[str, Dict[str, Any]]], RankingKey]:
    """Top rows above the premium ROI threshold, for non-premium previews.

    Reads the primary ranking first and only falls back to the secondary one
    when the primary has no entries. Returns (rows, ranking used).
    """
    source = primary
    ids = await store.top_k(primary, settings.teaser_scan_depth)
    if not ids and secondary is not None:
        logger.info(f"Teaser ranking {primary.store_key} empty, using {secondary.store_key}")
        source = secondary
        ids = await store.top_k(secondary, settings.teaser_scan_depth)
    if not ids:
        return [], source

    fetched = await fetch_rows(store, source.row_key, ids, settings)
    teasers = []
    for opportunity_id, row in fetched.rows:
        if row is None:
            continue
        roi = row_roi_bps(row)
        if roi is not None and roi > settings.teaser_min_roi_bps:
            teasers.append((opportunity_id, row))
            if len(teasers) >= settings.teaser_limit:
                break
    return teasers, source


def gate_rows(rows: List[Dict[str, Any]], is_premium: bool, settings: EngineSettings) -> Tuple[List[Dict[str, Any]], int]:
    """Non-premium consumers only see pregame rows at or below the free ROI cap."""
    if is_premium:
        return rows, 0
    kept = []
    for row in rows:
        # an unscored row counts as 0 bps
        roi = 0 if row.get('roi_bps') is None else row_roi_bps(row)
        if is_live_row(row) or roi is None or roi > settings.free_roi_cap_bps:
            continue
        kept.append(row)
    return kept, len(rows) - len(kept)
