"""
Ranked store adapter over Redis.

Rankings are sorted sets (one per RankingKey), rows live in a hash keyed by
opportunity id, and each domain keeps a scalar version counter. The ingestion
pipeline updates several ranking keys per id without a transaction, so an id
found in one index may be missing from another or from the row hash; callers
treat that as "missing", never as an error.
"""
import json
import logging
from typing import Any, List, Optional, Tuple, Union

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from models.domain import RankingKey
from services.errors import StoreUnavailable

logger = logging.getLogger(__name__)

DIRECTIONS = ('asc', 'desc')

# Replies stay bytes; _decode and parse_row decode leniently so one corrupt
# value cannot fail a whole multi-key reply.
CLIENT_OPTIONS = {'decode_responses': False}


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return value


class RankedStore:
    """Async get/set/sorted-range contract used by the engine."""

    def __init__(self, client):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> 'RankedStore':
        return cls(aioredis.from_url(url, **CLIENT_OPTIONS))

    async def close(self):
        await self._client.aclose()

    async def _call(self, command: str, *args, **kwargs):
        try:
            return await getattr(self._client, command)(*args, **kwargs)
        except (RedisError, OSError) as e:
            logger.error(f"Store command {command} failed: {e}")
            raise StoreUnavailable(f"{command} failed: {e}") from e

    # ------------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------------

    async def upsert_ranking(self, key: RankingKey, opportunity_id: str, score: float) -> None:
        """Insert or re-score an id; re-inserting never duplicates it."""
        await self._call('zadd', key.store_key, {str(opportunity_id): float(score)})

    async def top_k(
        self,
        key: RankingKey,
        k: int,
        direction: str = 'desc',
        offset: int = 0,
        with_scores: bool = False,
    ) -> Union[List[str], List[Tuple[str, float]]]:
        """Up to k ids ordered by score (highest first by default)."""
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
        if k <= 0:
            return []
        start = max(0, offset)
        resp = await self._call(
            'zrange', key.store_key, start, start + k - 1,
            desc=direction == 'desc', withscores=with_scores,
        )
        if not isinstance(resp, (list, tuple)):
            return []
        if with_scores:
            return [(str(_decode(member)), float(score)) for member, score in resp]
        return [str(_decode(member)) for member in resp]

    async def scores(self, key: RankingKey, ids: List[str]) -> List[Optional[float]]:
        """ZMSCORE: the score of each id in order, None where it is not ranked."""
        if not ids:
            return []
        resp = await self._call('zmscore', key.store_key, ids)
        return [None if s is None else float(s) for s in resp or []]

    async def cardinality(self, key: RankingKey) -> int:
        resp = await self._call('zcard', key.store_key)
        return int(resp or 0)

    async def version(self, key: RankingKey) -> int:
        """Monotonic version counter for the key's domain; 0 when unset."""
        raw = _decode(await self._call('get', key.version_key))
        try:
            return int(raw)
        except (TypeError, ValueError):
            return 0

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    async def get_rows(self, row_key: str, ids: List[str]) -> Any:
        """HMGET; returned as-is so the caller can detect a degraded reply."""
        return await self._call('hmget', row_key, ids)

    async def get_row(self, row_key: str, opportunity_id: str) -> Any:
        return await self._call('hget', row_key, opportunity_id)

    async def put_row(self, row_key: str, opportunity_id: str, row: dict) -> None:
        await self._call('hset', row_key, str(opportunity_id), json.dumps(row))

    # ------------------------------------------------------------------
    # Odds ladder indexes
    # ------------------------------------------------------------------

    async def range_members(self, key: str) -> List[str]:
        resp = await self._call('zrange', key, 0, -1)
        return [str(_decode(m)) for m in resp or []]

    async def set_members(self, key: str) -> List[str]:
        resp = await self._call('smembers', key)
        return sorted(str(_decode(m)) for m in resp or [])

    async def get_json(self, key: str) -> Optional[Any]:
        raw = _decode(await self._call('get', key))
        if raw is None or isinstance(raw, (dict, list)):
            return raw
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Unparseable JSON value at {key}")
            return None
