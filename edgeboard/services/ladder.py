"""
Odds ladder: every alternate line for one player prop, with the best book and
top books per line.

Store layout written by the ingestion pipeline:
    linesidx:{sport}:{event}:{market}:{player}          ZSET of lines
    booksidx:{sport}:{event}:{market}:{player}:{line}   SET of books quoting that line
    odds:{sport}:{event}:{market}:{book}                JSON blob "player|side|line" -> entry
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from services.pricing import parse_price

logger = logging.getLogger(__name__)


def base_player_id(player_id: str) -> str:
    """'uuid:over:20.5' -> 'uuid'."""
    return player_id.split(':')[0] if ':' in player_id else player_id


def _format_line(line: float) -> str:
    return str(int(line)) if float(line).is_integer() else str(line)


def _sort_price(book: dict) -> float:
    price = book['over'] if book['over'] is not None else book['under']
    return price if price is not None else float('-inf')


def entry_time_ms(value: Any) -> Optional[int]:
    """Epoch ms of an entry's `updated` stamp: ISO-8601 text or epoch ms."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _find_sides(blob: dict, player_id: str, line: float) -> Dict[str, dict]:
    sides = {}
    for entry in blob.values():
        if not isinstance(entry, dict) or not entry.get('player_id'):
            continue
        try:
            entry_line = float(entry.get('line'))
        except (TypeError, ValueError):
            continue
        if entry['player_id'] == player_id and entry_line == line and entry.get('side') in ('over', 'under'):
            sides[entry['side']] = entry
    return sides


async def build_ladder(
    store,
    sport: str,
    event_id: str,
    market: str,
    player_id: str,
    limit_books_per_line: int = 3,
) -> dict:
    player_id = base_player_id(player_id)
    prefix = f"{sport}:{event_id}:{market}:{player_id}"
    response = {
        'event_id': event_id,
        'market': market,
        'player_id': player_id,
        'primary_line': None,
        'lines': [],
        'updated_at': int(time.time() * 1000),
    }

    raw_lines = await store.range_members(f"linesidx:{prefix}")
    lines = []
    for raw in raw_lines:
        try:
            lines.append(float(raw))
        except ValueError:
            continue
    lines.sort()
    if not lines:
        logger.info(f"No ladder lines for {prefix}")
        return response

    books_per_line = await asyncio.gather(
        *(store.set_members(f"booksidx:{prefix}:{_format_line(line)}") for line in lines)
    )
    all_books = sorted({book for books in books_per_line for book in books})
    blobs = await asyncio.gather(
        *(store.get_json(f"odds:{sport}:{event_id}:{market}:{book}") for book in all_books)
    )
    blob_by_book = {book: blob for book, blob in zip(all_books, blobs) if isinstance(blob, dict)}

    latest: Optional[int] = None
    for line, books in zip(lines, books_per_line):
        quotes: List[dict] = []
        for book in books:
            blob = blob_by_book.get(book)
            if not blob:
                continue
            sides = _find_sides(blob, player_id, line)
            if not sides:
                continue
            over, under = sides.get('over', {}), sides.get('under', {})
            stamp = entry_time_ms(over.get('updated') or under.get('updated'))
            if stamp is not None and (latest is None or stamp > latest):
                latest = stamp
            quotes.append({
                'book': book,
                'over': parse_price(over.get('price')),
                'under': parse_price(under.get('price')),
                'link_over': over.get('link'),
                'link_under': under.get('link'),
                'mobile_link_over': over.get('mobile_link'),
                'mobile_link_under': under.get('mobile_link'),
            })

        quotes.sort(key=_sort_price, reverse=True)
        best = None
        if quotes:
            top = quotes[0]
            best = {
                'book': top['book'],
                'over': top['over'],
                'under': top['under'],
                'links': {
                    'desktop': top['link_over'] or top['link_under'],
                    'mobile': top['mobile_link_over'] or top['mobile_link_under'],
                },
            }
        response['lines'].append({
            'line': line,
            'best': best,
            'top_books': quotes[:limit_books_per_line],
            'book_count': len(quotes),
        })

    # the middle of the ladder is where the book's main line sits
    response['primary_line'] = lines[len(lines) // 2]
    if latest is not None:
        response['updated_at'] = latest
    return response
