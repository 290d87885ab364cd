"""
Configuration: store connection, retrieval limits, thresholds, book tables.
Tunables are read from the environment (.env supported) so they can change
without touching the engine.
"""
import os
from dataclasses import dataclass, field
from typing import FrozenSet

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Redis connection
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Bulk/teaser/top responses carry this tag so consumers can detect schema changes
ROWS_FORMAT = 1

# American odds magnitudes below this cannot be represented
MIN_AMERICAN_MAGNITUDE = 100

# Ranking domains served by the API
DOMAINS = ('arbs', 'ev')

# Ranking metric per domain
DEFAULT_METRIC = {
    'arbs': 'roi',
    'ev': 'ev',
}

# Line-history windows (milliseconds)
HISTORY_WINDOWS_MS = {
    '1h': 60 * 60 * 1000,
    '24h': 24 * 60 * 60 * 1000,
    '7d': 7 * 24 * 60 * 60 * 1000,
}

# Book abbreviation mapping (lowercase book id -> abbreviation)
BOOK_ABBREV_MAP = {
    'draftkings': 'DK',
    'fanduel': 'FD',
    'betmgm': 'MG',
    'caesars': 'CZ',
    'betrivers': 'BR',
    'fanatics': 'FN',
    'betparx': 'BP',
    'fliff': 'FL',
    'thescore': 'TS',
    'pinnacle': 'PN',
    'circa': 'CI',
    'bet365': 'B3',
    'bally-bet': 'BB',
    'hard-rock': 'HR',
    'prophetx': 'PX',
    'espn': 'ES',
    'bookmaker': 'BK',
}

# Consensus weights used when blending per-book fair probabilities
GLOBAL_WEIGHTS = {
    'DK': 0.2027,
    'FD': 0.1599,
    'MG': 0.1580,
    'PN': 0.1328,
    'ES': 0.0883,
    'CZ': 0.0742,
    'BB': 0.0096,
    'BR': 0.0096,
    'FL': 0.0096,
    'FN': 0.0096,
    'HR': 0.0096,
    'BP': 0.0048,
    'TS': 0.0048,
    'CI': 0.0000,
    'B3': 0.0000,
    'PX': 0.0000,
    'BK': 0.0000,
}

# Default minimum weight for unknown books
DEFAULT_WEIGHT = 0.01

# One-way multipliers by odds range
ONE_WAY_MULTIPLIERS = [
    0.88,  # < -200 (heavy favorite)
    0.90,  # -200 to -110
    0.92,  # -110 to +110
    0.89,  # +110 to +200
    0.86,  # +200 to +400
    0.84,  # +400 to +700
    0.82,  # +700 to +1000
    0.74,  # +1000 to +2000
    0.72,  # +2000 to +5000
    0.72,  # > +5000 (extreme longshot)
]

# Market-specific one-way multipliers for short/medium odds
MARKET_MULTIPLIERS = {
    'player_double_double': 0.79,
    'player_triple_double': 0.70,
    'player_threes': 0.76,
    'player_rebounds': 0.79,
    'player_points': 0.76,
    'player_assists': 0.79,
    'player_steals': 0.85,
    'player_blocks': 0.87,
    'player_points_rebounds_assists': 0.88,
}

# Confidence multipliers based on book coverage
CONFIDENCE_MULTIPLIERS = {
    1: 0.25, 2: 0.35, 3: 0.47, 4: 0.47, 5: 0.53,
    6: 0.56, 7: 0.62, 8: 0.70, 9: 0.72, 10: 0.81,
    11: 0.81, 12: 0.91, 13: 0.96, 14: 1.00, 15: 1.00,
}

# Sharp reference books (excluded from best retail odds, used for RLM)
DEFAULT_SHARP_BOOKS = 'pinnacle,circa,prophetx'

# Smallest net implied-probability move (points) that counts for RLM.
# One point is roughly -110 -> -115, the five-cent move a sharp book makes on news.
RLM_MIN_MOVE = 1.0


def _split_books(value: str) -> FrozenSet[str]:
    return frozenset(b.strip().lower() for b in value.split(',') if b.strip())


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for retrieval, teasers and analytics."""
    max_ids: int = 1000
    chunk_size: int = 500
    fetch_timeout_s: float = 5.0
    teaser_min_roi_bps: int = 150
    teaser_limit: int = 3
    teaser_scan_depth: int = 50
    free_roi_cap_bps: int = 100
    max_top_limit: int = 1000
    rlm_min_move: float = RLM_MIN_MOVE
    steam_threshold: int = 10
    sharp_books: FrozenSet[str] = field(default_factory=lambda: _split_books(DEFAULT_SHARP_BOOKS))


def load_settings() -> EngineSettings:
    """Build settings from environment variables, falling back to defaults."""
    return EngineSettings(
        max_ids=int(os.getenv("EDGEBOARD_MAX_IDS", "1000")),
        chunk_size=int(os.getenv("EDGEBOARD_CHUNK_SIZE", "500")),
        fetch_timeout_s=float(os.getenv("EDGEBOARD_FETCH_TIMEOUT_S", "5.0")),
        teaser_min_roi_bps=int(os.getenv("EDGEBOARD_TEASER_MIN_ROI_BPS", "150")),
        teaser_limit=int(os.getenv("EDGEBOARD_TEASER_LIMIT", "3")),
        teaser_scan_depth=int(os.getenv("EDGEBOARD_TEASER_SCAN_DEPTH", "50")),
        free_roi_cap_bps=int(os.getenv("EDGEBOARD_FREE_ROI_CAP_BPS", "100")),
        max_top_limit=int(os.getenv("EDGEBOARD_MAX_TOP_LIMIT", "1000")),
        rlm_min_move=float(os.getenv("EDGEBOARD_RLM_MIN_MOVE", str(RLM_MIN_MOVE))),
        steam_threshold=int(os.getenv("EDGEBOARD_STEAM_THRESHOLD", "10")),
        sharp_books=_split_books(os.getenv("EDGEBOARD_SHARP_BOOKS", DEFAULT_SHARP_BOOKS)),
    )
