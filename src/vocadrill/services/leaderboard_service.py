"""Leaderboard of marathon round results."""
import logging
from typing import List, Optional

from vocadrill import monitoring
from vocadrill.config import settings
from vocadrill.models.vocabulary_models import LeaderboardEntry
from vocadrill.services.progress_service import Clock, utc_now
from vocadrill.services.storage_service import KeyValueStore, StorageError, read_json, write_json

logger = logging.getLogger(__name__)

LEADERBOARD_KEY = "leaderboard.entries"
ANONYMOUS = "Anonymous"


class LeaderboardService:
    """Service for the top marathon scores."""

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None, max_entries: Optional[int] = None):
        self.store = store
        self.clock = clock or utc_now
        self.max_entries = max_entries or settings.leaderboard.max_entries

    def _load(self) -> Optional[List[LeaderboardEntry]]:
        """Load entries from the store, or None if the store could not be read."""
        try:
            data = read_json(self.store, LEADERBOARD_KEY)
        except StorageError as e:
            logger.error(f"Could not read leaderboard: {e}")
            monitoring.storage_errors.labels(operation="read").inc()
            return None
        if not isinstance(data, list):
            return []
        try:
            return [LeaderboardEntry.from_dict(entry) for entry in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load leaderboard: {e}")
            monitoring.corrupt_payloads.labels(key=LEADERBOARD_KEY).inc()
            return []

    def get_leaderboard(self) -> List[LeaderboardEntry]:
        """Get stored entries, best first. Unreadable data yields an empty board."""
        return self._load() or []

    def save_score(self, name: str, score: int, accuracy: int) -> List[LeaderboardEntry]:
        """Record a result and return the updated board."""
        entry = LeaderboardEntry(
            name=name.strip() or ANONYMOUS,
            score=score,
            accuracy=accuracy,
            date=self.clock(),
        )
        stored = self._load()
        board = list(stored or [])
        board.append(entry)

        # Score, then accuracy, then newest first
        board.sort(key=lambda e: (e.score, e.accuracy, e.date), reverse=True)
        board = board[:self.max_entries]

        if stored is None:
            logger.warning("Leaderboard was not readable, not saving over it")
        else:
            write_json(self.store, LEADERBOARD_KEY, [e.to_dict() for e in board])
            logger.info(f"Saved score {score} ({accuracy}%) for {entry.name}")
        monitoring.leaderboard_scores.inc()
        return board
