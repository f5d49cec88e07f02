"""Progress service for mastery levels, review dates and the daily streak."""
import copy
import logging
import random
from datetime import UTC, datetime, timedelta
from typing import Callable, List, Optional, Sequence

from vocadrill import monitoring
from vocadrill.config import settings
from vocadrill.models.vocabulary_models import (
    ItemProgress,
    MasteryStats,
    UserProgress,
    VocabularyItem,
)
from vocadrill.services.storage_service import KeyValueStore, StorageError, read_json, write_json

logger = logging.getLogger(__name__)

PROGRESS_KEY = "progress.user_progress"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class ProgressService:
    """Service for reading and updating the learner's persisted progress."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the service with a key-value store, a clock and a random source."""
        self.store = store
        self.clock = clock or utc_now
        self.rng = rng or random.Random()
        # Last saved progress, kept even when the store rejected the write
        self._progress: Optional[UserProgress] = None

    def _load(self) -> Optional[UserProgress]:
        """Load progress from memory or the store.

        Returns None only when the store could not be read, so that callers
        can tell an unreadable store from an empty one.
        """
        if self._progress is not None:
            return copy.deepcopy(self._progress)
        try:
            data = read_json(self.store, PROGRESS_KEY)
        except StorageError as e:
            logger.error(f"Could not read progress: {e}")
            monitoring.storage_errors.labels(operation="read").inc()
            return None
        if data is None:
            return UserProgress()
        try:
            return UserProgress.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Stored progress is malformed, starting fresh: {e}")
            monitoring.corrupt_payloads.labels(key=PROGRESS_KEY).inc()
            return UserProgress()

    def get_progress(self) -> UserProgress:
        """Get current progress, or an empty one if absent, malformed or unreadable."""
        progress = self._load()
        return progress if progress is not None else UserProgress()

    def save_progress(self, progress: UserProgress) -> None:
        """Overwrite the persisted progress.

        The in-memory copy is updated even if the write fails.
        """
        self._progress = copy.deepcopy(progress)
        write_json(self.store, PROGRESS_KEY, progress.to_dict())

    def _save_loaded(self, progress: UserProgress, loaded: bool) -> None:
        if loaded:
            self.save_progress(progress)
        else:
            logger.warning("Progress was not readable, leaving the stored copy untouched")

    def _calculate_next_review(self, mastery_level: int, now: datetime) -> datetime:
        """Calculate the next review date for a mastery level."""
        days = settings.learning.review_intervals[mastery_level]
        return now + timedelta(days=days)

    def update_item_progress(self, item_id: str, is_correct: bool) -> UserProgress:
        """Apply a graded first attempt to an item's mastery level.

        If the stored progress cannot be read the update is computed against
        empty progress and returned, but not written over the stored copy.
        """
        loaded = self._load()
        progress = loaded if loaded is not None else UserProgress()
        now = self.clock()
        learning = settings.learning

        item_progress = progress.items.get(item_id) or ItemProgress(
            mastery_level=0,
            next_review_date=now,
            last_reviewed=now,
        )

        if is_correct:
            new_level = min(item_progress.mastery_level + learning.correct_reward, learning.max_mastery_level)
        else:
            new_level = max(item_progress.mastery_level - learning.incorrect_penalty, 0)
        new_level = max(0, min(new_level, learning.max_mastery_level))

        progress.items[item_id] = ItemProgress(
            mastery_level=new_level,
            next_review_date=self._calculate_next_review(new_level, now),
            last_reviewed=now,
        )
        logger.debug(f"Item {item_id}: level {item_progress.mastery_level} -> {new_level}")
        monitoring.mastery_updates.labels(outcome="correct" if is_correct else "incorrect").inc()

        self._save_loaded(progress, loaded is not None)
        return progress

    def update_streak(self) -> int:
        """Count today as played and return the current streak."""
        loaded = self._load()
        progress = loaded if loaded is not None else UserProgress()
        now = self.clock().astimezone(UTC)
        today = now.date().isoformat()
        streak = progress.streak

        if streak.last_played_date == today:
            return streak.current_streak

        yesterday = (now - timedelta(days=1)).date().isoformat()
        if streak.last_played_date == yesterday:
            streak.current_streak += 1
        else:
            streak.current_streak = 1

        streak.last_played_date = today
        logger.info(f"Streak is now {streak.current_streak} day(s)")
        monitoring.current_streak.set(streak.current_streak)
        self._save_loaded(progress, loaded is not None)
        return streak.current_streak

    def get_due_items(self, candidates: Sequence[VocabularyItem], limit: int) -> List[VocabularyItem]:
        """Get up to limit randomly ordered items that are due for review."""
        progress = self.get_progress()
        now = self.clock()

        due_items = [
            item for item in candidates
            if item.id not in progress.items or progress.items[item.id].is_due(now)
        ]
        logger.debug(f"Due items: {len(due_items)} of {len(candidates)}")

        self.rng.shuffle(due_items)
        return due_items[:max(limit, 0)]

    def get_mastery_stats(self, all_vocabulary: Sequence[VocabularyItem]) -> MasteryStats:
        """Classify items as mastered, learning or new."""
        progress = self.get_progress()
        mastered = learning = new_items = 0

        for item in all_vocabulary:
            item_progress = progress.items.get(item.id)
            if item_progress is None or item_progress.mastery_level == 0:
                new_items += 1
            elif item_progress.mastery_level >= settings.learning.mastered_level:
                mastered += 1
            else:
                learning += 1

        return MasteryStats(mastered=mastered, learning=learning, new_items=new_items)
