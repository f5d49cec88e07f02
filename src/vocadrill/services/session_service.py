"""Service driving a review round from start to overview."""
import logging
import math
from datetime import timedelta
from typing import List, Optional, Sequence

from vocadrill import monitoring
from vocadrill.config import settings
from vocadrill.models.session_models import AnswerFeedback, RoundState, SessionSnapshot
from vocadrill.models.vocabulary_models import (
    LanguageDirection,
    LeaderboardEntry,
    RoundHistoryItem,
    VocabularyItem,
)
from vocadrill.services.leaderboard_service import LeaderboardService
from vocadrill.services.matching import check_answer
from vocadrill.services.progress_service import Clock, ProgressService, utc_now
from vocadrill.services.scheduler_service import SchedulerService
from vocadrill.services.storage_service import KeyValueStore, StorageError, read_json, remove_key, write_json

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "session.current"


class SessionStateError(RuntimeError):
    """Raised when an operation is not valid in the current round state."""


class SessionService:
    """Round state machine: not started, in round, round overview."""

    def __init__(
        self,
        vocabulary: Sequence[VocabularyItem],
        progress_service: ProgressService,
        scheduler: SchedulerService,
        store: KeyValueStore,
        leaderboard: Optional[LeaderboardService] = None,
        clock: Optional[Clock] = None,
    ):
        self.vocabulary = list(vocabulary)
        self.progress_service = progress_service
        self.scheduler = scheduler
        self.store = store
        self.leaderboard = leaderboard
        self.clock = clock or utc_now
        self.streak = progress_service.get_progress().streak.current_streak

        self.state = RoundState.NOT_STARTED
        self.direction: Optional[LanguageDirection] = None
        self.round_size = settings.learning.default_round_size
        self.selected_categories: List[str] = []
        self._reset_round()

    def _reset_round(self) -> None:
        self.round_items: List[VocabularyItem] = []
        self.current_index = 0
        self.score = 0
        self.history: List[RoundHistoryItem] = []
        self._reset_item()

    def _reset_item(self) -> None:
        self.attempt_count = 0
        self.is_answered = False

    def _require(self, *states: RoundState) -> None:
        if self.state not in states:
            expected = ", ".join(state.value for state in states)
            raise SessionStateError(f"Expected state {expected}, but session is {self.state.value}")

    @property
    def current_item(self) -> Optional[VocabularyItem]:
        """Item being asked, if a round is in progress."""
        if self.state != RoundState.IN_ROUND or self.current_index >= len(self.round_items):
            return None
        return self.round_items[self.current_index]

    @property
    def prompt(self) -> str:
        """Text shown to the user for the current item."""
        item = self.current_item
        if item is None or self.direction is None:
            return ""
        return item.text_for(self.direction.source)

    @property
    def is_round_complete(self) -> bool:
        return self.state == RoundState.ROUND_OVERVIEW

    @property
    def is_marathon(self) -> bool:
        """A round counts as a marathon by the number of items it actually holds."""
        return bool(self.round_items) and len(self.round_items) >= self.scheduler.marathon_size

    @property
    def accuracy(self) -> int:
        """Score as a whole percentage of the round length."""
        if not self.round_items:
            return 0
        return math.floor(self.score * 100 / len(self.round_items) + 0.5)

    def start(
        self,
        direction: LanguageDirection,
        round_size: Optional[int] = None,
        categories: Sequence[str] = (),
    ) -> VocabularyItem:
        """Start a new round and return its first item."""
        if not self.vocabulary:
            raise ValueError("Cannot start a round with an empty vocabulary")

        self.streak = self.progress_service.update_streak()
        remove_key(self.store, SNAPSHOT_KEY)

        self.direction = direction
        self.round_size = round_size or settings.learning.default_round_size
        self.selected_categories = list(categories)
        return self._begin_round()

    def _begin_round(self) -> VocabularyItem:
        self._reset_round()
        self.round_items = self.scheduler.build_round(
            self.vocabulary, self.selected_categories, self.round_size
        )
        self.state = RoundState.IN_ROUND
        monitoring.rounds_started.labels(marathon=str(self.is_marathon).lower()).inc()
        logger.info(
            f"Started {self.direction.value} round of {len(self.round_items)} items "
            f"(categories: {self.selected_categories or 'all'})"
        )
        self._save_snapshot()
        return self.round_items[0]

    def submit_answer(self, user_input: str) -> AnswerFeedback:
        """Grade an attempt for the current item."""
        self._require(RoundState.IN_ROUND)
        item = self.current_item
        if item is None:
            raise SessionStateError("No item to answer")
        if self.is_answered:
            raise SessionStateError(f"Item {item.id} has already been answered")

        correct_translation = item.text_for(self.direction.target)
        result = check_answer(user_input, correct_translation)

        if self.attempt_count == 0:
            attempt = 1
            # Mastery only moves on the first attempt
            self.progress_service.update_item_progress(item.id, result.is_correct)
            self.history.append(RoundHistoryItem(
                item=item,
                correct_translation=correct_translation,
                user_attempts=[user_input],
                is_correct_on_first_try=result.is_correct,
            ))
            if result.is_correct:
                self.score += 1
                self.is_answered = True
            else:
                self.attempt_count = 1
        else:
            attempt = 2
            record = self.history[-1]
            if record.item.id != item.id:
                raise SessionStateError(f"History is out of step with item {item.id}")
            record.user_attempts.append(user_input)
            record.is_correct_on_second_try = result.is_correct
            self.is_answered = True

        if not result.is_correct:
            outcome = "incorrect"
        elif result.is_close_call:
            outcome = "close"
        else:
            outcome = "exact"
        monitoring.answers_graded.labels(result=outcome, attempt=str(attempt)).inc()
        logger.debug(f"Item {item.id} attempt {attempt}: {outcome}")

        self._save_snapshot()
        return AnswerFeedback(
            is_correct=result.is_correct,
            is_close_call=result.is_close_call,
            attempt=attempt,
            can_retry=not self.is_answered,
            correct_translation=correct_translation if self.is_answered else "",
        )

    def advance(self) -> Optional[VocabularyItem]:
        """Move to the next item, or to the overview after the last one."""
        self._require(RoundState.IN_ROUND)
        if self.current_index < len(self.round_items) - 1:
            self.current_index += 1
            self._reset_item()
            self._save_snapshot()
            return self.current_item

        self.state = RoundState.ROUND_OVERVIEW
        remove_key(self.store, SNAPSHOT_KEY)
        monitoring.rounds_completed.labels(marathon=str(self.is_marathon).lower()).inc()
        logger.info(f"Round complete: {self.score}/{len(self.round_items)} ({self.accuracy}%)")
        return None

    def restart(self) -> VocabularyItem:
        """Build a fresh round with the same direction, size and categories."""
        self._require(RoundState.IN_ROUND, RoundState.ROUND_OVERVIEW)
        return self._begin_round()

    def exit(self) -> None:
        """Abandon the round and forget any saved snapshot."""
        self.state = RoundState.NOT_STARTED
        self.direction = None
        self._reset_round()
        remove_key(self.store, SNAPSHOT_KEY)
        self.streak = self.progress_service.get_progress().streak.current_streak

    def save_score(self, name: str) -> List[LeaderboardEntry]:
        """Put a finished marathon round on the leaderboard."""
        self._require(RoundState.ROUND_OVERVIEW)
        if not self.is_marathon:
            raise SessionStateError("Only marathon rounds go on the leaderboard")
        if self.leaderboard is None:
            raise SessionStateError("No leaderboard configured")
        return self.leaderboard.save_score(name, self.score, self.accuracy)

    def _save_snapshot(self) -> None:
        snapshot = SessionSnapshot(
            direction=self.direction.value,
            round_size=self.round_size,
            selected_categories=self.selected_categories,
            round_items=[item.to_dict() for item in self.round_items],
            current_index=self.current_index,
            score=self.score,
            attempt_count=self.attempt_count,
            is_answered=self.is_answered,
            history=[record.to_dict() for record in self.history],
            timestamp=self.clock().isoformat(),
        )
        write_json(self.store, SNAPSHOT_KEY, snapshot.to_dict())

    def resume(self) -> bool:
        """Restore a round saved recently enough. Returns False if there is none."""
        self._require(RoundState.NOT_STARTED)
        try:
            data = read_json(self.store, SNAPSHOT_KEY)
        except StorageError as e:
            logger.error(f"Could not read saved round: {e}")
            monitoring.storage_errors.labels(operation="read").inc()
            return False
        if data is None:
            return False

        try:
            snapshot = SessionSnapshot.from_dict(data)
            age = self.clock() - snapshot.saved_at()
            if age >= timedelta(hours=settings.learning.session_staleness_hours):
                logger.info(f"Saved round is {age} old, starting fresh")
                remove_key(self.store, SNAPSHOT_KEY)
                return False

            direction = LanguageDirection(snapshot.direction)
            round_items = [VocabularyItem.from_dict(entry) for entry in snapshot.round_items]
            items_by_id = {item.id: item for item in round_items}
            history = [
                RoundHistoryItem.from_dict(entry, items_by_id[entry["itemId"]])
                for entry in snapshot.history
            ]
            if not round_items or not 0 <= snapshot.current_index < len(round_items):
                raise ValueError(f"Current index {snapshot.current_index} outside the round")
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Saved round is unusable, starting fresh: {e}")
            monitoring.corrupt_payloads.labels(key=SNAPSHOT_KEY).inc()
            remove_key(self.store, SNAPSHOT_KEY)
            return False

        self.direction = direction
        self.round_size = snapshot.round_size
        self.selected_categories = snapshot.selected_categories
        self.round_items = round_items
        self.current_index = snapshot.current_index
        self.score = snapshot.score
        self.history = history
        self.attempt_count = snapshot.attempt_count
        self.is_answered = snapshot.is_answered
        self.state = RoundState.IN_ROUND
        monitoring.sessions_resumed.inc()
        logger.info(f"Resumed round at item {self.current_index + 1}/{len(self.round_items)}")
        return True
