"""Tests for the round session service."""
import json
from typing import List

import pytest

from vocadrill.models.session_models import RoundState
from vocadrill.models.vocabulary_models import LanguageDirection, VocabularyItem
from vocadrill.services.leaderboard_service import LeaderboardService
from vocadrill.services.progress_service import ProgressService
from vocadrill.services.scheduler_service import SchedulerService
from vocadrill.services.session_service import SNAPSHOT_KEY, SessionService, SessionStateError
from vocadrill.services.storage_service import InMemoryKeyValueStore, StorageError

WRONG = "qqqqqqqqqqqq"


@pytest.fixture
def catalog() -> List[VocabularyItem]:
    return [
        VocabularyItem(id="bread", latvian="maize", dutch="brood", english="bread", category="Food"),
        VocabularyItem(id="cheese", latvian="siers", dutch="kaas", english="cheese", category="Food"),
        VocabularyItem(id="house", latvian="māja", dutch="huis", english="house", category="Home"),
    ]


@pytest.fixture
def leaderboard(store: InMemoryKeyValueStore, clock) -> LeaderboardService:
    return LeaderboardService(store, clock=clock)


def make_session(catalog, progress_service, scheduler, store, leaderboard, clock) -> SessionService:
    return SessionService(catalog, progress_service, scheduler, store, leaderboard=leaderboard, clock=clock)


@pytest.fixture
def session(catalog, progress_service, scheduler, store, leaderboard, clock) -> SessionService:
    return make_session(catalog, progress_service, scheduler, store, leaderboard, clock)


def answer_for(session: SessionService) -> str:
    return session.current_item.text_for(session.direction.target)


def test_three_item_round(session: SessionService, progress_service: ProgressService, catalog) -> None:
    """Test a full round: first-try success, double miss, then overview."""
    assert session.state == RoundState.NOT_STARTED
    session.start(LanguageDirection.LV_TO_NL, 3, [])
    assert session.state == RoundState.IN_ROUND
    assert sorted(item.id for item in session.round_items) == sorted(item.id for item in catalog)

    first = session.current_item
    feedback = session.submit_answer(answer_for(session))
    assert feedback.is_correct and not feedback.can_retry
    assert session.score == 1
    assert len(session.history) == 1
    assert session.history[0].is_correct_on_first_try is True
    assert progress_service.get_progress().items[first.id].mastery_level == 1

    session.advance()
    second = session.current_item
    feedback = session.submit_answer(WRONG)
    assert not feedback.is_correct and feedback.can_retry
    assert feedback.correct_translation == ""
    feedback = session.submit_answer(WRONG)
    assert not feedback.can_retry
    assert feedback.correct_translation == second.dutch
    record = session.history[1]
    assert record.user_attempts == [WRONG, WRONG]
    assert record.is_correct_on_first_try is False
    assert record.is_correct_on_second_try is False
    assert progress_service.get_progress().items[second.id].mastery_level == 0

    session.advance()
    session.submit_answer(answer_for(session))
    assert session.advance() is None
    assert session.state == RoundState.ROUND_OVERVIEW
    assert session.is_round_complete
    assert session.score == 2
    assert len(session.history) == 3
    assert session.accuracy == 67


def test_second_attempt_does_not_touch_mastery(session: SessionService, progress_service: ProgressService) -> None:
    """Test that a correct retry is recorded but neither scored nor counted for mastery."""
    session.start(LanguageDirection.NL_TO_LV, 3, [])
    item = session.current_item
    session.submit_answer(WRONG)
    before = progress_service.get_progress().items[item.id]

    feedback = session.submit_answer(item.latvian)
    assert feedback.is_correct and feedback.attempt == 2
    assert session.history[-1].is_correct_on_second_try is True
    assert session.score == 0
    assert progress_service.get_progress().items[item.id] == before


def test_no_third_attempt(session: SessionService) -> None:
    """Test that an answered item cannot be graded again."""
    session.start(LanguageDirection.LV_TO_NL, 3, [])
    session.submit_answer(WRONG)
    session.submit_answer(WRONG)
    with pytest.raises(SessionStateError):
        session.submit_answer(WRONG)
    assert len(session.history) == 1


def test_close_call_feedback(session: SessionService) -> None:
    """Test that a small typo is accepted as a close call."""
    session.start(LanguageDirection.LV_TO_EN, 3, [])
    answer = answer_for(session)
    feedback = session.submit_answer(answer[:-1])
    assert feedback.is_correct and feedback.is_close_call
    assert session.score == 1


def test_operations_require_a_round(session: SessionService) -> None:
    """Test fail-fast behaviour outside a round."""
    with pytest.raises(SessionStateError):
        session.submit_answer("brood")
    with pytest.raises(SessionStateError):
        session.advance()
    with pytest.raises(SessionStateError):
        session.restart()
    with pytest.raises(SessionStateError):
        session.save_score("Anna")


def test_empty_vocabulary(progress_service, scheduler, store) -> None:
    """Test that a round cannot start without items."""
    session = SessionService([], progress_service, scheduler, store)
    with pytest.raises(ValueError):
        session.start(LanguageDirection.LV_TO_NL, 5)


def test_start_updates_streak(session: SessionService, clock) -> None:
    """Test that starting rounds counts daily play."""
    session.start(LanguageDirection.LV_TO_NL, 3)
    assert session.streak == 1
    session.exit()
    clock.advance(days=1)
    session.start(LanguageDirection.LV_TO_NL, 3)
    assert session.streak == 2


def test_category_selection(session: SessionService) -> None:
    """Test that the round only holds the selected categories."""
    session.start(LanguageDirection.LV_TO_NL, 10, ["Home"])
    assert [item.id for item in session.round_items] == ["house"]


def test_restart_keeps_parameters(session: SessionService) -> None:
    """Test that restart builds a new round with the same settings."""
    session.start(LanguageDirection.NL_TO_LV, 2, ["Food"])
    session.submit_answer(answer_for(session))
    session.restart()
    assert session.state == RoundState.IN_ROUND
    assert session.direction == LanguageDirection.NL_TO_LV
    assert session.score == 0
    assert session.history == []
    assert session.current_index == 0
    assert {item.id for item in session.round_items} == {"bread", "cheese"}


def test_exit_discards_round(session: SessionService, store: InMemoryKeyValueStore) -> None:
    """Test that exit forgets the round and its snapshot."""
    session.start(LanguageDirection.LV_TO_NL, 3)
    assert store.get(SNAPSHOT_KEY) is not None
    session.exit()
    assert session.state == RoundState.NOT_STARTED
    assert session.current_item is None
    assert session.round_items == []
    assert store.get(SNAPSHOT_KEY) is None


def test_overview_clears_snapshot(session: SessionService, store: InMemoryKeyValueStore) -> None:
    """Test that a finished round is not offered for resume."""
    session.start(LanguageDirection.LV_TO_NL, 3)
    for _ in range(3):
        session.submit_answer(answer_for(session))
        session.advance()
    assert session.is_round_complete
    assert store.get(SNAPSHOT_KEY) is None


def test_resume_recent_round(
    session: SessionService, catalog, progress_service, scheduler, store, leaderboard, clock
) -> None:
    """Test restoring a round saved less than two hours ago."""
    session.start(LanguageDirection.LV_TO_NL, 3)
    session.submit_answer(answer_for(session))
    session.advance()
    session.submit_answer(WRONG)

    clock.advance(hours=1, minutes=59)
    restored = make_session(catalog, progress_service, scheduler, store, leaderboard, clock)
    assert restored.resume() is True
    assert restored.state == RoundState.IN_ROUND
    assert restored.direction == LanguageDirection.LV_TO_NL
    assert [i.id for i in restored.round_items] == [i.id for i in session.round_items]
    assert restored.current_index == 1
    assert restored.score == 1
    assert restored.attempt_count == 1
    assert restored.history[1].user_attempts == [WRONG]

    feedback = restored.submit_answer(WRONG)
    assert feedback.attempt == 2
    assert restored.history[1].user_attempts == [WRONG, WRONG]


def test_stale_round_not_resumed(
    session: SessionService, catalog, progress_service, scheduler, store, leaderboard, clock
) -> None:
    """Test that snapshots older than two hours are dropped."""
    session.start(LanguageDirection.LV_TO_NL, 3)
    clock.advance(hours=2)
    restored = make_session(catalog, progress_service, scheduler, store, leaderboard, clock)
    assert restored.resume() is False
    assert restored.state == RoundState.NOT_STARTED
    assert store.get(SNAPSHOT_KEY) is None


@pytest.mark.parametrize("payload", ["{broken", json.dumps({"direction": "LV_TO_NL"})])
def test_malformed_snapshot_not_resumed(session: SessionService, store: InMemoryKeyValueStore, payload: str) -> None:
    """Test that unusable snapshots forfeit resume without failing."""
    store.set(SNAPSHOT_KEY, payload)
    assert session.resume() is False
    assert session.state == RoundState.NOT_STARTED


def test_resume_without_snapshot(session: SessionService) -> None:
    """Test that there is nothing to resume on a fresh store."""
    assert session.resume() is False


def test_unreadable_snapshot_is_kept(catalog, progress_service, scheduler, leaderboard, clock) -> None:
    """Test that a failed read forfeits resume without deleting the saved round."""

    class UnreadableSnapshotStore(InMemoryKeyValueStore):
        def get(self, key: str):
            if key == SNAPSHOT_KEY:
                raise StorageError("database is locked")
            return super().get(key)

    store = UnreadableSnapshotStore({SNAPSHOT_KEY: "{}"})
    session = make_session(catalog, progress_service, scheduler, store, leaderboard, clock)
    assert session.resume() is False
    assert session.state == RoundState.NOT_STARTED
    assert store.values[SNAPSHOT_KEY] == "{}"


def test_marathon_leaderboard(
    catalog, progress_service, store, leaderboard, clock
) -> None:
    """Test saving a finished marathon round to the leaderboard."""
    scheduler = SchedulerService(progress_service, marathon_size=3)
    session = make_session(catalog, progress_service, scheduler, store, leaderboard, clock)
    session.start(LanguageDirection.LV_TO_NL, 3)
    assert session.is_marathon
    session.submit_answer(answer_for(session))
    session.advance()
    session.submit_answer(WRONG)
    session.submit_answer(WRONG)
    session.advance()
    session.submit_answer(WRONG)
    session.submit_answer(answer_for(session))
    session.advance()

    board = session.save_score("  Anna ")
    assert len(board) == 1
    assert board[0].name == "Anna"
    assert board[0].score == 1
    assert board[0].accuracy == 33
    assert leaderboard.get_leaderboard() == board


def test_regular_round_not_on_leaderboard(session: SessionService) -> None:
    """Test that only marathon rounds can be saved."""
    session.start(LanguageDirection.LV_TO_NL, 1)
    session.submit_answer(answer_for(session))
    session.advance()
    with pytest.raises(SessionStateError):
        session.save_score("Anna")


def test_filtered_marathon_request_is_not_a_marathon(
    catalog, progress_service, store, leaderboard, clock
) -> None:
    """Test that a marathon-sized request narrowed by categories is an ordinary round."""
    scheduler = SchedulerService(progress_service, marathon_size=3)
    session = make_session(catalog, progress_service, scheduler, store, leaderboard, clock)
    session.start(LanguageDirection.LV_TO_NL, 3, ["Home"])
    assert [item.id for item in session.round_items] == ["house"]
    assert not session.is_marathon

    session.submit_answer(answer_for(session))
    session.advance()
    assert session.state == RoundState.ROUND_OVERVIEW
    with pytest.raises(SessionStateError):
        session.save_score("Anna")
    assert leaderboard.get_leaderboard() == []
