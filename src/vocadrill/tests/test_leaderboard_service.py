"""Tests for leaderboard service."""
from faker import Faker

from vocadrill.services.leaderboard_service import LEADERBOARD_KEY, LeaderboardService
from vocadrill.services.storage_service import InMemoryKeyValueStore, StorageError

fake = Faker()


def test_empty_leaderboard(store: InMemoryKeyValueStore, clock) -> None:
    """Test that a fresh store has no entries."""
    assert LeaderboardService(store, clock=clock).get_leaderboard() == []


def test_malformed_leaderboard(store: InMemoryKeyValueStore, clock) -> None:
    """Test that unreadable data yields an empty board."""
    service = LeaderboardService(store, clock=clock)
    for payload in ["oops", '{"name": "x"}', '[{"name": "x"}]']:
        store.set(LEADERBOARD_KEY, payload)
        assert service.get_leaderboard() == []


def test_sorting(store: InMemoryKeyValueStore, clock) -> None:
    """Test score, then accuracy, then newest first."""
    service = LeaderboardService(store, clock=clock)
    service.save_score("low", 10, 90)
    clock.advance(minutes=1)
    service.save_score("older", 50, 80)
    clock.advance(minutes=1)
    service.save_score("accurate", 50, 95)
    clock.advance(minutes=1)
    board = service.save_score("newer", 50, 80)

    assert [entry.name for entry in board] == ["accurate", "newer", "older", "low"]


def test_capped_at_max_entries(store: InMemoryKeyValueStore, clock) -> None:
    """Test that only the best entries are kept."""
    service = LeaderboardService(store, clock=clock, max_entries=10)
    for score in range(15):
        service.save_score(fake.first_name(), score, 50)
    board = service.get_leaderboard()
    assert len(board) == 10
    assert [entry.score for entry in board] == list(range(14, 4, -1))


def test_blank_name_is_anonymous(store: InMemoryKeyValueStore, clock) -> None:
    """Test the default player name."""
    board = LeaderboardService(store, clock=clock).save_score("   ", 3, 100)
    assert board[0].name == "Anonymous"
    assert board[0].date == clock.now


def test_write_failure_returns_board(clock) -> None:
    """Test that a failed write still returns the computed board."""

    class FailingStore(InMemoryKeyValueStore):
        def set(self, key: str, value: str) -> None:
            raise StorageError("quota exceeded")

    board = LeaderboardService(FailingStore(), clock=clock).save_score("Anna", 7, 70)
    assert [entry.name for entry in board] == ["Anna"]


def test_read_failure_does_not_overwrite_board(clock) -> None:
    """Test that a score saved while the board is unreadable leaves stored entries alone."""

    class UnreadableStore(InMemoryKeyValueStore):
        readable = True

        def get(self, key: str):
            if not self.readable:
                raise StorageError("database is locked")
            return super().get(key)

    store = UnreadableStore()
    service = LeaderboardService(store, clock=clock)
    service.save_score("Anna", 7, 70)
    service.save_score("Jānis", 5, 50)
    stored = store.values[LEADERBOARD_KEY]

    store.readable = False
    assert service.get_leaderboard() == []
    board = service.save_score("Pieter", 9, 90)
    assert [entry.name for entry in board] == ["Pieter"]
    assert store.values[LEADERBOARD_KEY] == stored

    store.readable = True
    assert [entry.name for entry in service.get_leaderboard()] == ["Anna", "Jānis"]
