"""Test configuration."""
import os
import random
from datetime import UTC, datetime, timedelta
from typing import Generator, List

import pytest
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Import after environment setup
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from vocadrill.models.base import init_db
from vocadrill.models.vocabulary_models import VocabularyItem
from vocadrill.services.progress_service import ProgressService
from vocadrill.services.scheduler_service import SchedulerService
from vocadrill.services.storage_service import InMemoryKeyValueStore

fake = Faker()


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def progress_service(store: InMemoryKeyValueStore, clock: FakeClock, rng: random.Random) -> ProgressService:
    return ProgressService(store, clock=clock, rng=rng)


@pytest.fixture
def scheduler(progress_service: ProgressService, rng: random.Random) -> SchedulerService:
    return SchedulerService(progress_service, rng=rng, marathon_size=180)


def make_items(count: int, category: str = "General") -> List[VocabularyItem]:
    """Create vocabulary items with unique ids."""
    return [
        VocabularyItem(
            id=f"{category.lower()}-{index}",
            latvian=f"{fake.word()}{index}",
            dutch=f"{fake.word()}{index}",
            english=fake.word(),
            category=category,
        )
        for index in range(count)
    ]


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test."""
    engine = create_engine("sqlite://")
    init_db(engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def item_factory():
    """Factory for vocabulary items with unique ids."""
    return make_items
