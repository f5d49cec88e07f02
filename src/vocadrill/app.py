"""Application wiring."""
import logging
import random
from typing import Optional

from sqlalchemy.orm import Session

from vocadrill.config import settings
from vocadrill.models.base import init_db, SessionLocal
from vocadrill.monitoring import start_monitoring
from vocadrill.services.leaderboard_service import LeaderboardService
from vocadrill.services.progress_service import ProgressService
from vocadrill.services.scheduler_service import SchedulerService
from vocadrill.services.session_service import SessionService
from vocadrill.services.storage_service import KeyValueStore, SqlKeyValueStore
from vocadrill.services.vocabulary_service import VocabularyService


class DrillApp:
    """Main application class."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        vocabulary: Optional[VocabularyService] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the application."""
        self.logger = logging.getLogger(__name__)
        self.db: Optional[Session] = None
        self._store = store
        self._vocabulary = vocabulary
        self.rng = rng or random.Random(settings.runtime.seed)
        self.session: Optional[SessionService] = None
        self.running = False

    def start(self) -> SessionService:
        """Open storage, load the catalog and build the round session."""
        if self.running:
            return self.session

        if self._store is None:
            init_db()
            self.db = SessionLocal()
            self._store = SqlKeyValueStore(self.db)
            self.logger.info("Database initialized")

        if self._vocabulary is None:
            self._vocabulary = VocabularyService.from_file()

        if settings.runtime.metrics_port:
            start_monitoring(settings.runtime.metrics_port)
            self.logger.info(f"Metrics exported on port {settings.runtime.metrics_port}")

        self.vocabulary = self._vocabulary
        self.progress = ProgressService(self._store, rng=self.rng)
        self.scheduler = SchedulerService(self.progress, rng=self.rng)
        self.leaderboard = LeaderboardService(self._store)
        self.session = SessionService(
            self._vocabulary.get_base_vocabulary(),
            self.progress,
            self.scheduler,
            self._store,
            leaderboard=self.leaderboard,
        )
        self.running = True
        self.logger.info("Application started")
        return self.session

    def stop(self) -> None:
        """Release the database session."""
        if not self.running:
            return
        if self.db is not None:
            self.db.close()
            self.db = None
        self.running = False
        self.logger.info("Application stopped")
