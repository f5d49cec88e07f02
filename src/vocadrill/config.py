"""Configuration settings for the drill engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PACKAGE_DIR = Path(__file__).parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


DEFAULT_CATALOG_FILE = PACKAGE_DIR / "data" / "vocabulary.json"

# Learning settings
REVIEW_INTERVALS = [0, 1, 3, 7, 14, 30]  # days until next review, indexed by mastery level
ROUND_OPTIONS = [5, 10, 20, 50, 180]
MARATHON_SIZE = 180


@dataclass
class PathSettings:
    """Path configuration settings."""
    catalog_file: Path = Path(os.getenv("CATALOG_FILE", str(DEFAULT_CATALOG_FILE)))


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocadrill.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class LearningSettings:
    """Spaced repetition and round settings."""
    default_round_size: int = int(os.getenv("DEFAULT_ROUND_SIZE", "10"))
    marathon_size: int = int(os.getenv("MARATHON_SIZE", str(MARATHON_SIZE)))
    round_options: list[int] = field(default_factory=lambda: list(ROUND_OPTIONS))
    max_mastery_level: int = int(os.getenv("MAX_MASTERY_LEVEL", "5"))
    mastered_level: int = int(os.getenv("MASTERED_LEVEL", "4"))
    correct_reward: int = 1
    incorrect_penalty: int = 2
    review_intervals: list[int] = field(default_factory=lambda: list(REVIEW_INTERVALS))
    session_staleness_hours: float = float(os.getenv("SESSION_STALENESS_HOURS", "2"))
    short_answer_length: int = 5
    short_answer_tolerance: int = 1
    long_answer_tolerance: int = 2


@dataclass
class LeaderboardSettings:
    """Leaderboard settings."""
    max_entries: int = int(os.getenv("LEADERBOARD_MAX_ENTRIES", "10"))


def get_metrics_port() -> Optional[int]:
    """Get the metrics exporter port from environment variable."""
    port = os.getenv("METRICS_PORT")
    return int(port) if port else None


def get_seed() -> Optional[int]:
    """Get the random seed from environment variable."""
    seed = os.getenv("SEED")
    return int(seed) if seed else None


@dataclass
class RuntimeSettings:
    """Process-level runtime settings."""
    metrics_port: Optional[int] = field(default_factory=get_metrics_port)
    seed: Optional[int] = field(default_factory=get_seed)


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_learning_settings() -> LearningSettings:
    """Get learning settings."""
    return LearningSettings()


def get_leaderboard_settings() -> LeaderboardSettings:
    """Get leaderboard settings."""
    return LeaderboardSettings()


def get_runtime_settings() -> RuntimeSettings:
    """Get runtime settings."""
    return RuntimeSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    learning: LearningSettings = field(default_factory=get_learning_settings)
    leaderboard: LeaderboardSettings = field(default_factory=get_leaderboard_settings)
    runtime: RuntimeSettings = field(default_factory=get_runtime_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        learning = self.learning
        if learning.max_mastery_level < 1:
            raise ValueError("MAX_MASTERY_LEVEL must be positive")

        if len(learning.review_intervals) != learning.max_mastery_level + 1:
            raise ValueError("Review intervals must define one entry per mastery level")

        if learning.mastered_level < 1 or learning.mastered_level > learning.max_mastery_level:
            raise ValueError("MASTERED_LEVEL must be between 1 and MAX_MASTERY_LEVEL")

        if learning.default_round_size < 1:
            raise ValueError("DEFAULT_ROUND_SIZE must be positive")

        if learning.marathon_size < 1:
            raise ValueError("MARATHON_SIZE must be positive")

        if learning.session_staleness_hours <= 0:
            raise ValueError("SESSION_STALENESS_HOURS must be positive")

        if self.leaderboard.max_entries < 1:
            raise ValueError("LEADERBOARD_MAX_ENTRIES must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
