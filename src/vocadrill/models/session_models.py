"""Models for round session state."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from vocadrill.models.vocabulary_models import parse_datetime


class RoundState(Enum):
    """States of the round state machine."""
    NOT_STARTED = "not_started"
    IN_ROUND = "in_round"
    ROUND_OVERVIEW = "round_overview"


@dataclass(frozen=True)
class AnswerFeedback:
    """What the presentation layer needs after a graded attempt."""
    is_correct: bool
    is_close_call: bool
    attempt: int  # 1 or 2
    can_retry: bool
    correct_translation: str = ""  # only revealed once the item is answered


@dataclass
class SessionSnapshot:
    """Serializable version of an in-progress round for resume."""
    direction: str  # LanguageDirection value
    round_size: int
    selected_categories: List[str]
    round_items: List[Dict[str, Any]]  # VocabularyItem dicts in round order
    current_index: int
    score: int
    attempt_count: int
    is_answered: bool
    history: List[Dict[str, Any]]  # RoundHistoryItem dicts
    timestamp: str  # ISO format datetime string

    def saved_at(self) -> datetime:
        return parse_datetime(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction,
            "roundSize": self.round_size,
            "selectedCategories": list(self.selected_categories),
            "roundItems": list(self.round_items),
            "currentIndex": self.current_index,
            "score": self.score,
            "attemptCount": self.attempt_count,
            "isAnswered": self.is_answered,
            "history": list(self.history),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionSnapshot":
        return cls(
            direction=str(data["direction"]),
            round_size=int(data["roundSize"]),
            selected_categories=[str(c) for c in data.get("selectedCategories", [])],
            round_items=list(data["roundItems"]),
            current_index=int(data["currentIndex"]),
            score=int(data["score"]),
            attempt_count=int(data["attemptCount"]),
            is_answered=bool(data.get("isAnswered", False)),
            history=list(data.get("history", [])),
            timestamp=str(data["timestamp"]),
        )
