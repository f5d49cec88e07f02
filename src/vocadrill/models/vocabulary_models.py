"""Models for vocabulary, progress and grading data structures."""
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


def parse_datetime(value: str) -> datetime:
    """Parse an ISO timestamp, reading naive values as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class Language(Enum):
    """Languages a vocabulary item carries text for."""
    LATVIAN = "latvian"
    DUTCH = "dutch"
    ENGLISH = "english"


class LanguageDirection(Enum):
    """Direction of a drill: prompt language to answer language."""
    LV_TO_NL = "LV_TO_NL"  # Latvian to Dutch
    NL_TO_LV = "NL_TO_LV"  # Dutch to Latvian
    LV_TO_EN = "LV_TO_EN"  # Latvian to English

    @property
    def source(self) -> Language:
        """Language shown as the prompt."""
        return _DIRECTION_LANGUAGES[self][0]

    @property
    def target(self) -> Language:
        """Language the user answers in."""
        return _DIRECTION_LANGUAGES[self][1]


_DIRECTION_LANGUAGES = {
    LanguageDirection.LV_TO_NL: (Language.LATVIAN, Language.DUTCH),
    LanguageDirection.NL_TO_LV: (Language.DUTCH, Language.LATVIAN),
    LanguageDirection.LV_TO_EN: (Language.LATVIAN, Language.ENGLISH),
}


@dataclass(frozen=True)
class VocabularyItem:
    """Immutable catalog entry."""
    id: str
    latvian: str
    dutch: str
    english: Optional[str] = None
    is_sentence: bool = False
    category: Optional[str] = None

    def text_for(self, language: Language) -> str:
        """Get the item's text in the given language, empty when missing."""
        return getattr(self, language.value) or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "latvian": self.latvian,
            "dutch": self.dutch,
            "english": self.english,
            "isSentence": self.is_sentence,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VocabularyItem":
        return cls(
            id=str(data["id"]),
            latvian=data["latvian"],
            dutch=data["dutch"],
            english=data.get("english"),
            is_sentence=bool(data.get("isSentence", False)),
            category=data.get("category"),
        )


@dataclass
class ItemProgress:
    """Mutable per-item learner state."""
    mastery_level: int
    next_review_date: datetime
    last_reviewed: Optional[datetime] = None

    def is_due(self, now: datetime) -> bool:
        """Check if the item should be reviewed at the given time."""
        return self.next_review_date <= now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "masteryLevel": self.mastery_level,
            "nextReviewDate": self.next_review_date.isoformat(),
            "lastReviewed": self.last_reviewed.isoformat() if self.last_reviewed else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemProgress":
        last_reviewed = data.get("lastReviewed")
        return cls(
            mastery_level=int(data["masteryLevel"]),
            next_review_date=parse_datetime(data["nextReviewDate"]),
            last_reviewed=parse_datetime(last_reviewed) if last_reviewed else None,
        )


@dataclass
class StreakState:
    """Daily practice streak."""
    current_streak: int = 0
    last_played_date: str = ""  # ISO calendar date, empty if never played

    def to_dict(self) -> Dict[str, Any]:
        return {"currentStreak": self.current_streak, "lastPlayedDate": self.last_played_date}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreakState":
        return cls(
            current_streak=int(data.get("currentStreak", 0)),
            last_played_date=str(data.get("lastPlayedDate", "")),
        )


@dataclass
class UserProgress:
    """Everything the progress store persists."""
    items: Dict[str, ItemProgress] = field(default_factory=dict)
    streak: StreakState = field(default_factory=StreakState)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": {item_id: progress.to_dict() for item_id, progress in self.items.items()},
            "streak": self.streak.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProgress":
        return cls(
            items={
                str(item_id): ItemProgress.from_dict(progress)
                for item_id, progress in data.get("items", {}).items()
            },
            streak=StreakState.from_dict(data.get("streak", {})),
        )


@dataclass(frozen=True)
class MasteryStats:
    """Aggregate mastery classification over a vocabulary list."""
    mastered: int
    learning: int
    new_items: int


@dataclass(frozen=True)
class AnswerResult:
    """Outcome of comparing a user answer to the correct one."""
    is_correct: bool
    is_close_call: bool  # typo within tolerance


@dataclass
class RoundHistoryItem:
    """Record of one item shown in a round."""
    item: VocabularyItem
    correct_translation: str
    user_attempts: List[str] = field(default_factory=list)  # at most two
    is_correct_on_first_try: bool = False
    is_correct_on_second_try: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "itemId": self.item.id,
            "correctTranslation": self.correct_translation,
            "userAttempts": list(self.user_attempts),
            "isCorrectOnFirstTry": self.is_correct_on_first_try,
            "isCorrectOnSecondTry": self.is_correct_on_second_try,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], item: VocabularyItem) -> "RoundHistoryItem":
        return cls(
            item=item,
            correct_translation=data["correctTranslation"],
            user_attempts=[str(attempt) for attempt in data.get("userAttempts", [])],
            is_correct_on_first_try=bool(data.get("isCorrectOnFirstTry", False)),
            is_correct_on_second_try=bool(data.get("isCorrectOnSecondTry", False)),
        )


@dataclass(frozen=True)
class LeaderboardEntry:
    """A saved marathon result."""
    name: str
    score: int
    accuracy: int  # percentage
    date: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "accuracy": self.accuracy,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeaderboardEntry":
        return cls(
            name=str(data["name"]),
            score=int(data["score"]),
            accuracy=int(data["accuracy"]),
            date=parse_datetime(data["date"]),
        )
