"""Answer normalization and typo-tolerant comparison."""
import re

from vocadrill.config import settings
from vocadrill.models.vocabulary_models import AnswerResult

_PUNCTUATION = re.compile(r"[.,!?;:\"']")
_WHITESPACE = re.compile(r"\s+")


def normalize_answer(answer: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    if not answer:
        return ""
    answer = _PUNCTUATION.sub("", answer.lower())
    return _WHITESPACE.sub(" ", answer).strip()


def levenshtein_distance(first: str, second: str) -> int:
    """Minimum number of single-character edits turning first into second."""
    if len(first) < len(second):
        first, second = second, first
    previous = list(range(len(second) + 1))
    for i, first_char in enumerate(first, start=1):
        current = [i]
        for j, second_char in enumerate(second, start=1):
            cost = 0 if first_char == second_char else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def allowed_typos(correct_answer: str) -> int:
    """Number of edits tolerated for a normalized correct answer."""
    learning = settings.learning
    if len(correct_answer) <= learning.short_answer_length:
        return learning.short_answer_tolerance
    return learning.long_answer_tolerance


def check_answer(user_answer: str, correct_answer: str) -> AnswerResult:
    """Check the user's answer, allowing for small typos."""
    normalized_user = normalize_answer(user_answer)
    normalized_correct = normalize_answer(correct_answer)

    if normalized_user == normalized_correct:
        return AnswerResult(is_correct=True, is_close_call=False)

    distance = levenshtein_distance(normalized_user, normalized_correct)
    if distance <= allowed_typos(normalized_correct):
        return AnswerResult(is_correct=True, is_close_call=True)

    return AnswerResult(is_correct=False, is_close_call=False)
