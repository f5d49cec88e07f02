"""Scheduler service for assembling review rounds."""
import logging
import random
from typing import List, Optional, Sequence

from vocadrill.config import settings
from vocadrill.models.vocabulary_models import VocabularyItem
from vocadrill.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"


def filter_by_categories(
    catalog: Sequence[VocabularyItem], selected_categories: Sequence[str]
) -> List[VocabularyItem]:
    """Keep items in the selected categories, falling back to the whole catalog."""
    if not selected_categories or ALL_CATEGORIES in selected_categories:
        return list(catalog)

    selected = set(selected_categories)
    candidates = [item for item in catalog if item.category and item.category in selected]
    if not candidates:
        logger.warning(f"No items in categories {sorted(selected)}, using the whole catalog")
        return list(catalog)
    return candidates


class SchedulerService:
    """Service for choosing which items make up a round."""

    def __init__(
        self,
        progress_service: ProgressService,
        rng: Optional[random.Random] = None,
        marathon_size: Optional[int] = None,
    ):
        self.progress_service = progress_service
        self.rng = rng or progress_service.rng
        self.marathon_size = marathon_size or settings.learning.marathon_size

    def is_marathon(self, round_size: int) -> bool:
        """Check if a round of this size covers the whole filtered catalog."""
        return round_size >= self.marathon_size

    def build_round(
        self,
        catalog: Sequence[VocabularyItem],
        selected_categories: Sequence[str],
        round_size: int,
    ) -> List[VocabularyItem]:
        """Build a shuffled round of due items topped up with fillers."""
        if round_size < 1:
            raise ValueError(f"Round size must be positive, got {round_size}")

        candidates = filter_by_categories(catalog, selected_categories)

        if self.is_marathon(round_size):
            round_items = list(candidates)
            logger.info(f"Marathon round with {len(round_items)} items")
        else:
            due_items = self.progress_service.get_due_items(candidates, round_size)
            round_items = list(due_items)
            shortfall = round_size - len(due_items)
            if shortfall > 0:
                used_ids = {item.id for item in due_items}
                remaining = [item for item in candidates if item.id not in used_ids]
                fillers = self.rng.sample(remaining, min(shortfall, len(remaining)))
                round_items.extend(fillers)
            logger.info(
                f"Round of {len(round_items)} items: {len(due_items)} due, "
                f"{len(round_items) - len(due_items)} fillers"
            )

        # Due items should not cluster at the front
        self.rng.shuffle(round_items)
        return round_items
